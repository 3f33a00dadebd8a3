"""Input validation for CLI arguments."""
import re
import sys
from typing import Dict, List, Optional


def validate_secret_name(name: str) -> None:
    """
    Validate a secret name given on the command line.

    Stores may still sanitize names they cannot hold (GCP allows only
    [a-zA-Z0-9_-]); the CLI only rejects names no store accepts.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print("Error: Secret name cannot be empty", file=sys.stderr)
        sys.exit(2)

    if re.search(r'\s', name):
        print(f"Error: Invalid secret name '{name}'", file=sys.stderr)
        print("\nSecret names cannot contain whitespace.", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ MY_SECRET", file=sys.stderr)
        print("  ✓ api-key-prod", file=sys.stderr)
        sys.exit(2)


def validate_secret_value(value: str) -> None:
    """
    Validate secret value is not empty.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value or value.strip() == "":
        print("Error: Secret value cannot be empty", file=sys.stderr)
        print("\nSecret stores do not accept empty secret payloads.", file=sys.stderr)
        print("If you need a placeholder, use a special value like 'UNSET' or 'TODO'.", file=sys.stderr)
        sys.exit(2)


def parse_assignments(assignments: Optional[List[str]]) -> Dict[str, str]:
    """
    Parse repeated NAME=VALUE arguments into a dict.

    The value may contain '=' characters; only the first one separates.

    Raises:
        SystemExit with code 2 if an assignment has no '=' or no name
    """
    edits: Dict[str, str] = {}
    for assignment in assignments or []:
        name, sep, value = assignment.partition("=")
        if not sep or not name:
            print(f"Error: Invalid assignment '{assignment}', expected NAME=VALUE", file=sys.stderr)
            sys.exit(2)
        edits[name] = value
    return edits
