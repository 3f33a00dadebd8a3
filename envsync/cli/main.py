"""CLI entrypoint for envsync."""
import sys
import argparse
import asyncio
import logging
from pathlib import Path

from .validators import validate_secret_name, validate_secret_value, parse_assignments

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _get_registry():
    """Load config and build the environment registry."""
    from envsync.secrets.domains.config_loader import load_config
    from envsync.secrets.domains.registry import EnvironmentRegistry

    config = load_config()
    level = config['logging']['level']
    if logging.getLogger().level != logging.DEBUG:
        logging.getLogger().setLevel(str(level).upper())
    return EnvironmentRegistry.from_config(config), config


def _max_concurrency(config) -> int:
    return config.get('copy', {}).get('max_concurrency', 10)


def cmd_version(args):
    """Show version information."""
    print(f"envsync {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from envsync.secrets.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path and where it comes from."""
    import os
    from envsync.secrets.domains.config_loader import CONFIG_ENV_VAR, default_config_path
    from envsync.secrets.domains.preferences import get_preference

    env_path = os.getenv(CONFIG_ENV_VAR)
    config_path_pref = get_preference("config_path")

    if env_path:
        source, config_path = "environment", Path(env_path)
    elif config_path_pref:
        source, config_path = "preference", Path(config_path_pref)
    else:
        source, config_path = "default", default_config_path()

    print(f"Config path: {config_path}")
    print(f"Source: {source}" + ("" if config_path.exists() else " (file not found)"))


def cmd_config_clear(args):
    """Clear config path preference."""
    from envsync.secrets.domains.config_loader import default_config_path
    from envsync.secrets.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_envs_list(args):
    """List configured environments."""
    registry, _ = _get_registry()
    for env in registry.list():
        print(f"{env.id}\t{env.name}\t{env.store_locator}")


def cmd_secrets_list(args):
    from envsync.secrets.workflows.secret_operations import list_secrets

    registry, _ = _get_registry()
    names = list_secrets(registry, args.env)
    for name in names:
        print(name)
    if not args.quiet:
        print(f"\n{len(names)} secret(s) in '{registry.name_of(args.env)}'", file=sys.stderr)


def cmd_secrets_get(args):
    """Get a secret's current value."""
    from envsync.secrets.workflows.secret_operations import get_secret

    validate_secret_name(args.secret_name)
    registry, _ = _get_registry()
    record = get_secret(registry, args.env, args.secret_name)

    if args.quiet:
        # Quiet mode: output only value, no formatting
        print(record.value)
    else:
        print(f"Secret '{record.name}': {record.value}")
        if record.updated_on:
            print(f"Updated: {record.updated_on.isoformat()}")


def cmd_secrets_set(args):
    from envsync.secrets.workflows.secret_operations import set_secret

    validate_secret_name(args.secret_name)
    validate_secret_value(args.value)
    registry, _ = _get_registry()
    record = set_secret(registry, args.env, args.secret_name, args.value)
    if record.name_was_sanitized:
        print(f"Note: secret name was stored as '{record.name}'")
    print(f"Secret '{record.name}' saved in '{registry.name_of(args.env)}'")


def cmd_secrets_delete(args):
    from envsync.secrets.workflows.secret_operations import delete_secret

    validate_secret_name(args.secret_name)
    registry, _ = _get_registry()
    delete_secret(registry, args.env, args.secret_name)
    print(f"Secret '{args.secret_name}' deleted from '{registry.name_of(args.env)}'")


def cmd_compare(args):
    """Compare two environments and optionally export the report."""
    from envsync.secrets.workflows.diff_engine import compare
    from envsync.secrets.workflows.report import comparison_rows, export_comparison

    registry, _ = _get_registry()
    diff = asyncio.run(compare(registry, args.source, args.target))

    for name, status in comparison_rows(diff, args.filter):
        print(f"{status:<13} {name}")

    print(
        f"\n{registry.name_of(args.source)}: {diff.total_in_source} secret(s), "
        f"{registry.name_of(args.target)}: {diff.total_in_target} secret(s)\n"
        f"Only in source: {len(diff.only_in_source)}, "
        f"only in target: {len(diff.only_in_target)}, in both: {len(diff.in_both)}"
    )

    if args.export:
        path = export_comparison(diff, registry.get(args.source), registry.get(args.target), Path(args.export))
        print(f"Comparison report exported to: {path}")


def _prompt_edits(session):
    """Ask for a new value per loaded secret; an empty answer keeps the original."""
    edits = {}
    for secret in session.loaded:
        answer = input(f"{secret.name} [{secret.original_value}]: ")
        if answer:
            edits[secret.name] = answer
    return edits


async def _run_copy(session, args, edits):
    from envsync.secrets.domains.errors import InvalidInput

    await session.compare()
    if args.all:
        session.select_all(args.filter)
    for name in args.names:
        session.select(name)
    if not session.selection:
        raise InvalidInput("No secrets selected. Pass secret names or --all")

    if not args.edit and not edits:
        return await session.copy_selected()

    edit_session = await session.load_selected_for_edit()
    for name, reason in edit_session.failed.items():
        print(f"Warning: failed to load secret '{name}': {reason}", file=sys.stderr)
    print(f"Loaded {len(edit_session.loaded)} secret(s) for editing")
    if args.edit:
        edits.update(_prompt_edits(edit_session))
    return await session.commit_edits(edit_session, edits)


def cmd_copy(args):
    """Copy selected secrets from source to target."""
    from envsync.secrets.workflows.batch_copy import BatchCopyOrchestrator
    from envsync.secrets.workflows.sync_session import SyncSession

    if args.filter and not args.all:
        print("Error: --filter can only be used together with --all", file=sys.stderr)
        sys.exit(2)
    for name in args.names:
        validate_secret_name(name)
    edits = parse_assignments(args.set)

    registry, config = _get_registry()
    session = SyncSession(registry, BatchCopyOrchestrator(registry, _max_concurrency(config)))
    session.set_environments(args.source, args.target)
    result = asyncio.run(_run_copy(session, args, edits))

    for outcome in result.outcomes:
        marker = "✓" if outcome.success else "✗"
        line = f"  {marker} {outcome.secret_name}: {outcome.message}"
        if outcome.was_edited:
            line += " (edited)"
        print(line)

    if result.failure_count:
        print(result.summary_message(), file=sys.stderr)
        sys.exit(1)
    print(result.summary_message())


def cmd_versions_list(args):
    from envsync.secrets.workflows.version_history import VersionHistoryManager, truncate_version, version_age

    registry, _ = _get_registry()
    versions = asyncio.run(VersionHistoryManager(registry).list_versions(args.env, args.secret_name))
    for index, version in enumerate(versions):
        created = version.created_on.isoformat() if version.created_on else "N/A"
        flags = []
        if index == 0:
            flags.append("current")
        if not version.enabled:
            flags.append("disabled")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"{truncate_version(version.version, args.width)}\t{created}\t{version_age(version.created_on)}{suffix}")


def cmd_versions_show(args):
    from envsync.secrets.workflows.version_history import VersionHistoryManager

    registry, _ = _get_registry()
    version = asyncio.run(VersionHistoryManager(registry).get_version(args.env, args.secret_name, args.version))
    print(f"Version: {version.version}")
    print(f"Enabled: {'yes' if version.enabled else 'no'}")
    if version.created_on:
        print(f"Created: {version.created_on.isoformat()}")
    if version.expires_on:
        print(f"Expires: {version.expires_on.isoformat()}")
    if version.content_type:
        print(f"Content type: {version.content_type}")
    for key, value in sorted(version.tags.items()):
        print(f"Tag {key}: {value}")
    print(f"Value: {version.value}")


def cmd_versions_restore(args):
    from envsync.secrets.workflows.version_history import VersionHistoryManager

    registry, _ = _get_registry()
    result = asyncio.run(VersionHistoryManager(registry).restore(args.env, args.secret_name, args.version))
    print(f"Version restored! New version: {result.new_version}")


def _build_parser():
    parser = argparse.ArgumentParser(
        prog="envsync",
        description="envsync - compare, copy and version secrets across environments",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (store unavailable, secret not found, failed copies, etc.)
  2 - Usage error (invalid arguments, same source and target, invalid selection, etc.)

Configuration:
  Default location: ~/.config/envsync/config.yml
  Custom path: Set with 'envsync config set-path <path>' or ENVSYNC_CONFIG
  View current: Run 'envsync config show'
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("version", help="Show version information")

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage envsync configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="Store the absolute path of your config file in ~/.config/envsync/preferences.json"
    )
    config_set_path_parser.add_argument("path", help="Path to config file")
    config_subparsers.add_parser("show", help="Show current config path")
    config_subparsers.add_parser("clear", help="Clear config path preference")

    # envs command
    envs_parser = subparsers.add_parser("envs", help="Environment operations")
    envs_subparsers = envs_parser.add_subparsers(dest="envs_command")
    envs_subparsers.add_parser("list", help="List configured environments")

    # secrets command
    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Secret management operations",
        description="Manage secrets in one environment"
    )
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    list_parser = secrets_subparsers.add_parser("list", help="List secret names")
    list_parser.add_argument("--env", required=True, help="Environment id")
    list_parser.add_argument("-q", "--quiet", action="store_true", help="Output only names")

    get_parser = secrets_subparsers.add_parser("get", help="Get a secret value")
    get_parser.add_argument("secret_name", help="Name of the secret")
    get_parser.add_argument("--env", required=True, help="Environment id")
    get_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the secret value (useful for scripts)"
    )

    set_parser = secrets_subparsers.add_parser("set", help="Create or update a secret")
    set_parser.add_argument("secret_name", help="Name of the secret")
    set_parser.add_argument("value", help="Secret value")
    set_parser.add_argument("--env", required=True, help="Environment id")

    delete_parser = secrets_subparsers.add_parser("delete", help="Delete a secret")
    delete_parser.add_argument("secret_name", help="Name of the secret")
    delete_parser.add_argument("--env", required=True, help="Environment id")

    # compare command
    compare_parser = subparsers.add_parser(
        "compare",
        help="Compare two environments",
        description="List secrets only in the source, only in the target, and in both"
    )
    compare_parser.add_argument("source", help="Source environment id")
    compare_parser.add_argument("target", help="Target environment id")
    compare_parser.add_argument("--filter", help="Show only names containing this text (case-insensitive)")
    compare_parser.add_argument("--export", help="Write a JSON report to this file or directory")

    # copy command
    copy_parser = subparsers.add_parser(
        "copy",
        help="Copy secrets between environments",
        description="""
Copy secrets from the source to the target environment.

Each secret is copied independently; one failure does not stop the others.
Existing target secrets are overwritten with a new version.

With --edit or --set, all selected secrets are loaded first and the edited
values are written; secrets that fail to load are skipped with a warning.
        """
    )
    copy_parser.add_argument("source", help="Source environment id")
    copy_parser.add_argument("target", help="Target environment id")
    copy_parser.add_argument("names", nargs="*", help="Secret names to copy")
    copy_parser.add_argument("--all", action="store_true", help="Select every secret that exists in the source")
    copy_parser.add_argument("--filter", help="With --all, select only names containing this text")
    copy_parser.add_argument("--edit", action="store_true", help="Prompt for a new value for each secret")
    copy_parser.add_argument(
        "--set",
        action="append",
        metavar="NAME=VALUE",
        help="Replace a secret's value before copying (repeatable)"
    )

    # versions command
    versions_parser = subparsers.add_parser(
        "versions",
        help="Secret version history",
        description="List, inspect and restore versions. Restoring creates a new version."
    )
    versions_subparsers = versions_parser.add_subparsers(dest="versions_command")

    versions_list_parser = versions_subparsers.add_parser("list", help="List versions, newest first")
    versions_list_parser.add_argument("env", help="Environment id")
    versions_list_parser.add_argument("secret_name", help="Name of the secret")
    versions_list_parser.add_argument("--width", type=int, default=8, help="Characters of version id to show")

    for command, help_text in (("show", "Show a version's content"), ("restore", "Restore a version as a new version")):
        version_parser = versions_subparsers.add_parser(command, help=help_text)
        version_parser.add_argument("env", help="Environment id")
        version_parser.add_argument("secret_name", help="Name of the secret")
        version_parser.add_argument("version", help="Version id")

    return parser, {
        "config": (config_parser, "config_command", {
            "set-path": cmd_config_set_path, "show": cmd_config_show, "clear": cmd_config_clear,
        }),
        "envs": (envs_parser, "envs_command", {"list": cmd_envs_list}),
        "secrets": (secrets_parser, "secrets_command", {
            "list": cmd_secrets_list, "get": cmd_secrets_get, "set": cmd_secrets_set, "delete": cmd_secrets_delete,
        }),
        "versions": (versions_parser, "versions_command", {
            "list": cmd_versions_list, "show": cmd_versions_show, "restore": cmd_versions_restore,
        }),
    }


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (store unavailable, secret not found, failed copies, etc.)
        2 - Usage errors (invalid arguments, invalid input or selection, etc.)
    """
    from envsync.secrets.domains.errors import InvalidInput, InvalidSelection, UnknownEnvironment

    parser, groups = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "compare":
            cmd_compare(args)
        elif args.command == "copy":
            cmd_copy(args)
        elif args.command in groups:
            group_parser, dest, handlers = groups[args.command]
            handler = handlers.get(getattr(args, dest))
            if handler is None:
                group_parser.print_help()
                sys.exit(2)
            handler(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except (InvalidInput, InvalidSelection, UnknownEnvironment) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
