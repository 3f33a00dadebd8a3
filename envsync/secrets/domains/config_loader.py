"""Configuration loader for envsync."""
import os
import logging
from pathlib import Path
from typing import Dict, Any
import yaml

from .preferences import get_preference

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ENVSYNC_CONFIG"
DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_LOG_LEVEL = "WARNING"


def default_config_path() -> Path:
    """Default config location under the XDG config directory."""
    return Path.home() / ".config" / "envsync" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path.

    Priority order:
    1. ENVSYNC_CONFIG environment variable (allows override)
    2. User preference (stored in ~/.config/envsync/preferences.json)
    3. Default location: ~/.config/envsync/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    # 1. Check environment override
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        config_path = Path(env_path)
        if config_path.exists():
            logger.info(f"Using config from {CONFIG_ENV_VAR}: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from {CONFIG_ENV_VAR} doesn't exist: {config_path}")

    # 2. Check user preference
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        else:
            logger.warning(f"Config path from preference doesn't exist: {config_path}")

    # 3. Check default location
    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    # Config not found - raise clear error with setup instructions
    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   envsync config set-path /path/to/your/config.yml\n\n"
        f"3. Set the {CONFIG_ENV_VAR} environment variable\n"
    )


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def _validate_authentication(auth: Any, config_path: str) -> None:
    if not isinstance(auth, dict):
        raise ConfigError(f"'authentication' section in {config_path} must be a mapping")

    if 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] != 'service_account':
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'service_account' is supported."
        )

    if 'service_account_path' not in auth:
        raise ConfigError(
            "Missing 'authentication.service_account_path' in config\n"
            "Please specify the absolute path to your service account JSON file."
        )

    service_account_path = auth['service_account_path']

    if not os.path.exists(service_account_path):
        raise ConfigError(
            f"Service account file not found at: {service_account_path}\n"
            f"Please ensure the file exists or update the path in {config_path}"
        )

    if not os.path.isfile(service_account_path):
        raise ConfigError(
            f"Service account path is not a file: {service_account_path}"
        )


def _validate_environments(environments: Any, config_path: str) -> None:
    if not isinstance(environments, list) or not environments:
        raise ConfigError(
            f"'environments' in {config_path} must be a non-empty list\n"
            f"Required format:\n"
            f"environments:\n"
            f"  - id: prod\n"
            f"    name: Production\n"
            f"    store: gcp://my-prod-project"
        )

    seen = set()
    for index, env in enumerate(environments):
        if not isinstance(env, dict):
            raise ConfigError(f"Environment #{index + 1} must be a mapping")
        for key in ('id', 'store'):
            if not env.get(key):
                raise ConfigError(f"Missing 'environments[{index}].{key}' in config")
        env_id = str(env['id'])
        if env_id in seen:
            raise ConfigError(f"Duplicate environment id '{env_id}' in config")
        seen.add(env_id)


def _validate_copy(copy_section: Any) -> None:
    if not isinstance(copy_section, dict):
        raise ConfigError("'copy' section must be a mapping")
    max_concurrency = copy_section.get('max_concurrency', DEFAULT_MAX_CONCURRENCY)
    if isinstance(max_concurrency, bool) or not isinstance(max_concurrency, int) or max_concurrency < 1:
        raise ConfigError(f"'copy.max_concurrency' must be a positive integer, got: {max_concurrency!r}")


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys:
        - environments: list of dicts with id, name and store locator
        - authentication: optional dict with type and service_account_path
        - copy: dict with max_concurrency
        - logging: dict with level

    Raises:
        ConfigError: If config file is invalid or service account file doesn't exist
        FileNotFoundError: If no config file can be located
    """
    # Get config path dynamically each time (not cached at module level)
    config_path = _get_config_path()

    # Load YAML
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except Exception as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    # Validate required fields
    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    if 'environments' not in config:
        raise ConfigError(f"Missing 'environments' section in config at {config_path}")

    _validate_environments(config['environments'], config_path)

    if 'authentication' in config:
        _validate_authentication(config['authentication'], config_path)

    config.setdefault('copy', {})
    _validate_copy(config['copy'])
    config['copy'].setdefault('max_concurrency', DEFAULT_MAX_CONCURRENCY)

    config.setdefault('logging', {})
    config['logging'].setdefault('level', DEFAULT_LOG_LEVEL)

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Configured environments: {[env['id'] for env in config['environments']]}")

    return config
