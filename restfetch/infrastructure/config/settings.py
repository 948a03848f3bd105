"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a YAML file
(~/.restfetch/config.yaml). Values are looked up by dotted key, e.g.
'cache.ttl_seconds', which maps to the env var RESTFETCH_CACHE_TTL_SECONDS.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from restfetch import __version__

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".restfetch"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "RESTFETCH_"

# --- Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values supplied by the caller

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False keeps real environment variables on top
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _env_name(key: str) -> str:
    return ENV_PREFIX + key.upper().replace(".", "_")


def _coerce(value: str) -> Any:
    """Converts common string forms from the environment."""
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key.

    Priority:
    1. Test configuration (if set)
    2. Environment variable (RESTFETCH_ + key upper-cased, dots to underscores)
    3. YAML config
    4. Default value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = _env_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the current process."""
    logger.debug(f"Setting config: {key}")
    _config[key] = value


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_api_token() -> Optional[str]:
    """Returns the bearer token from RESTFETCH_API_TOKEN, GITHUB_TOKEN or api.token.

    Environment variables win over the config files.
    """
    token = (
        os.environ.get(_env_name("api.token"))
        or os.environ.get("GITHUB_TOKEN")
        or get_config("api.token")
    )
    return str(token) if token else None


@dataclass(frozen=True)
class ClientSettings:
    """Resolved settings for one client session."""
    base_url: str = "https://api.github.com"
    timeout_seconds: float = 10.0
    per_page: int = 30
    max_page_size: int = 100
    max_pages: Optional[int] = None
    cache_ttl_seconds: float = 300.0
    max_attempts: int = 2
    max_rate_limit_waits: int = 3
    backoff_seconds: float = 1.0
    user_agent: str = f"restfetch/{__version__}"
    accept: str = "application/vnd.github+json"

    def __post_init__(self):
        if not 1 <= self.per_page <= self.max_page_size:
            raise ValueError(f"per_page must be between 1 and {self.max_page_size}")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


def load_client_settings(**overrides: Any) -> ClientSettings:
    """Builds ClientSettings from configuration, applying explicit overrides."""
    load_configuration()
    defaults = ClientSettings()
    max_pages = get_config("pagination.max_pages", defaults.max_pages)
    values: Dict[str, Any] = {
        "base_url": str(get_config("api.base_url", defaults.base_url)),
        "timeout_seconds": float(get_config("http.timeout_seconds", defaults.timeout_seconds)),
        "per_page": int(get_config("pagination.per_page", defaults.per_page)),
        "max_page_size": int(get_config("pagination.max_page_size", defaults.max_page_size)),
        "max_pages": int(max_pages) if max_pages else None,
        "cache_ttl_seconds": float(get_config("cache.ttl_seconds", defaults.cache_ttl_seconds)),
        "max_attempts": int(get_config("retry.max_attempts", defaults.max_attempts)),
        "max_rate_limit_waits": int(get_config("retry.max_rate_limit_waits", defaults.max_rate_limit_waits)),
        "backoff_seconds": float(get_config("retry.backoff_seconds", defaults.backoff_seconds)),
        "user_agent": str(get_config("http.user_agent", defaults.user_agent)),
        "accept": str(get_config("http.accept", defaults.accept)),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ClientSettings(**values)


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Overrides configuration values for tests."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {sorted(config_dict)}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
