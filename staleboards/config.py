"""
Handles loading and validation of configuration settings.

Configuration is merged from three layers, later layers winning:
1. Built-in defaults (DEFAULT_CONFIG_STRUCTURE)
2. An optional config.yaml file
3. Environment variables, including any defined in a .env file

Unlike a process-wide settings dict, the merged configuration is returned to
the caller, validated once, and turned into an immutable AuditConfig that is
handed to every component that needs it.

Key components:
- load_app_config: Loads and merges configuration from all sources
- get_config_value: Retrieves a value from a merged config using dot notation
- validate_config: Checks presence and types, raising ConfigError
- build_audit_config: Produces the AuditConfig used by the rest of the tool
"""

import copy
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dotenv import find_dotenv, load_dotenv

from staleboards.errors import ConfigError

logger = logging.getLogger(__name__)

__all__ = [
    "AuditConfig",
    "load_app_config",
    "get_config_value",
    "validate_config",
    "build_audit_config",
]

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_BASE_URL = "https://api.trello.com/1"
# 90 days
DEFAULT_STALE_AFTER_HOURS = 2160
# Membership bookkeeping, not board usage: granting admin and adding a member.
DEFAULT_IGNORED_ACTION_TYPES = ["makeAdminOfBoard", "addMemberToBoard"]

DEFAULT_CONFIG_STRUCTURE: Dict[str, Dict[str, Any]] = {
    "app_settings": {
        "debug_mode": False,
        "log_level": "WARNING",
        "log_file_name": None,
    },
    "trello": {
        "key": None,  # Secret
        "token": None,  # Secret
        "org": None,
        "base_url": DEFAULT_BASE_URL,
        "request_timeout": None,
    },
    "audit_settings": {
        "stale_after_hours": DEFAULT_STALE_AFTER_HOURS,
        "ignored_action_types": list(DEFAULT_IGNORED_ACTION_TYPES),
        "progress_marker": ".",
    },
}

# (type, is_required, default_value)
EXPECTED_CONFIG: Dict[str, Tuple[type, bool, Any]] = {
    "app_settings.debug_mode": (bool, False, False),
    "app_settings.log_level": (str, False, "WARNING"),
    "app_settings.log_file_name": (str, False, None),
    "trello.key": (str, True, None),
    "trello.token": (str, True, None),
    "trello.org": (str, True, None),
    "trello.base_url": (str, False, DEFAULT_BASE_URL),
    "trello.request_timeout": (int, False, None),
    "audit_settings.stale_after_hours": (int, False, DEFAULT_STALE_AFTER_HOURS),
    "audit_settings.ignored_action_types": (
        list,
        False,
        DEFAULT_IGNORED_ACTION_TYPES,
    ),
    "audit_settings.progress_marker": (str, False, "."),
}

# Extra environment names accepted for a key, checked after SECTION_KEY.
# KEY/TOKEN/ORG are the names the tool has always been run with.
ENV_VAR_ALIASES: Dict[str, List[str]] = {
    "trello.key": ["KEY"],
    "trello.token": ["TOKEN"],
    "trello.org": ["ORG"],
}

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass(frozen=True)
class AuditConfig:
    """Settings for one audit run, built once at startup."""

    api_key: str
    api_token: str
    org: str
    base_url: str = DEFAULT_BASE_URL
    request_timeout: Optional[int] = None
    stale_after_hours: int = DEFAULT_STALE_AFTER_HOURS
    ignored_action_types: Tuple[str, ...] = tuple(DEFAULT_IGNORED_ACTION_TYPES)
    progress_marker: str = "."
    debug_mode: bool = False
    log_level: str = "WARNING"
    log_file_name: Optional[str] = None


def _load_yaml_config(path: str) -> Dict[str, Any]:
    """Loads configuration from a YAML file. A missing file is not an error."""
    if not os.path.exists(path):
        logger.debug(
            f"YAML configuration file not found at {path}; using defaults and environment variables."
        )
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    if yaml_config is None:
        return {}
    if not isinstance(yaml_config, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    logger.info(f"Successfully loaded configuration from {path}")
    return yaml_config


def _get_typed_env_var(key: str, default_value: Any, expected_type: type) -> Any:
    """Gets an environment variable and attempts to cast it to the expected type."""
    value = os.getenv(key)
    if value is None:
        return default_value

    try:
        if expected_type is bool:
            return value.lower() in ("true", "1", "t", "yes", "y")
        if expected_type is int:
            return int(value)
        if expected_type is list:  # Expect comma-separated string for lists from env
            return [item.strip() for item in value.split(",") if item.strip()]
        if expected_type is dict:
            return json.loads(value)
        return expected_type(value)
    except ValueError:
        logger.warning(
            f"Could not cast environment variable {key}='{value}' to {expected_type.__name__}. Using: {default_value}"
        )
        return default_value


def _merge_configs(
    yaml_config: Dict[str, Any], defaults: Dict[str, Dict[str, Any]]
) -> Dict[str, Any]:
    """Merges YAML config over the defaults, section by section."""
    merged_config: Dict[str, Any] = {}

    for section, section_defaults in defaults.items():
        merged_config[section] = copy.deepcopy(section_defaults)
        yaml_section = yaml_config.get(section, {})

        if isinstance(yaml_section, dict):
            for key, default_val in section_defaults.items():
                merged_config[section][key] = yaml_section.get(key, default_val)
        elif yaml_section is not None:
            merged_config[section] = yaml_section

    return merged_config


def _env_var_names(section_name: str, key_name: str) -> List[str]:
    path = f"{section_name}.{key_name}"
    return [f"{section_name.upper()}_{key_name.upper()}"] + ENV_VAR_ALIASES.get(
        path, []
    )


def _apply_env_vars_to_merged_config(
    config_dict: Dict[str, Any], defaults: Dict[str, Dict[str, Any]]
) -> None:
    """Applies environment variables to config_dict based on the default structure.

    Environment variables are named SECTION_KEY (e.g. AUDIT_SETTINGS_STALE_AFTER_HOURS=720).
    The first name that is set wins; see ENV_VAR_ALIASES for the short secret names.
    """
    for section_name, section_defaults in defaults.items():
        if not isinstance(config_dict.get(section_name), dict):
            config_dict[section_name] = {}
        for key_name, default_value in section_defaults.items():
            path = f"{section_name}.{key_name}"
            expected_type = EXPECTED_CONFIG.get(path, (str, False, None))[0]
            current_val_in_config = config_dict[section_name].get(
                key_name, default_value
            )

            for env_var_key in _env_var_names(section_name, key_name):
                if os.getenv(env_var_key) is None:
                    continue
                env_val = _get_typed_env_var(
                    env_var_key, current_val_in_config, expected_type
                )
                config_dict[section_name][key_name] = env_val
                logger.debug(
                    f"Applied environment variable '{env_var_key}' to '{path}'"
                )
                break


def load_app_config(
    path: str = DEFAULT_CONFIG_PATH, load_env_file: bool = True
) -> Dict[str, Any]:
    """
    Load application configuration from YAML and environment variables.

    Args:
        path: Location of the optional YAML file
        load_env_file: Whether to read a .env file into the environment first

    Returns:
        Dict[str, Any]: The merged configuration dictionary

    Raises:
        ConfigError: If the YAML file exists but cannot be parsed
    """
    if load_env_file:
        load_dotenv(find_dotenv(usecwd=True))

    yaml_config = _load_yaml_config(path)
    merged_config = _merge_configs(yaml_config, DEFAULT_CONFIG_STRUCTURE)
    _apply_env_vars_to_merged_config(merged_config, DEFAULT_CONFIG_STRUCTURE)

    logger.debug(f"Configuration loaded with {len(merged_config)} top-level keys.")
    return merged_config


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Retrieves a configuration value using dot notation path.

    Examples:
        >>> get_config_value({"trello": {"org": "acme"}}, "trello.org")
        'acme'
        >>> get_config_value({}, "nonexistent.path", "fallback")
        'fallback'
    """
    current: Any = config
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default
    return current


def _type_error(key: str, val: Any, p_type: type) -> str:
    return f"'{key}' (value: {val!r}, type: {type(val).__name__}) must be of type {p_type.__name__}"


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validates the merged configuration against expected types and requirements.

    Every problem is collected before raising, so one run reports all of them.

    Raises:
        ConfigError: If any required value is missing or any value is malformed
    """
    logger.info("Validating configuration...")
    errors: List[str] = []

    for key, (p_type, is_required, _default) in EXPECTED_CONFIG.items():
        val = get_config_value(config, key)

        if val is None or (p_type is str and is_required and not str(val).strip()):
            if is_required:
                errors.append(f"Required key '{key}' is missing or not set")
            continue

        # bool is a subclass of int
        if p_type is int and (isinstance(val, bool) or not isinstance(val, int)):
            errors.append(_type_error(key, val, p_type))
            continue
        if p_type in (str, bool, list) and not isinstance(val, p_type):
            errors.append(_type_error(key, val, p_type))
            continue

        if key == "app_settings.log_level" and val.upper() not in LOG_LEVELS:
            errors.append(f"'{key}' (value: {val}) must be one of {', '.join(LOG_LEVELS)}")
        elif key in ("audit_settings.stale_after_hours", "trello.request_timeout"):
            if val <= 0:
                errors.append(f"'{key}' (value: {val}) must be a positive integer")
        elif key == "audit_settings.ignored_action_types":
            if not all(isinstance(item, str) and item for item in val):
                errors.append(f"All items in '{key}' must be non-empty strings")
        elif key == "trello.base_url":
            if not (val.startswith("http://") or val.startswith("https://")):
                logger.warning(
                    f"Config Warning: Key '{key}' (value: {val}) does not appear to be a valid HTTP/HTTPS URL."
                )

    if errors:
        for error in errors:
            logger.critical(f"Config Error: {error}.")
        raise ConfigError("Invalid configuration: " + "; ".join(errors))
    logger.info("Configuration validated successfully.")


def build_audit_config(config: Dict[str, Any]) -> AuditConfig:
    """Validates config and returns the immutable settings for one run."""
    validate_config(config)
    return AuditConfig(
        api_key=get_config_value(config, "trello.key").strip(),
        api_token=get_config_value(config, "trello.token").strip(),
        org=get_config_value(config, "trello.org").strip(),
        base_url=get_config_value(config, "trello.base_url", DEFAULT_BASE_URL),
        request_timeout=get_config_value(config, "trello.request_timeout"),
        stale_after_hours=get_config_value(
            config, "audit_settings.stale_after_hours", DEFAULT_STALE_AFTER_HOURS
        ),
        ignored_action_types=tuple(
            get_config_value(
                config,
                "audit_settings.ignored_action_types",
                DEFAULT_IGNORED_ACTION_TYPES,
            )
        ),
        progress_marker=get_config_value(config, "audit_settings.progress_marker", "."),
        debug_mode=get_config_value(config, "app_settings.debug_mode", False),
        log_level=get_config_value(config, "app_settings.log_level", "WARNING").upper(),
        log_file_name=get_config_value(config, "app_settings.log_file_name"),
    )
