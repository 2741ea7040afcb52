"""
config.py - Configuration management for ghaudit

This module handles loading, validating, and managing configuration for the
ghaudit tool. Configuration files are YAML; every rule can be switched on
or off by its id, its severity can be overridden, and some rules accept
extra options under the ``rules`` section.
"""

import copy
import logging
import os
from typing import Any, Dict, List, Optional, cast

import yaml

from .scanner import Severity

logger = logging.getLogger(__name__)

RULE_IDS = [
    "anonymous_jobs",
    "artifact_security",
    "bot_conditions",
    "cache_poisoning",
    "dangerous_triggers",
    "excessive_permissions",
    "forbidden_uses",
    "github_env",
    "hardcoded_credentials",
    "insecure_commands",
    "missing_timeout",
    "obfuscation",
    "ref_version_mismatch",
    "secrets_inherit",
    "self_hosted_runner",
    "template_injection",
    "trusted_publishing",
    "unpinned_actions",
    "unpinned_docker_images",
]

DEFAULT_CONFIG: Dict[str, Any] = {
    **{rule_id: True for rule_id in RULE_IDS},
    "severity_thresholds": {},
    "rules": {
        "forbidden_uses": {
            "additional_dangerous_actions": [],
            "additional_suspicious_patterns": [],
        },
    },
    "report": {
        "include_remediation": True,
        "show_context": True,
        "color_output": True,
        "verbose": False,
        "summary": True,
    },
}

SECTIONS = {"severity_thresholds", "rules", "report"}

RULE_LIST_OPTIONS = {
    "forbidden_uses": {"additional_dangerous_actions", "additional_suspicious_patterns"},
}


class ConfigurationError(Exception):
    """Exception raised for configuration errors"""

    pass


def get_config_paths() -> List[str]:
    """
    Get list of possible config file locations in priority order

    Returns:
        List of config file paths to check
    """
    paths = []

    paths.append(os.path.join(os.getcwd(), "ghaudit.yml"))
    paths.append(os.path.join(os.getcwd(), "ghaudit.yaml"))
    paths.append(os.path.join(os.getcwd(), ".ghaudit.yml"))
    paths.append(os.path.join(os.getcwd(), ".ghaudit.yaml"))

    home_dir = os.path.expanduser("~")
    paths.append(os.path.join(home_dir, ".ghaudit.yml"))
    paths.append(os.path.join(home_dir, ".ghaudit.yaml"))
    paths.append(os.path.join(home_dir, ".config", "ghaudit", "config.yml"))
    paths.append(os.path.join(home_dir, ".config", "ghaudit", "config.yaml"))

    return paths


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two config dictionaries

    Args:
        base: Base configuration
        override: Configuration to override base

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, override_value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(override_value, dict):
            result[key] = merge_configs(result[key], override_value)
        else:
            result[key] = override_value

    return result


def _serialize_enums(obj: Any) -> Any:
    """Recursively convert Enum values to their underlying value for YAML output."""
    if isinstance(obj, dict):
        return {k: _serialize_enums(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_serialize_enums(v) for v in obj]
    if isinstance(obj, Severity):
        return obj.value
    return obj


def _validate_severity_thresholds(config: Dict[str, Any]) -> None:
    """Validate severity overrides and normalise them to Severity members"""

    if "severity_thresholds" not in config:
        return

    if not isinstance(config["severity_thresholds"], dict):
        raise ConfigurationError("'severity_thresholds' must be a dictionary")

    for rule, severity in list(config["severity_thresholds"].items()):
        if rule not in RULE_IDS:
            raise ConfigurationError(f"Unknown rule '{rule}' in 'severity_thresholds'")
        try:
            value = severity.upper() if isinstance(severity, str) else severity
            config["severity_thresholds"][rule] = Severity(value)
        except ValueError:
            valid = ", ".join(level.value for level in Severity)
            raise ConfigurationError(
                f"Invalid severity '{severity}' for rule '{rule}'. Must be one of: {valid}"
            )


def _validate_rule_options(config: Dict[str, Any]) -> None:
    """Validate the per-rule ``rules`` section"""

    if "rules" not in config:
        return

    if not isinstance(config["rules"], dict):
        raise ConfigurationError("'rules' must be a dictionary")

    for rule, options in config["rules"].items():
        if rule not in RULE_IDS:
            raise ConfigurationError(f"Unknown rule '{rule}' in 'rules'")
        if not isinstance(options, dict):
            raise ConfigurationError(f"'rules.{rule}' must be a dictionary")

        allowed = RULE_LIST_OPTIONS.get(rule, set())
        for name, value in options.items():
            if name not in allowed:
                raise ConfigurationError(f"Unknown option 'rules.{rule}.{name}'")
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError(f"'rules.{rule}.{name}' must be a list of strings")
            if any(not v.strip() for v in value):
                raise ConfigurationError(f"'rules.{rule}.{name}' must not contain empty entries")


def _validate_report(config: Dict[str, Any]) -> None:
    """Validate report display options"""

    if "report" not in config:
        return

    if not isinstance(config["report"], dict):
        raise ConfigurationError("'report' must be a dictionary")

    for option, value in config["report"].items():
        if option not in DEFAULT_CONFIG["report"]:
            raise ConfigurationError(f"Unknown report option '{option}'")
        if not isinstance(value, bool):
            raise ConfigurationError(f"'report.{option}' must be a boolean")


def validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration structure and values"""

    for key in config.keys():
        if key not in RULE_IDS and key not in SECTIONS:
            raise ConfigurationError(f"Unknown configuration option '{key}'")

    for rule_id in RULE_IDS:
        if rule_id in config and not isinstance(config[rule_id], bool):
            raise ConfigurationError(f"Rule '{rule_id}' must be a boolean (true/false)")

    _validate_severity_thresholds(config)
    _validate_rule_options(config)
    _validate_report(config)


def _read_config_file(path: str) -> Optional[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        user_config = yaml.safe_load(f)

    if user_config is None:
        return None
    if not isinstance(user_config, dict):
        raise ConfigurationError(f"Configuration in {path} must be a mapping")
    return cast(Dict[str, Any], user_config)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file or use defaults

    Args:
        config_path: Path to configuration file, or None to auto-detect

    Returns:
        Loaded configuration dictionary

    Raises:
        ConfigurationError: If configuration file is invalid
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path:
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        candidates = [config_path]
    else:
        candidates = [path for path in get_config_paths() if os.path.exists(path)]

    for path in candidates[:1]:
        try:
            user_config = _read_config_file(path)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML configuration: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration: {e}")

        logger.debug("Loaded configuration from %s", path)
        if user_config:
            validate_config(user_config)
            config = merge_configs(config, user_config)

    return config


def save_config(config: Dict[str, Any], config_path: str) -> None:
    """
    Save configuration to file

    Args:
        config: Configuration dictionary to save
        config_path: Path to save configuration to

    Raises:
        ConfigurationError: If configuration cannot be saved
    """
    try:
        os.makedirs(os.path.dirname(os.path.abspath(config_path)), exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(_serialize_enums(config), f, default_flow_style=False, sort_keys=False)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Error saving configuration: {e}")


def generate_default_config(output_path: Optional[str] = None) -> str:
    """
    Generate default configuration YAML

    Args:
        output_path: Path to save default configuration to, or None to return as string

    Returns:
        Default configuration YAML

    Raises:
        ConfigurationError: If configuration cannot be saved
    """
    default_config_yaml = cast(
        str,
        yaml.safe_dump(_serialize_enums(DEFAULT_CONFIG), default_flow_style=False, sort_keys=False),
    )

    if output_path:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)

            with open(output_path, "w", encoding="utf-8") as f:
                f.write(default_config_yaml)
        except OSError as e:
            raise ConfigurationError(f"Error saving default configuration: {e}")

    return default_config_yaml


def disable_rules(config: Dict[str, Any], rules: List[str]) -> Dict[str, Any]:
    """
    Disable specific rules in a configuration

    Args:
        config: Configuration dictionary
        rules: List of rule IDs to disable

    Returns:
        Updated configuration dictionary

    Raises:
        ConfigurationError: If a rule ID is unknown
    """
    updated_config = config.copy()

    for rule in rules:
        if rule not in RULE_IDS:
            raise ConfigurationError(f"Unknown rule '{rule}'")
        updated_config[rule] = False

    return updated_config
