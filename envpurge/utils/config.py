"""
Configuration loading for envpurge
Reads optional YAML overrides for the cleanup settings
"""
import re
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from envpurge.core.exceptions import ConfigurationError
from envpurge.core.models import CleanupConfig, RedactionRule

_FIELD_NAMES = {f.name for f in fields(CleanupConfig)}


def _parse_rules(raw: Any) -> tuple:
    """Turn a YAML list of {pattern, replacement} mappings into rules"""
    if not isinstance(raw, list) or not raw:
        raise ConfigurationError("'rules' must be a non-empty list")

    rules = []
    for index, item in enumerate(raw, 1):
        if not isinstance(item, dict) or "pattern" not in item or "replacement" not in item:
            raise ConfigurationError(f"Rule {index} needs 'pattern' and 'replacement'")
        pattern = str(item["pattern"])
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"Rule {index} has an invalid regex: {e}")
        rules.append(RedactionRule(pattern=pattern, replacement=str(item["replacement"])))
    return tuple(rules)


def config_from_dict(data: Dict[str, Any]) -> CleanupConfig:
    """
    Build a CleanupConfig from a plain mapping.

    Args:
        data: Keys named after CleanupConfig fields

    Returns:
        CleanupConfig with defaults for missing keys

    Raises:
        ConfigurationError: On unknown keys or malformed values
    """
    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        raise ConfigurationError(f"Invalid config key(s): {', '.join(unknown)}")

    values = dict(data)
    if "rules" in values:
        values["rules"] = _parse_rules(values["rules"])
    if "residual_markers" in values:
        markers = values["residual_markers"]
        if not isinstance(markers, list) or not markers:
            raise ConfigurationError("'residual_markers' must be a non-empty list")
        if not all(isinstance(m, str) and m for m in markers):
            raise ConfigurationError("'residual_markers' must be a list of non-empty strings")
        values["residual_markers"] = tuple(markers)

    return CleanupConfig(**values)


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> CleanupConfig:
    """
    Load settings from an optional YAML file and apply overrides.

    Args:
        config_path: YAML file with CleanupConfig keys (None for defaults)
        **overrides: Field values that win over the file; None is ignored

    Returns:
        Resolved CleanupConfig
    """
    data: Dict[str, Any] = {}

    if config_path is not None:
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config file: {e}")
        if not isinstance(loaded, dict):
            raise ConfigurationError("Config file must contain a mapping")
        data.update(loaded)

    data.update({key: value for key, value in overrides.items() if value is not None})
    return config_from_dict(data)
