"""Configuration loader for toolscope.

Grouping settings are read from the ``virtual_tools`` section of a YAML file
and can be overridden per field with ``TOOLSCOPE_*`` environment variables.
Resolution order (highest first): environment, file, built-in defaults.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from toolscope.config.validator import describe_config_errors
from toolscope.lib.errors import ConfigError
from toolscope.lib.virtual_tools.models import VirtualToolsConfig

logger = logging.getLogger(__name__)

CONFIG_SECTION = "virtual_tools"

# Environment variable to field name mapping
ENV_VAR_MAP = {
    "start_grouping_after_tool_count": "TOOLSCOPE_START_GROUPING_AFTER_TOOL_COUNT",
    "min_toolset_size_to_group": "TOOLSCOPE_MIN_TOOLSET_SIZE_TO_GROUP",
    "group_within_toolset": "TOOLSCOPE_GROUP_WITHIN_TOOLSET",
    "max_categorization_retries": "TOOLSCOPE_MAX_CATEGORIZATION_RETRIES",
    "uncategorized_tools_group_name": "TOOLSCOPE_UNCATEGORIZED_TOOLS_GROUP_NAME",
    "expand_until_count": "TOOLSCOPE_EXPAND_UNTIL_COUNT",
    "hard_tool_limit": "TOOLSCOPE_HARD_TOOL_LIMIT",
    "embedding_ranking_enabled": "TOOLSCOPE_EMBEDDING_RANKING_ENABLED",
    "predicted_tool_count": "TOOLSCOPE_PREDICTED_TOOL_COUNT",
    "embedding_type": "TOOLSCOPE_EMBEDDING_TYPE",
}

_INT_FIELDS = {
    "start_grouping_after_tool_count",
    "min_toolset_size_to_group",
    "group_within_toolset",
    "max_categorization_retries",
    "expand_until_count",
    "hard_tool_limit",
    "predicted_tool_count",
}
_BOOL_FIELDS = {"embedding_ranking_enabled"}


def _parse_env_value(field_name: str, value: str) -> Any:
    """Parse environment variable value to appropriate type.

    Args:
        field_name: Name of the field (used to determine type)
        value: String value from environment variable

    Returns:
        Parsed value in correct type (int, bool, or str)

    Raises:
        ValueError: If value cannot be parsed
    """
    if field_name in _INT_FIELDS:
        return int(value)
    elif field_name in _BOOL_FIELDS:
        return value.lower() in ("true", "1", "yes", "on")
    else:
        return value


def _env_overrides(env_vars: Mapping[str, str]) -> dict[str, Any]:
    """Collect field overrides from environment variables.

    Raises:
        ConfigError: If a variable holds a value of the wrong type.
    """
    overrides: dict[str, Any] = {}
    for field_name, env_var_name in ENV_VAR_MAP.items():
        if env_var_name not in env_vars:
            continue
        try:
            overrides[field_name] = _parse_env_value(field_name, env_vars[env_var_name])
        except ValueError as e:
            raise ConfigError(
                field_name,
                f"Invalid value in {env_var_name}: {env_vars[env_var_name]!r}",
            ) from e
    return overrides


def _read_config_section(path: Path) -> dict[str, Any]:
    """Read the ``virtual_tools`` section of a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed.
    """
    if not path.exists():
        raise ConfigError("path", f"Configuration file not found: {path}")

    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError("path", f"Failed to parse YAML file {path}: {e}") from e
    except OSError as e:
        raise ConfigError("path", f"Failed to read {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError("path", f"Expected a mapping at the top of {path}")

    section = content.get(CONFIG_SECTION) or {}
    if not isinstance(section, dict):
        raise ConfigError(CONFIG_SECTION, "Section must be a mapping")
    return dict(section)


def load_virtual_tools_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> VirtualToolsConfig:
    """Load grouping configuration.

    Args:
        path: Optional YAML file containing a ``virtual_tools`` section.
        env: Environment mapping; defaults to ``os.environ``.

    Returns:
        Validated VirtualToolsConfig.

    Raises:
        ConfigError: If the file or environment holds invalid settings.
    """
    data: dict[str, Any] = {}
    origins: dict[str, str] = {}
    if path is not None:
        section = _read_config_section(Path(path))
        data.update(section)
        origins.update({name: f"{CONFIG_SECTION}.{name} in {path}" for name in section})
        logger.debug(f"Loaded virtual tools configuration from {path}")

    overrides = _env_overrides(os.environ if env is None else env)
    if overrides:
        logger.debug(f"Applying environment overrides: {sorted(overrides)}")
    data.update(overrides)
    origins.update({name: ENV_VAR_MAP[name] for name in overrides})

    try:
        return VirtualToolsConfig(**data)
    except PydanticValidationError as e:
        messages = describe_config_errors(e, origins, CONFIG_SECTION)
        raise ConfigError(CONFIG_SECTION, "\n".join(messages)) from e
