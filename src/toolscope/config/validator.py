"""Readable messages for invalid grouping settings.

Settings are merged from a YAML file and ``TOOLSCOPE_*`` environment
variables before validation, so each message names the setting together with
the place its value was read from.
"""

from collections.abc import Mapping

from pydantic import ValidationError as PydanticValidationError


def describe_setting(field_name: str, origins: Mapping[str, str]) -> str:
    """Label a setting with the source of its value, if known."""
    origin = origins.get(field_name)
    return f"{field_name} (from {origin})" if origin else field_name


def describe_config_errors(
    exc: PydanticValidationError,
    origins: Mapping[str, str] | None = None,
    section: str = "virtual_tools",
) -> list[str]:
    """Turn a VirtualToolsConfig validation failure into one line per problem.

    Args:
        exc: Validation error raised while building the configuration.
        origins: Maps field names to where their values came from, such as
            ``TOOLSCOPE_HARD_TOOL_LIMIT`` or ``virtual_tools.hard_tool_limit
            in toolscope.yaml``.
        section: Label used for errors that are not tied to a single field.

    Returns:
        Human-readable messages.
    """
    origins = origins or {}
    messages: list[str] = []

    for error in exc.errors():
        loc = error.get("loc", ())
        msg = error.get("msg", "Unknown error")

        if not loc:
            # Cross-field checks report the whole model.
            messages.append(f"{section}: {msg}")
            continue

        field_name = str(loc[0])
        label = describe_setting(field_name, origins)
        if error.get("type") == "extra_forbidden":
            messages.append(f"{label}: unknown setting")
        elif "input" in error:
            messages.append(f"{label}: {msg} (received: {error['input']!r})")
        else:
            messages.append(f"{label}: {msg}")

    return messages or [f"{section}: validation failed"]
