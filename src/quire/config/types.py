"""Configuration type definitions for Quire settings.

These are the "config section" models nested within the main Settings
class:
- LayoutConfig: subdirectory and file names of the template tree
- BehaviorConfig: body soft limit, strict reference checking
- LoggingConfig: log level

All types use `extra="allow"` to preserve unknown fields, so a config
file can be audited for typos with collect_all_extra_fields().
"""

import typing as _typing

import pydantic as _pydantic

import quire.constants as constants

# =============================================================================
# Base class with introspection
# =============================================================================


class ConfigBase(_pydantic.BaseModel):
    """
    Base class for all config types.

    Unknown fields are preserved rather than silently dropped.
    """

    model_config = _pydantic.ConfigDict(extra="allow")

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Return fields that were provided but are not in the schema."""
        return dict(self.model_extra) if self.model_extra else {}

    def collect_all_extra_fields(
        self,
        prefix: str = "",
    ) -> dict[str, _typing.Any]:
        """
        Recursively collect extra fields from this config and nested configs.

        Returns a flat dict with dotted paths as keys, e.g.:
            {"layout.comands_dir": "cmds"}
        """
        result: dict[str, _typing.Any] = {}

        for key, value in self.get_extra_fields().items():
            path = f"{prefix}.{key}" if prefix else key
            result[path] = value

        for field_name in self.__class__.model_fields:
            value = getattr(self, field_name, None)
            if isinstance(value, ConfigBase):
                child_prefix = f"{prefix}.{field_name}" if prefix else field_name
                result.update(value.collect_all_extra_fields(child_prefix))

        return result


# =============================================================================
# Layout Settings
# =============================================================================


class LayoutConfig(ConfigBase):
    """
    Template tree layout.

    YAML section: layout.*
    """

    commands_dir: str = _pydantic.Field(default=constants.DEFAULT_COMMANDS_DIR, min_length=1)
    """Subdirectory holding command templates."""

    skills_dir: str = _pydantic.Field(default=constants.DEFAULT_SKILLS_DIR, min_length=1)
    """Subdirectory holding skills."""

    skill_file: str = _pydantic.Field(default=constants.DEFAULT_SKILL_FILE, min_length=1)
    """Skill definition file inside a skill directory."""


# =============================================================================
# Behavior Settings
# =============================================================================


class BehaviorConfig(ConfigBase):
    """
    Loading and checking behavior.

    YAML section: behavior.*
    """

    body_soft_limit: int = _pydantic.Field(default=constants.DEFAULT_BODY_SOFT_LIMIT, ge=1)
    """Warn when a template body exceeds this many lines."""

    strict_references: bool = False
    """Fail `quire render` when the template has broken references."""


# =============================================================================
# Logging Settings
# =============================================================================


class LoggingConfig(ConfigBase):
    """
    Logging settings.

    YAML section: logging.*
    """

    level: _typing.Literal["debug", "info", "warning", "error"] = "warning"
    """Log level for the CLI."""
