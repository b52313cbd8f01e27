"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with QUIRE_ prefix
3. .env file named by QUIRE_ENV_FILE (if set)
4. Layered YAML config files:
   - Project config: .quire/config.yaml (highest)
   - User config: ~/.config/quire/config.yaml

Nested config uses double underscore delimiter:
  QUIRE_LAYOUT__COMMANDS_DIR=prompts
  QUIRE_BEHAVIOR__STRICT_REFERENCES=true
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import quire.config.sources as sources
import quire.config.types as types

# Directory entries that mark a project root, checked in order
PROJECT_MARKERS = (sources.PROJECT_CONFIG_DIR, ".git", "pyproject.toml")


def _get_env_file() -> str | None:
    """Return QUIRE_ENV_FILE if it names an existing file."""
    if env_file := _os.environ.get("QUIRE_ENV_FILE"):
        if _pathlib.Path(env_file).exists():
            return env_file
    return None


def find_project_root(start_path: _pathlib.Path | None = None) -> _pathlib.Path:
    """
    Find the project root directory.

    Walks up from start_path looking for .quire/, .git or pyproject.toml.
    Falls back to the start path (default: cwd) when none is found.
    """
    if start_path is None:
        start_path = _pathlib.Path.cwd()

    current = start_path.resolve()
    while True:
        for marker in PROJECT_MARKERS:
            if (current / marker).exists():
                return current
        if current == current.parent:
            break
        current = current.parent

    return start_path.resolve()


class Settings(_pydantic_settings.BaseSettings):
    """
    Quire configuration settings.

    All settings can be overridden via environment variables with QUIRE_ prefix.
    For nested config, use double underscore: QUIRE_LAYOUT__SKILLS_DIR=guides
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="QUIRE_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="allow",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args) - highest
        2. env_settings (QUIRE_* env vars)
        3. dotenv_settings (.env file)
        4. YAML config files (project, then user)
        5. (defaults via Field definitions) - lowest
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            sources.YamlSettingsSource(settings_cls, find_project_root()),
            file_secret_settings,
        )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings without loading a .env file (for test isolation)."""
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    root: str | None = _pydantic.Field(
        default=None,
        description="Template root directory (default: current directory)",
    )

    layout: types.LayoutConfig = _pydantic.Field(default_factory=types.LayoutConfig)
    """Template tree layout."""

    behavior: types.BehaviorConfig = _pydantic.Field(default_factory=types.BehaviorConfig)
    """Loading and checking behavior."""

    logging: types.LoggingConfig = _pydantic.Field(default_factory=types.LoggingConfig)
    """Logging settings."""

    @property
    def template_root(self) -> _pathlib.Path:
        """Template root as a path, with ~ expanded."""
        if self.root:
            return _pathlib.Path(_os.path.expanduser(self.root))
        return _pathlib.Path.cwd()

    @property
    def config_dir(self) -> _pathlib.Path:
        """User configuration directory (~/.config/quire/)."""
        return sources.get_user_config_dir()

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Get unknown fields at the top level of Settings."""
        return dict(self.model_extra) if self.model_extra else {}

    def collect_all_extra_fields(self) -> dict[str, _typing.Any]:
        """
        Recursively collect all unknown fields, keyed by dotted path.

        Use this to audit config files for typos.
        """
        result = self.get_extra_fields()
        for field_name in ("layout", "behavior", "logging"):
            nested: types.ConfigBase = getattr(self, field_name)
            result.update(nested.collect_all_extra_fields(prefix=field_name))
        return result

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert settings to dictionary (for JSON output)."""
        return {
            "root": str(self.template_root),
            "config_dir": str(self.config_dir),
            "layout": self.layout.model_dump(),
            "behavior": self.behavior.model_dump(),
            "logging": self.logging.model_dump(),
            "unknown_fields": self.collect_all_extra_fields(),
        }
