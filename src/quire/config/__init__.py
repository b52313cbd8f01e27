"""
Configuration module for Quire.

Uses pydantic-settings for environment variable and YAML file loading.
"""

from quire.config.settings import Settings, find_project_root
from quire.config.sources import ConfigFileError

__all__ = ["ConfigFileError", "Settings", "find_project_root"]
