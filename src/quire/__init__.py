"""
Quire - template store for AI assistant slash commands and skills.

Loads Markdown prompt templates from a directory tree, fills in their
runtime placeholders, and follows the cross-references between them.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("quire")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)

from quire.config import Settings  # noqa: E402
from quire.templates import Skill, Template, TemplateStore, load_store  # noqa: E402

__all__ = [
    "__version__",
    "__version_info__",
    "Settings",
    "Skill",
    "Template",
    "TemplateStore",
    "load_store",
]
