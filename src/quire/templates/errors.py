"""
Exceptions raised while loading and looking up templates.

Only a missing template root and a duplicate name abort a load.
Per-file problems are collected as LoadIssue values by the store, and
broken cross-references are collected by the resolver.
"""

from __future__ import annotations

import pathlib as _pathlib


class TemplateError(Exception):
    """Base class for template errors."""


class TemplateRootNotFoundError(TemplateError, FileNotFoundError):
    """Raised when the template root directory does not exist."""

    def __init__(self, root: _pathlib.Path) -> None:
        self.root = root
        super().__init__(f"Template root not found: {root}")


class DuplicateNameError(TemplateError):
    """Raised when two files in one collection resolve to the same name."""

    def __init__(
        self,
        name: str,
        kind: str,
        paths: tuple[_pathlib.Path, _pathlib.Path],
    ) -> None:
        self.name = name
        self.kind = kind
        self.paths = paths
        super().__init__(
            f"Duplicate {kind} name '{name}': {paths[0]} and {paths[1]}"
        )


class TemplateNotFoundError(TemplateError, KeyError):
    """Raised when a required template is not in the store."""

    def __init__(self, name: str, kind: str | None = None) -> None:
        self.name = name
        self.kind = kind
        super().__init__(name)

    def __str__(self) -> str:
        label = self.kind or "template"
        return f"No {label} named '{self.name}'"


class InvalidTemplateError(TemplateError, ValueError):
    """Raised when a template file cannot be parsed."""
