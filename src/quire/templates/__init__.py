"""
Template store for slash commands and skills.

Templates are Markdown files with an optional YAML metadata header.
They are loaded from a root directory:

- commands/ - slash command templates (nested directories namespace names)
- skills/   - skills, either skills/<name>/SKILL.md or skills/<name>.md

Loaded templates can be interpolated with runtime values and their
cross-references followed.
"""

from quire.templates.errors import (
    DuplicateNameError,
    InvalidTemplateError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRootNotFoundError,
)
from quire.templates.placeholders import (
    Placeholder,
    argument_values,
    find_placeholders,
    interpolate,
    unresolved,
)
from quire.templates.references import (
    BrokenReference,
    BrokenReferenceError,
    ReferenceResolution,
    find_broken_references,
    resolve_references,
    walk_references,
)
from quire.templates.store import LoadIssue, TemplateStore, load_store
from quire.templates.template import (
    Skill,
    Template,
    TemplateHeader,
    load_template,
    normalize_name,
    parse_template,
    split_qualifier,
)

__all__ = [
    # Core
    "Template",
    "Skill",
    "TemplateHeader",
    # Parsing
    "load_template",
    "normalize_name",
    "parse_template",
    "split_qualifier",
    # Store
    "LoadIssue",
    "TemplateStore",
    "load_store",
    # Interpolation
    "Placeholder",
    "argument_values",
    "find_placeholders",
    "interpolate",
    "unresolved",
    # References
    "BrokenReference",
    "BrokenReferenceError",
    "ReferenceResolution",
    "find_broken_references",
    "resolve_references",
    "walk_references",
    # Errors
    "DuplicateNameError",
    "InvalidTemplateError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRootNotFoundError",
]
