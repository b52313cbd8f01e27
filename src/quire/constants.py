"""
Shared constants for Quire.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Template tree layout
DEFAULT_COMMANDS_DIR = "commands"
"""Subdirectory of the template root holding slash command templates."""

DEFAULT_SKILLS_DIR = "skills"
"""Subdirectory of the template root holding skills."""

DEFAULT_SKILL_FILE = "SKILL.md"
"""File name of a skill definition inside a skill directory."""

TEMPLATE_SUFFIX = ".md"
"""Suffix of template files."""

# Template kinds
KIND_COMMAND = "command"
KIND_SKILL = "skill"
TEMPLATE_KINDS = (KIND_COMMAND, KIND_SKILL)

# Naming
NAMESPACE_SEPARATOR = ":"
"""Joins nested directory segments in a template name (git/pr.md -> git:pr)."""

# Body size
DEFAULT_BODY_SOFT_LIMIT = 500
"""Bodies longer than this many lines are loaded with a warning."""

# Positional argument placeholders run from $1 to $9
MAX_POSITIONAL_ARGUMENTS = 9
