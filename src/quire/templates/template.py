"""
Template definition and markdown parsing.

A template file is Markdown with an optional YAML metadata header:

    ---
    description: Create a pull request
    see-also: [commit]
    ---

    Body text with $ARGUMENTS and !`git status` placeholders.

The header is optional; a file without one is all body.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import datetime as _datetime
import logging as _logging
import pathlib as _pathlib
import re as _re
import types as _types
import typing as _typing

import pydantic as _pydantic
import yaml as _yaml

import quire.constants as constants
import quire.templates.errors as errors
import quire.templates.placeholders as placeholder_module

_logger = _logging.getLogger(__name__)

# Header must open on the first line; an empty header (---/---) is allowed
_FRONTMATTER_RE = _re.compile(
    r"^---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|$)(.*)\Z",
    _re.DOTALL,
)

# Inline wiki-style reference: [[name]] or [[name|label]]
_WIKI_LINK_RE = _re.compile(r"\[\[\s*([^\[\]|\n]+?)\s*(?:\|[^\]\n]*)?\]\]")

_SEGMENT_SPLIT_RE = _re.compile(r"[\\/:]+")
_SEPARATOR_RE = _re.compile(r"[\s_]+")
_DASHES_RE = _re.compile(r"-{2,}")

_REFERENCE_KEYS = ("references", "see-also")

_NUMERIC_TAGS = ("tag:yaml.org,2002:int", "tag:yaml.org,2002:float")


class _HeaderLoader(_yaml.SafeLoader):
    """SafeLoader that keeps numbers as written (version: 1.10 stays "1.10")."""


_HeaderLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _NUMERIC_TAGS]
    for first, resolvers in _yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def normalize_name(raw: str) -> str:
    """
    Normalize a template name.

    Lowercases, turns whitespace and underscores into hyphens, and
    joins path or namespace segments with ':'.

    Example:
        >>> normalize_name("git/Create_PR")
        'git:create-pr'
    """
    segments: list[str] = []
    for segment in _SEGMENT_SPLIT_RE.split(raw):
        segment = _SEPARATOR_RE.sub("-", segment.strip().lower())
        segment = _DASHES_RE.sub("-", segment).strip("-")
        if segment:
            segments.append(segment)
    return constants.NAMESPACE_SEPARATOR.join(segments)


def name_from_path(relative: _pathlib.PurePath) -> str:
    """Derive a template name from a path relative to its collection."""
    if relative.suffix.lower() == constants.TEMPLATE_SUFFIX:
        relative = relative.with_suffix("")
    return normalize_name("/".join(relative.parts))


def split_qualifier(name: str) -> tuple[str | None, str]:
    """
    Split a "skill:" or "command:" prefix off a normalized name.

    Returns:
        Tuple of (kind or None, remaining name).
    """
    prefix, sep, rest = name.partition(constants.NAMESPACE_SEPARATOR)
    if sep and rest and prefix in constants.TEMPLATE_KINDS:
        return prefix, rest
    return None, name


def _scalar_to_str(value: _typing.Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (_datetime.date, _datetime.datetime)):
        return value.isoformat()
    return str(value)


def _is_scalar_list(values: _typing.Sequence[_typing.Any]) -> bool:
    return not any(isinstance(item, (dict, list, tuple)) for item in values)


def _join_scalars(values: _typing.Iterable[_typing.Any]) -> str:
    return ", ".join(_scalar_to_str(item) for item in values)


class TemplateHeader(_pydantic.BaseModel):
    """
    Metadata header parsed from a template file.

    All fields are optional. Unknown keys are kept and end up in the
    template's flat metadata mapping.
    """

    model_config = _pydantic.ConfigDict(extra="allow", populate_by_name=True)

    name: str | None = _pydantic.Field(
        default=None,
        min_length=1,
        description="Overrides the name derived from the file path",
    )

    description: str | None = _pydantic.Field(
        default=None,
        description="Short summary of the template",
    )

    references: list[str] = _pydantic.Field(
        default_factory=list,
        description="Names of related templates",
    )

    see_also: list[str] = _pydantic.Field(
        default_factory=list,
        alias="see-also",
        description="Alias of references",
    )

    author: str | None = None
    version: str | None = None

    @_pydantic.field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: _typing.Any) -> _typing.Any:
        if value is None or isinstance(value, (dict, list)):
            return value
        return _scalar_to_str(value)

    @_pydantic.field_validator("description", "author", "version", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: _typing.Any) -> _typing.Any:
        # Lists of scalars read the same here as in the flat metadata
        if isinstance(value, list) and _is_scalar_list(value):
            return _join_scalars(value)
        if value is None or isinstance(value, (dict, list)):
            return value
        return _scalar_to_str(value)

    @_pydantic.field_validator("references", "see_also", mode="before")
    @classmethod
    def _coerce_reference_list(cls, value: _typing.Any) -> _typing.Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    def all_references(self) -> list[str]:
        """Declared references from both header keys."""
        return [*self.references, *self.see_also]


@_dataclasses.dataclass(frozen=True)
class Template:
    """
    A loaded template. Immutable once created.

    Commands and skills share this shape; skills use the Skill subclass.
    """

    name: str
    """Unique name within the template's collection."""

    kind: str
    """Collection the template belongs to ("command" or "skill")."""

    body: str
    """Markdown body after the metadata header."""

    path: _pathlib.Path
    """Source file."""

    description: str = ""

    placeholders: tuple[placeholder_module.Placeholder, ...] = ()
    """Runtime tokens found in the body, in order of first appearance."""

    references: tuple[str, ...] = ()
    """Normalized names of referenced templates."""

    metadata: _typing.Mapping[str, str] = _dataclasses.field(
        default_factory=dict,
    )
    """Flat header metadata (string keys and values)."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _types.MappingProxyType(dict(self.metadata)))

    @property
    def key(self) -> tuple[str, str]:
        """(kind, name) pair, unique across the whole store."""
        return (self.kind, self.name)

    @property
    def shell_commands(self) -> list[str]:
        """Commands named by shell placeholders."""
        return [p.name for p in self.placeholders if p.kind == "shell"]

    @property
    def body_line_count(self) -> int:
        """Number of lines in the body."""
        return len(self.body.splitlines())

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "kind": self.kind,
            "description": self.description,
            "path": str(self.path),
            "placeholders": [p.to_dict() for p in self.placeholders],
            "references": list(self.references),
            "metadata": dict(self.metadata),
            "body_lines": self.body_line_count,
        }


@_dataclasses.dataclass(frozen=True)
class Skill(Template):
    """A template used as a standing guideline, with author/version metadata."""

    @property
    def author(self) -> str | None:
        """Skill author from metadata."""
        return self.metadata.get("author")

    @property
    def version(self) -> str | None:
        """Skill version from metadata."""
        return self.metadata.get("version")


def split_markdown(content: str) -> tuple[dict[str, _typing.Any], str]:
    """
    Split template markdown into header data and body.

    Args:
        content: Raw file content.

    Returns:
        Tuple of (header mapping, stripped body). The mapping is empty
        when the file has no header.

    Raises:
        InvalidTemplateError: If the header is unterminated, is not
            valid YAML, or is not a mapping.
    """
    if not content.startswith("---"):
        return {}, content.strip()

    match = _FRONTMATTER_RE.match(content)
    if not match:
        raise errors.InvalidTemplateError("Metadata header is not terminated (---)")

    header_yaml = match.group(1) or ""
    body = match.group(2).strip()

    try:
        data = _yaml.load(header_yaml, Loader=_HeaderLoader)
    except _yaml.YAMLError as e:
        raise errors.InvalidTemplateError(f"Invalid YAML in metadata header: {e}") from e

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise errors.InvalidTemplateError(
            f"Metadata header must be a mapping, got {type(data).__name__}"
        )
    return data, body


def flatten_metadata(data: _typing.Mapping[_typing.Any, _typing.Any]) -> dict[str, str]:
    """
    Flatten header data into a string-to-string mapping.

    Lists of scalars are joined with ", ". Reference lists are left out;
    they are exposed as Template.references instead.

    Raises:
        InvalidTemplateError: If a value is a mapping or a nested list.
    """
    metadata: dict[str, str] = {}
    for raw_key, value in data.items():
        key = str(raw_key)
        if key in _REFERENCE_KEYS or value is None:
            continue
        if isinstance(value, dict):
            raise errors.InvalidTemplateError(
                f"Metadata value for '{key}' must be a scalar or list, got mapping"
            )
        if isinstance(value, (list, tuple)):
            if not _is_scalar_list(value):
                raise errors.InvalidTemplateError(
                    f"Metadata list for '{key}' must contain only scalars"
                )
            metadata[key] = _join_scalars(value)
        else:
            metadata[key] = _scalar_to_str(value)
    return metadata


def _first_line_description(body: str) -> str:
    for line in body.splitlines():
        line = line.strip().lstrip("#").strip()
        if line:
            return line
    return ""


def extract_references(
    declared: _typing.Iterable[str],
    body: str,
    *,
    own_name: str,
    kind: str,
) -> tuple[str, ...]:
    """
    Collect normalized reference names from the header and body links.

    Duplicates and references to the template itself are dropped.
    """
    own = {own_name, f"{kind}{constants.NAMESPACE_SEPARATOR}{own_name}"}
    names: list[str] = []
    candidates = [*declared, *(m.group(1) for m in _WIKI_LINK_RE.finditer(body))]
    for candidate in candidates:
        name = normalize_name(candidate)
        if not name or name in own or name in names:
            continue
        names.append(name)
    return tuple(names)


def parse_template(
    content: str,
    *,
    path: _pathlib.Path,
    kind: str,
    default_name: str,
) -> Template:
    """
    Parse template markdown into a Template (or Skill).

    Args:
        content: Raw markdown content.
        path: Source file, recorded on the template.
        kind: "command" or "skill".
        default_name: Name used when the header does not set one.

    Returns:
        Parsed template.

    Raises:
        InvalidTemplateError: If the header or its values are invalid.
    """
    data, body = split_markdown(content)

    try:
        header = TemplateHeader.model_validate({str(k): v for k, v in data.items()})
    except _pydantic.ValidationError as e:
        raise errors.InvalidTemplateError(f"Invalid metadata header: {e}") from e

    name = normalize_name(header.name) if header.name else default_name
    if not name:
        raise errors.InvalidTemplateError(f"Cannot derive a template name for {path}")

    template_cls = Skill if kind == constants.KIND_SKILL else Template
    return template_cls(
        name=name,
        kind=kind,
        body=body,
        path=path,
        description=header.description or _first_line_description(body),
        placeholders=tuple(placeholder_module.find_placeholders(body)),
        references=extract_references(
            header.all_references(), body, own_name=name, kind=kind
        ),
        metadata=flatten_metadata(data),
    )


def load_template(
    path: _pathlib.Path,
    *,
    kind: str,
    default_name: str,
    body_soft_limit: int = constants.DEFAULT_BODY_SOFT_LIMIT,
) -> Template:
    """
    Load a template from a file.

    Raises:
        OSError: If the file cannot be read.
        UnicodeDecodeError: If the file is not UTF-8.
        InvalidTemplateError: If the file cannot be parsed.
    """
    content = path.read_text(encoding="utf-8")
    template = parse_template(content, path=path, kind=kind, default_name=default_name)

    if template.body_line_count > body_soft_limit:
        _logger.warning(
            "%s %s exceeds recommended body limit (%d lines > %d)",
            kind.capitalize(),
            template.name,
            template.body_line_count,
            body_soft_limit,
        )

    _logger.debug("Loaded %s %s from %s", kind, template.name, path)
    return template
