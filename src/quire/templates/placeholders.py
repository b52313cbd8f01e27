"""
Placeholder discovery and substitution for template bodies.

Recognized tokens:
- $ARGUMENTS           -> name "ARGUMENTS"
- $1 .. $9             -> name "1" .. "9"
- !`git status`        -> name "git status" (shell command placeholder)
- {{name}}, {{env.X}}  -> name "name", "env.X"

Substitution is a single pass over the text: replacement values are
never re-scanned, and tokens without a value are left verbatim so a
caller can resolve them later.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import re as _re
import shlex as _shlex
import typing as _typing

import quire.constants as constants

if _typing.TYPE_CHECKING:
    import quire.templates.template as _template

PlaceholderKind = _typing.Literal["arguments", "positional", "shell", "named"]

_TOKEN_RE = _re.compile(
    r"!`(?P<shell>[^`\n]+)`"
    r"|\$(?P<arguments>ARGUMENTS)\b"
    r"|\$(?P<positional>[1-9])(?![0-9])"
    r"|\{\{\s*(?P<named>[A-Za-z_][\w.-]*)\s*\}\}"
)


@_dataclasses.dataclass(frozen=True)
class Placeholder:
    """A runtime token found in a template body."""

    kind: PlaceholderKind
    name: str
    """Key looked up in the replacement mapping."""

    raw: str
    """Token text as written in the body."""

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"kind": self.kind, "name": self.name, "raw": self.raw}


def _placeholder_from_match(match: _re.Match[str]) -> Placeholder:
    kind = _typing.cast(PlaceholderKind, match.lastgroup)
    name = match.group(kind)
    if kind == "shell":
        name = name.strip()
    return Placeholder(kind=kind, name=name, raw=match.group(0))


def _text_of(source: _template.Template | str) -> str:
    if isinstance(source, str):
        return source
    return source.body


def find_placeholders(text: str) -> list[Placeholder]:
    """
    Find all placeholders in text.

    Args:
        text: Template body or any other text.

    Returns:
        Placeholders in order of first appearance, one per (kind, name).
    """
    seen: set[tuple[str, str]] = set()
    found: list[Placeholder] = []
    for match in _TOKEN_RE.finditer(text):
        placeholder = _placeholder_from_match(match)
        key = (placeholder.kind, placeholder.name)
        if key in seen:
            continue
        seen.add(key)
        found.append(placeholder)
    return found


def interpolate(
    source: _template.Template | str,
    values: _typing.Mapping[str, _typing.Any],
) -> str:
    """
    Substitute placeholder values into a template.

    Args:
        source: Template (its body is used) or raw text.
        values: Mapping of token name to replacement. Values are
            converted with str().

    Returns:
        The text with every token that has a value replaced. Tokens
        missing from values are kept verbatim.
    """
    text = _text_of(source)
    if not values:
        return text

    def _replace(match: _re.Match[str]) -> str:
        placeholder = _placeholder_from_match(match)
        if placeholder.name not in values:
            return match.group(0)
        return str(values[placeholder.name])

    return _TOKEN_RE.sub(_replace, text)


def unresolved(
    source: _template.Template | str,
    values: _typing.Mapping[str, _typing.Any],
) -> list[Placeholder]:
    """List the placeholders that values would leave in place."""
    return [p for p in find_placeholders(_text_of(source)) if p.name not in values]


def argument_values(args: str | _typing.Sequence[str]) -> dict[str, str]:
    """
    Build replacement values for an argument string or argument list.

    A string becomes ARGUMENTS as written; its shell-style words become
    the positional values 1..9. Unbalanced quotes fall back to plain
    whitespace splitting. A list (already split, as a shell passes
    command-line arguments) is used word for word and joined with
    spaces for ARGUMENTS.

    Example:
        >>> argument_values('fix "login bug"')
        {'ARGUMENTS': 'fix "login bug"', '1': 'fix', '2': 'login bug'}
    """
    if isinstance(args, str):
        text = args
        try:
            words = _shlex.split(args)
        except ValueError:
            words = args.split()
    else:
        words = list(args)
        text = " ".join(words)

    values = {"ARGUMENTS": text}
    for index, word in enumerate(words[: constants.MAX_POSITIONAL_ARGUMENTS], start=1):
        values[str(index)] = word
    return values
