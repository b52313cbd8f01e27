"""
Template store: loads a template tree and indexes it by name.

Layout under the template root:
- commands/**/*.md          - slash command templates (nested dirs namespace the name)
- skills/<name>/SKILL.md    - one skill per directory
- skills/*.md               - flat skill files

A missing root or a duplicate name aborts the load. Files that cannot be
read or parsed are skipped and recorded as LoadIssue entries.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib
import types as _types
import typing as _typing

import quire.constants as constants
import quire.templates.errors as errors
import quire.templates.template as template_module

if _typing.TYPE_CHECKING:
    import quire.config as _config
    import quire.config.types as _config_types

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass(frozen=True)
class LoadIssue:
    """A template file that was skipped during loading."""

    path: _pathlib.Path
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"path": str(self.path), "message": self.message}


class TemplateStore:
    """
    Loaded templates, split into the command and skill collections.

    Names are unique within a collection; a command and a skill may
    share a name.
    """

    def __init__(
        self,
        root: _pathlib.Path,
        commands: dict[str, template_module.Template],
        skills: dict[str, template_module.Template],
        issues: list[LoadIssue] | None = None,
    ) -> None:
        self._root = root
        self._collections: dict[str, dict[str, template_module.Template]] = {
            constants.KIND_COMMAND: dict(commands),
            constants.KIND_SKILL: dict(skills),
        }
        self._issues = list(issues or [])

    @property
    def root(self) -> _pathlib.Path:
        """Template root directory."""
        return self._root

    @property
    def commands(self) -> _typing.Mapping[str, template_module.Template]:
        """Command templates by name."""
        return _types.MappingProxyType(self._collections[constants.KIND_COMMAND])

    @property
    def skills(self) -> _typing.Mapping[str, template_module.Template]:
        """Skills by name."""
        return _types.MappingProxyType(self._collections[constants.KIND_SKILL])

    @property
    def issues(self) -> list[LoadIssue]:
        """Files skipped during loading."""
        return list(self._issues)

    def collection(self, kind: str) -> _typing.Mapping[str, template_module.Template]:
        """
        Get one collection by kind.

        Raises:
            ValueError: If kind is not "command" or "skill".
        """
        if kind not in self._collections:
            raise ValueError(
                f"Unknown template kind '{kind}' "
                f"(expected one of: {', '.join(constants.TEMPLATE_KINDS)})"
            )
        return _types.MappingProxyType(self._collections[kind])

    def get(
        self,
        name: str,
        kind: str | None = None,
    ) -> template_module.Template | None:
        """
        Look up a template by name.

        Without kind, commands are searched before skills. A "skill:" or
        "command:" prefix selects the collection like kind does.

        Args:
            name: Template name (normalized before lookup).
            kind: Restrict the lookup to one collection.

        Returns:
            The template, or None if not found.
        """
        normalized = template_module.normalize_name(name)

        qualifier, bare = template_module.split_qualifier(normalized)
        if qualifier is not None and kind in (None, qualifier):
            found = self.collection(qualifier).get(bare)
            if found is not None:
                return found

        kinds = (kind,) if kind is not None else constants.TEMPLATE_KINDS
        for k in kinds:
            found = self.collection(k).get(normalized)
            if found is not None:
                return found
        return None

    def require(self, name: str, kind: str | None = None) -> template_module.Template:
        """
        Look up a template by name, raising if absent.

        Raises:
            TemplateNotFoundError: If no template has that name.
        """
        found = self.get(name, kind)
        if found is None:
            raise errors.TemplateNotFoundError(name, kind)
        return found

    def names(self, kind: str | None = None) -> list[str]:
        """Sorted template names, for one collection or both."""
        kinds = (kind,) if kind is not None else constants.TEMPLATE_KINDS
        names: set[str] = set()
        for k in kinds:
            names.update(self.collection(k))
        return sorted(names)

    def templates(self, kind: str | None = None) -> list[template_module.Template]:
        """All templates, commands first, each collection sorted by name."""
        kinds = (kind,) if kind is not None else constants.TEMPLATE_KINDS
        result: list[template_module.Template] = []
        for k in kinds:
            collection = self.collection(k)
            result.extend(collection[name] for name in sorted(collection))
        return result

    def __len__(self) -> int:
        return sum(len(c) for c in self._collections.values())

    def __iter__(self) -> _typing.Iterator[template_module.Template]:
        return iter(self.templates())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TemplateStore):
            return NotImplemented
        return (
            self._root == other._root
            and self._collections == other._collections
            and self._issues == other._issues
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"TemplateStore(root={str(self._root)!r}, "
            f"commands={len(self.commands)}, skills={len(self.skills)})"
        )

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "root": str(self._root),
            "command_count": len(self.commands),
            "skill_count": len(self.skills),
            "commands": [t.to_dict() for t in self.templates(constants.KIND_COMMAND)],
            "skills": [t.to_dict() for t in self.templates(constants.KIND_SKILL)],
            "issues": [issue.to_dict() for issue in self._issues],
        }

    @classmethod
    def from_settings(cls, settings: _config.Settings) -> TemplateStore:
        """Load the store described by settings."""
        return load_store(
            settings.template_root,
            layout=settings.layout,
            body_soft_limit=settings.behavior.body_soft_limit,
        )


def _is_hidden(relative: _pathlib.PurePath) -> bool:
    return any(part.startswith(".") for part in relative.parts)


def _iter_command_files(
    commands_dir: _pathlib.Path,
) -> _typing.Iterator[tuple[_pathlib.Path, str]]:
    """Yield (file, derived name) for each command file."""
    for path in sorted(commands_dir.rglob(f"*{constants.TEMPLATE_SUFFIX}")):
        relative = path.relative_to(commands_dir)
        if _is_hidden(relative) or not path.is_file():
            continue
        yield path, template_module.name_from_path(relative)


def _iter_skill_files(
    skills_dir: _pathlib.Path,
    skill_file: str,
) -> _typing.Iterator[tuple[_pathlib.Path, str]]:
    """Yield (file, derived name) for each skill directory or flat skill file."""
    for entry in sorted(skills_dir.iterdir()):
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            definition = entry / skill_file
            if definition.is_file():
                yield definition, template_module.normalize_name(entry.name)
        elif entry.is_file() and entry.suffix.lower() == constants.TEMPLATE_SUFFIX:
            yield entry, template_module.name_from_path(_pathlib.PurePath(entry.name))


def _load_collection(
    files: _typing.Iterable[tuple[_pathlib.Path, str]],
    *,
    kind: str,
    body_soft_limit: int,
    issues: list[LoadIssue],
) -> dict[str, template_module.Template]:
    collection: dict[str, template_module.Template] = {}

    for path, default_name in files:
        try:
            loaded = template_module.load_template(
                path,
                kind=kind,
                default_name=default_name,
                body_soft_limit=body_soft_limit,
            )
        except (OSError, UnicodeDecodeError, errors.InvalidTemplateError) as e:
            _logger.warning("Skipping %s file %s: %s", kind, path, e)
            issues.append(LoadIssue(path=path, message=str(e)))
            continue

        existing = collection.get(loaded.name)
        if existing is not None:
            raise errors.DuplicateNameError(loaded.name, kind, (existing.path, path))
        collection[loaded.name] = loaded

    return collection


def load_store(
    root: _pathlib.Path | str,
    *,
    layout: _config_types.LayoutConfig | None = None,
    body_soft_limit: int = constants.DEFAULT_BODY_SOFT_LIMIT,
) -> TemplateStore:
    """
    Load all templates under a root directory.

    Args:
        root: Template root containing commands/ and skills/.
        layout: Subdirectory names; defaults to commands/, skills/, SKILL.md.
        body_soft_limit: Body length (lines) above which a warning is logged.

    Returns:
        Loaded TemplateStore.

    Raises:
        TemplateRootNotFoundError: If root is missing or not a directory.
        DuplicateNameError: If two files in one collection share a name.
    """
    root_path = _pathlib.Path(root).expanduser()
    if not root_path.is_dir():
        raise errors.TemplateRootNotFoundError(root_path)
    root_path = root_path.resolve()

    commands_dir_name = layout.commands_dir if layout else constants.DEFAULT_COMMANDS_DIR
    skills_dir_name = layout.skills_dir if layout else constants.DEFAULT_SKILLS_DIR
    skill_file = layout.skill_file if layout else constants.DEFAULT_SKILL_FILE

    issues: list[LoadIssue] = []

    commands: dict[str, template_module.Template] = {}
    commands_dir = root_path / commands_dir_name
    if commands_dir.is_dir():
        commands = _load_collection(
            _iter_command_files(commands_dir),
            kind=constants.KIND_COMMAND,
            body_soft_limit=body_soft_limit,
            issues=issues,
        )

    skills: dict[str, template_module.Template] = {}
    skills_dir = root_path / skills_dir_name
    if skills_dir.is_dir():
        skills = _load_collection(
            _iter_skill_files(skills_dir, skill_file),
            kind=constants.KIND_SKILL,
            body_soft_limit=body_soft_limit,
            issues=issues,
        )

    _logger.debug(
        "Loaded %d commands and %d skills from %s (%d skipped)",
        len(commands),
        len(skills),
        root_path,
        len(issues),
    )
    return TemplateStore(root_path, commands, skills, issues)
