"""
Cross-reference resolution between templates.

A template declares references in its header (references / see-also)
or inline as [[name]] links. Resolution never raises for a missing
target: each missing name is reported once as a BrokenReference so
callers can keep using the templates that did resolve.

Lookup order for an unqualified name is the referencing template's own
collection, then the other one. "skill:name" and "command:name" pin the
lookup to one collection.
"""

from __future__ import annotations

import collections as _collections
import dataclasses as _dataclasses
import logging as _logging

import quire.constants as constants
import quire.templates.errors as errors
import quire.templates.store as store_module
import quire.templates.template as template_module

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass(frozen=True)
class BrokenReference:
    """A reference whose target is not in the store."""

    source: template_module.Template
    name: str

    def __str__(self) -> str:
        return (
            f"{self.source.kind} '{self.source.name}' references "
            f"missing template '{self.name}'"
        )

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {
            "source": self.source.name,
            "source_kind": self.source.kind,
            "name": self.name,
        }


class BrokenReferenceError(errors.TemplateError):
    """Raised on request for a broken reference (see raise_for_broken)."""

    def __init__(self, broken: BrokenReference) -> None:
        self.broken = broken
        super().__init__(str(broken))


@_dataclasses.dataclass(frozen=True)
class ReferenceResolution:
    """Outcome of resolving one template's references."""

    template: template_module.Template
    resolved: tuple[template_module.Template, ...] = ()
    broken: tuple[BrokenReference, ...] = ()

    @property
    def ok(self) -> bool:
        """Whether every reference resolved."""
        return not self.broken

    def raise_for_broken(self) -> None:
        """Raise BrokenReferenceError for the first broken reference, if any."""
        if self.broken:
            raise BrokenReferenceError(self.broken[0])

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "template": self.template.name,
            "kind": self.template.kind,
            "resolved": [{"name": t.name, "kind": t.kind} for t in self.resolved],
            "broken": [b.to_dict() for b in self.broken],
        }


def lookup_reference(
    name: str,
    store: store_module.TemplateStore,
    *,
    from_kind: str,
) -> template_module.Template | None:
    """
    Find the target of a reference.

    Args:
        name: Normalized reference name, optionally "skill:" or "command:" qualified.
        store: Store to search.
        from_kind: Kind of the referencing template (searched first).

    Returns:
        Target template, or None if absent.
    """
    kind, bare = template_module.split_qualifier(name)
    if kind is not None:
        return store.collection(kind).get(bare)

    order = [from_kind, *(k for k in constants.TEMPLATE_KINDS if k != from_kind)]
    for k in order:
        found = store.collection(k).get(name)
        if found is not None:
            return found
    return None


def resolve_references(
    template: template_module.Template,
    store: store_module.TemplateStore,
) -> ReferenceResolution:
    """
    Resolve a template's references against the store.

    Args:
        template: Template whose references to follow.
        store: The full template store.

    Returns:
        ReferenceResolution with resolved targets and one BrokenReference
        per missing name.
    """
    resolved: list[template_module.Template] = []
    broken: list[BrokenReference] = []

    seen: set[str] = set()
    for name in template.references:
        if name in seen:
            continue
        seen.add(name)
        target = lookup_reference(name, store, from_kind=template.kind)
        if target is None:
            _logger.debug("%s %s: broken reference to %s", template.kind, template.name, name)
            broken.append(BrokenReference(source=template, name=name))
        elif all(target.key != t.key for t in resolved):
            resolved.append(target)

    return ReferenceResolution(
        template=template,
        resolved=tuple(resolved),
        broken=tuple(broken),
    )


def find_broken_references(store: store_module.TemplateStore) -> list[BrokenReference]:
    """Check every template in the store and collect broken references."""
    broken: list[BrokenReference] = []
    for template in store:
        broken.extend(resolve_references(template, store).broken)
    return broken


def walk_references(
    template: template_module.Template,
    store: store_module.TemplateStore,
) -> list[template_module.Template]:
    """
    Follow references transitively, breadth first.

    Cycles are followed once; broken links are skipped.

    Returns:
        Reachable templates, excluding the starting template.
    """
    visited: set[tuple[str, str]] = {template.key}
    reachable: list[template_module.Template] = []
    queue: _collections.deque[template_module.Template] = _collections.deque([template])

    while queue:
        current = queue.popleft()
        for target in resolve_references(current, store).resolved:
            if target.key in visited:
                continue
            visited.add(target.key)
            reachable.append(target)
            queue.append(target)

    return reachable
