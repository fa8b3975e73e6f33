"""
Path queries over a parsed message tree.

``select`` resolves a path to its first match together with the chain of
ancestors from the root down to the match's parent, ``select_all``
returns every match, and ``value`` drills a match down to its string
value. A query that finds nothing returns None (or an empty list); only
a malformed path or an ambiguous repeating-field access raises.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from .exceptions import AmbiguousPathError
from .models import (
    Component,
    Field,
    FieldRepetition,
    Group,
    Node,
    Root,
    Segment,
    Subcomponent,
)
from .path import GroupLocator, PathLocator, parse_path

Ancestors = Tuple[Node, ...]
Scope = Tuple[Sequence[Union[Segment, Group]], Ancestors]


# Query Result
@dataclass(frozen=True)
class Match:
    """A node found by a query, with its ancestors (root first)."""

    node: Node
    ancestors: Ancestors

    @property
    def parent(self) -> Optional[Node]:
        return self.ancestors[-1] if self.ancestors else None

    @property
    def value(self) -> Optional[str]:
        return node_value(self.node)


# Scope helpers
def _structural(children) -> List[Union[Segment, Group]]:
    return [child for child in children if isinstance(child, (Segment, Group))]


def _groups_named(nodes: Sequence[Union[Segment, Group]], name: str) -> List[Group]:
    return [node for node in nodes if isinstance(node, Group) and node.name == name]


def _pick(items: Sequence, repetition: Optional[int]):
    index = (repetition or 1) - 1
    return items[index] if index < len(items) else None


def _follow_groups(root: Root, groups: Sequence[GroupLocator]) -> Optional[Scope]:
    """Narrow the scope through ``groups``, one repetition each."""
    scope = _structural(root.children)
    ancestors: Ancestors = (root,)
    for locator in groups:
        group = _pick(_groups_named(scope, locator.name), locator.repetition)
        if group is None:
            return None
        ancestors += (group,)
        scope = _structural(group.children)
    return scope, ancestors


def _all_scopes(
    scope: Sequence[Union[Segment, Group]], ancestors: Ancestors, groups: Sequence[GroupLocator]
) -> Iterator[Scope]:
    """Every scope ``groups`` can lead to; unpinned groups follow all repetitions."""
    if not groups:
        yield scope, ancestors
        return

    locator, remaining = groups[0], groups[1:]
    matched = _groups_named(scope, locator.name)
    if locator.repetition is not None:
        picked = _pick(matched, locator.repetition)
        matched = [picked] if picked is not None else []

    for group in matched:
        yield from _all_scopes(_structural(group.children), ancestors + (group,), remaining)


def _collect_segments(
    scope: Sequence[Union[Segment, Group]], name: str, ancestors: Ancestors
) -> List[Match]:
    """Segments named ``name`` in document order, descending into nested groups."""
    found: List[Match] = []
    for node in scope:
        if isinstance(node, Segment):
            if node.name == name:
                found.append(Match(node, ancestors))
        else:
            found.extend(
                _collect_segments(_structural(node.children), name, ancestors + (node,))
            )
    return found


# Field-level lookups (all 1-based)
def _child(node, number: int):
    children = getattr(node, "children", ())
    return children[number - 1] if 0 < number <= len(children) else None


def _locate_field(segment: Segment, number: int) -> Optional[Field]:
    fields = segment.fields
    return fields[number - 1] if 0 < number <= len(fields) else None


def _resolve_field(
    path: str, locator: PathLocator, match: Match
) -> Optional[Match]:
    segment = match.node
    field = _locate_field(segment, locator.field)
    if field is None:
        return None
    ancestors = match.ancestors + (segment,)

    wants_deeper = locator.component is not None or locator.subcomponent is not None
    if locator.repetition is None and not wants_deeper:
        return Match(field, ancestors)

    if locator.repetition is not None:
        repetition = _child(field, locator.repetition)
    else:
        count = len(field.children)
        if count == 0:
            return None
        if count > 1:
            raise AmbiguousPathError(path, segment.name, locator.field, count)
        repetition = field.children[0]
    if repetition is None:
        return None
    ancestors += (field,)

    return _resolve_within_repetition(locator, repetition, ancestors)


def _resolve_within_repetition(
    locator: PathLocator, repetition: FieldRepetition, ancestors: Ancestors
) -> Optional[Match]:
    if locator.component is None:
        return Match(repetition, ancestors)

    component = _child(repetition, locator.component)
    if component is None:
        return None
    ancestors += (repetition,)
    if locator.subcomponent is None:
        return Match(component, ancestors)

    subcomponent = _child(component, locator.subcomponent)
    if subcomponent is None:
        return None
    return Match(subcomponent, ancestors + (component,))


# Public API
def select(root: Root, path: str) -> Optional[Match]:
    """
    Find the first node at ``path``.

    Without field access the final name is looked up as a segment first
    (including segments inside nested groups), then as a direct child
    group of the scope.

    Args:
        root: Parsed message
        path: Canonical path, e.g. ``"PID-5[1].2"``

    Returns:
        The Match, or None if nothing is there

    Raises:
        PathSyntaxError: If the path is malformed
        AmbiguousPathError: If a component is requested from a repeating
            field without naming the repetition
    """
    locator = parse_path(path)
    followed = _follow_groups(root, locator.groups)
    if followed is None:
        return None
    scope, ancestors = followed

    name = locator.segment.name
    segment_match = _pick(_collect_segments(scope, name, ancestors), locator.segment.repetition)

    if not locator.has_field:
        if segment_match is not None:
            return segment_match
        group = _pick(_groups_named(scope, name), locator.segment.repetition)
        return Match(group, ancestors) if group is not None else None

    if segment_match is None:
        return None
    return _resolve_field(path, locator, segment_match)


def select_all(root: Root, path: str) -> List[Match]:
    """
    Find every node at ``path``.

    Unpinned groups, segments and field repetitions are all enumerated:
    ``OBX-5.1`` yields component 1 of every repetition of OBX-5 in every
    OBX segment. A path pinning the segment or field repetition
    (``OBX[2]``, ``PID-3[1]``) has at most one match.

    Raises:
        PathSyntaxError: If the path is malformed
    """
    locator = parse_path(path)
    if locator.segment.repetition is not None or locator.repetition is not None:
        match = select(root, path)
        return [match] if match is not None else []

    name = locator.segment.name
    segments: List[Match] = []
    groups: List[Match] = []
    for scope, ancestors in _all_scopes(_structural(root.children), (root,), locator.groups):
        segments.extend(_collect_segments(scope, name, ancestors))
        if not locator.has_field:
            groups.extend(Match(group, ancestors) for group in _groups_named(scope, name))

    if not locator.has_field:
        return segments + groups

    results: List[Match] = []
    for segment_match in segments:
        field = _locate_field(segment_match.node, locator.field)
        if field is None:
            continue
        ancestors = segment_match.ancestors + (segment_match.node,)
        if locator.component is None and locator.subcomponent is None:
            results.append(Match(field, ancestors))
            continue
        for repetition in field.children:
            match = _resolve_within_repetition(locator, repetition, ancestors + (field,))
            if match is not None:
                results.append(match)
    return results


def node_value(node: Optional[Node]) -> Optional[str]:
    """
    Drill ``node`` down to its string value.

    Walks through single-child fields, repetitions and components until a
    Subcomponent is reached. Returns None for a container with no children
    (present but empty) or several children (ambiguous), and for segments,
    groups and the root.
    """
    while node is not None and not isinstance(node, Subcomponent):
        if not isinstance(node, (Field, FieldRepetition, Component)):
            return None
        if len(node.children) != 1:
            return None
        node = node.children[0]
    return node.value if node is not None else None


def value(root: Root, path: str) -> Optional[str]:
    """
    The string value at ``path``, or None.

    ``""`` means the position exists and is empty; None means it does
    not exist, has no children, or holds more than one value.
    """
    match = select(root, path)
    return node_value(match.node) if match is not None else None


def matches(root: Root, path: str) -> bool:
    """Whether ``path`` resolves to a node."""
    return select(root, path) is not None


exists = matches
