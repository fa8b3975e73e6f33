"""
AST node models for parsed HL7 messages.

A parsed message is a tree with a fixed shape::

    Root
     └─ Segment / Group ...
         └─ SegmentHeader, Field, Field, ...
                            └─ FieldRepetition
                                └─ Component
                                    └─ Subcomponent (value)

Nodes are frozen dataclasses holding their children in tuples, so a tree
cannot be changed once built. ``to_dict`` produces the JSON wire format
shared with downstream tooling.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from .delimiters import Delimiters


# Source Positions
@dataclass(frozen=True)
class Point:
    """A single place in the source text (offset 0-based, line/column 1-based)."""

    offset: int
    line: int
    column: int

    def to_dict(self) -> dict:
        return {"line": self.line, "column": self.column, "offset": self.offset}


@dataclass(frozen=True)
class Position:
    """The source range a node was built from."""

    start: Point
    end: Point

    def to_dict(self) -> dict:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


START_POINT = Point(offset=0, line=1, column=1)


class _Node:
    """Shared behaviour for all AST nodes."""

    type: ClassVar[str] = ""

    def to_dict(self) -> dict:
        """
        Convert the node (and its subtree) to plain dictionaries.

        Keys that do not apply to a node type are left out, and ``data``
        only appears when a builder attached some.
        """
        result: Dict[str, Any] = {"type": self.type}

        for key in ("name", "index", "delimiter", "value"):
            if hasattr(self, key):
                attr = getattr(self, key)
                if attr is not None:
                    result[key] = attr

        if hasattr(self, "children"):
            result["children"] = [child.to_dict() for child in self.children]

        position = getattr(self, "position", None)
        if position is not None:
            result["position"] = position.to_dict()

        data = getattr(self, "data", None)
        if data:
            result["data"] = dict(data)

        return result


# Leaf Nodes
@dataclass(frozen=True)
class Subcomponent(_Node):
    """Leaf holding the literal text of a subcomponent ("" when empty)."""

    value: str = ""
    position: Optional[Position] = None

    type: ClassVar[str] = "subcomponent"


@dataclass(frozen=True)
class SegmentHeader(_Node):
    """Leaf holding the literal segment name, e.g. "PID"."""

    value: str = ""
    position: Optional[Position] = None

    type: ClassVar[str] = "segment-header"


# Container Nodes
@dataclass(frozen=True)
class Component(_Node):
    children: Tuple[Subcomponent, ...] = ()
    position: Optional[Position] = None

    type: ClassVar[str] = "component"


@dataclass(frozen=True)
class FieldRepetition(_Node):
    children: Tuple[Component, ...] = ()
    position: Optional[Position] = None

    type: ClassVar[str] = "field-repetition"


@dataclass(frozen=True)
class Field(_Node):
    children: Tuple[FieldRepetition, ...] = ()
    position: Optional[Position] = None

    type: ClassVar[str] = "field"


@dataclass(frozen=True)
class Segment(_Node):
    """
    One segment of a message.

    ``children[0]`` is always the SegmentHeader; HL7 field N is
    ``children[N]``. ``index`` is the 0-based position among the
    segments of the message.
    """

    name: str
    children: Tuple[Union[SegmentHeader, Field], ...] = ()
    index: int = 0
    delimiter: str = "|"
    position: Optional[Position] = None
    data: Optional[Mapping[str, Any]] = field(default=None, hash=False)

    type: ClassVar[str] = "segment"

    @property
    def header(self) -> Optional[SegmentHeader]:
        if self.children and isinstance(self.children[0], SegmentHeader):
            return self.children[0]
        return None

    @property
    def fields(self) -> Tuple[Field, ...]:
        """The segment's fields, without the header slot."""
        return tuple(child for child in self.children if isinstance(child, Field))


@dataclass(frozen=True)
class Group(_Node):
    """
    A navigation-only container of segments and nested groups.

    The parser never produces groups; structure-aware tooling wraps
    segments into them. A group without a name is transparent to queries.
    """

    name: Optional[str] = None
    children: Tuple[Union[Segment, "Group"], ...] = ()
    position: Optional[Position] = None

    type: ClassVar[str] = "group"


@dataclass(frozen=True)
class Root(_Node):
    """The whole message."""

    children: Tuple[Union[Segment, Group], ...] = ()
    delimiter: str = "\r"
    position: Optional[Position] = None
    delimiters: Optional[Delimiters] = None
    data: Optional[Mapping[str, Any]] = field(default=None, hash=False)

    type: ClassVar[str] = "root"

    @property
    def segments(self) -> Tuple[Segment, ...]:
        """Top-level segments, in document order."""
        return tuple(child for child in self.children if isinstance(child, Segment))


Node = Union[
    Root, Group, Segment, SegmentHeader, Field, FieldRepetition, Component, Subcomponent
]


def is_empty_node(node: Optional[Node]) -> bool:
    """
    Check whether a node carries no content.

    A leaf is empty when its value is blank. A container is empty when it
    has no children, or exactly one child that is itself empty; a container
    with two or more children always counts as present, since the delimiter
    between them is content.
    """
    if node is None:
        return True

    if isinstance(node, (Subcomponent, SegmentHeader)):
        return not node.value or not node.value.strip()

    children = getattr(node, "children", None)
    if children is None:
        return False
    if len(children) == 0:
        return True
    if len(children) > 1:
        return False
    return is_empty_node(children[0])
