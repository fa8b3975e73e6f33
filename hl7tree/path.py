"""
Canonical HL7 path grammar.

A path addresses a node in the message tree::

    [GROUP[n]-]...NAME[n][-FIELD[[n]][.COMPONENT[.SUBCOMPONENT]]]

for example ``PID-5[1].2.1`` or ``ORDERS[2]-RESULT-OBX[3]-5``. Every
number is 1-based. Names are an uppercase letter followed by uppercase
letters or digits. A ``-`` followed by a digit starts field access, so
the name before it is a segment; a ``-`` followed by a letter means the
name before it is a group. A trailing name without field access may be
either, and the query engine decides by looking at the tree.

Parsing is a small recursive-descent parser. Results are memoized in a
thread-safe LRU cache.
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .exceptions import PathSyntaxError

logger = logging.getLogger(__name__)

PARSE_CACHE_LIMIT = 1000


def _is_upper(char: str) -> bool:
    return "A" <= char <= "Z" and len(char) == 1


def _is_digit(char: str) -> bool:
    # ASCII only; str.isdigit() accepts other scripts' digits
    return "0" <= char <= "9" and len(char) == 1


# Locator Dataclasses
@dataclass(frozen=True)
class GroupLocator:
    name: str
    repetition: Optional[int] = None


@dataclass(frozen=True)
class SegmentLocator:
    """The final name of a path; a segment, or a group when no field follows."""

    name: str
    repetition: Optional[int] = None


@dataclass(frozen=True)
class PathLocator:
    """Structured form of a path string."""

    segment: SegmentLocator
    groups: Tuple[GroupLocator, ...] = ()
    field: Optional[int] = None
    repetition: Optional[int] = None
    component: Optional[int] = None
    subcomponent: Optional[int] = None

    @property
    def has_field(self) -> bool:
        return self.field is not None

    def to_dict(self) -> dict:
        result = {"segment": {"name": self.segment.name}}
        if self.segment.repetition is not None:
            result["segment"]["repetition"] = self.segment.repetition
        if self.groups:
            result["groups"] = [
                {"name": g.name, **({"repetition": g.repetition} if g.repetition else {})}
                for g in self.groups
            ]
        for key in ("field", "repetition", "component", "subcomponent"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


# Recursive-descent Parser
class _PathParser:
    def __init__(self, path: str):
        self.path = path
        self.pos = 0

    def error(self, reason: str) -> PathSyntaxError:
        return PathSyntaxError(self.path, reason, column=self.pos + 1)

    def peek(self, ahead: int = 0) -> str:
        index = self.pos + ahead
        return self.path[index] if index < len(self.path) else ""

    def expect(self, char: str) -> None:
        if self.peek() != char:
            found = repr(self.peek()) if self.peek() else "end of path"
            raise self.error(f"expected {char!r}, found {found}")
        self.pos += 1

    def parse(self) -> PathLocator:
        groups: List[GroupLocator] = []
        name, repetition = self.name_with_repetition("segment")

        # Each "-NAME" after a name demotes that name to a group
        while self.peek() == "-" and _is_upper(self.peek(1)):
            self.pos += 1
            groups.append(GroupLocator(name, repetition))
            name, repetition = self.name_with_repetition("segment")

        segment = SegmentLocator(name, repetition)
        if not self.peek():
            return PathLocator(segment=segment, groups=tuple(groups))

        if self.peek() != "-" or not _is_digit(self.peek(1)):
            raise self.error(f"unexpected {self.peek()!r}")
        self.pos += 1

        field = self.number("field")
        field_repetition = self.optional_index("repetition")
        component = subcomponent = None
        if self.peek() == ".":
            self.pos += 1
            component = self.number("component")
            if self.peek() == ".":
                self.pos += 1
                subcomponent = self.number("subcomponent")

        if self.peek():
            raise self.error(f"unexpected {self.peek()!r}")

        return PathLocator(
            segment=segment,
            groups=tuple(groups),
            field=field,
            repetition=field_repetition,
            component=component,
            subcomponent=subcomponent,
        )

    def name_with_repetition(self, what: str) -> Tuple[str, Optional[int]]:
        start = self.pos
        if not _is_upper(self.peek()):
            raise self.error(f"expected a {what} or group name")
        self.pos += 1
        while _is_upper(self.peek()) or _is_digit(self.peek()):
            self.pos += 1
        name = self.path[start:self.pos]
        return name, self.optional_index(f"{name} repetition")

    def optional_index(self, what: str) -> Optional[int]:
        if self.peek() != "[":
            return None
        self.pos += 1
        value = self.number(what)
        self.expect("]")
        return value

    def number(self, what: str) -> int:
        start = self.pos
        while _is_digit(self.peek()):
            self.pos += 1
        if start == self.pos:
            raise self.error(f"expected {what} number")
        value = int(self.path[start:self.pos])
        if value < 1:
            self.pos = start
            raise self.error(f"{what} number must be >= 1, got {value}")
        return value


def _parse_uncached(path: str) -> PathLocator:
    if not isinstance(path, str) or not path:
        raise PathSyntaxError(path, "path must be a non-empty string")
    if path.strip() != path:
        raise PathSyntaxError(path, "path cannot have leading or trailing whitespace")
    return _PathParser(path).parse()


# Path Cache
class PathCache:
    """
    Bounded least-recently-used cache of parsed paths.

    A hit moves the entry to the most-recently-used end; inserting past
    ``capacity`` evicts from the other end. Access is guarded by a lock so
    queries may run from several threads.
    """

    def __init__(self, capacity: int = PARSE_CACHE_LIMIT):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._entries: "OrderedDict[str, PathLocator]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, path: str) -> Optional[PathLocator]:
        with self._lock:
            locator = self._entries.get(path)
            if locator is not None:
                self._entries.move_to_end(path)
            return locator

    def put(self, path: str, locator: PathLocator) -> None:
        with self._lock:
            self._entries[path] = locator
            self._entries.move_to_end(path)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted %r from path cache", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> List[str]:
        """Cached paths, least recently used first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries


_cache = PathCache()


def parse_path(path: str) -> PathLocator:
    """
    Parse a canonical path string into a PathLocator.

    Args:
        path: Path such as ``"PID-5[1].2"``

    Returns:
        The (possibly cached) PathLocator

    Raises:
        PathSyntaxError: If the path is malformed, padded with whitespace or
            uses a number below 1
    """
    if isinstance(path, str):
        cached = _cache.get(path)
        if cached is not None:
            return cached

    locator = _parse_uncached(path)
    _cache.put(path, locator)
    return locator


def clear_path_cache() -> None:
    _cache.clear()


def path_cache_size() -> int:
    return len(_cache)
