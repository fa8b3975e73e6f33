"""
HL7 delimiter model and detection.

An HL7 v2 message announces its own delimiters: the character right after
"MSH" is the field separator and the next four characters (MSH-2) are the
component, repetition, escape and subcomponent characters, in that order.
The segment terminator is not encoded in the message and is detected from
the line endings actually present.
"""

import logging
from dataclasses import asdict, dataclass, replace
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# Default HL7 delimiters (can be overridden from MSH)
DEFAULT_FIELD_SEPARATOR = "|"
DEFAULT_COMPONENT_SEPARATOR = "^"
DEFAULT_REPETITION_SEPARATOR = "~"
DEFAULT_ESCAPE_CHARACTER = "\\"
DEFAULT_SUBCOMPONENT_SEPARATOR = "&"
DEFAULT_SEGMENT_SEPARATOR = "\r"

# Checked in this order; the first one present in the text wins
SEGMENT_TERMINATORS = ("\r\n", "\n", "\r")

MSH_FIELD_SEPARATOR_OFFSET = 3
MSH_ENCODING_START = 4
MSH_ENCODING_END = 8


# Delimiters Dataclass
@dataclass(frozen=True)
class Delimiters:
    """
    The six delimiters in effect for a message.

    Instances are immutable; use ``merge`` to derive a variant with some
    delimiters overridden.
    """

    field: str = DEFAULT_FIELD_SEPARATOR
    component: str = DEFAULT_COMPONENT_SEPARATOR
    repetition: str = DEFAULT_REPETITION_SEPARATOR
    escape: str = DEFAULT_ESCAPE_CHARACTER
    subcomponent: str = DEFAULT_SUBCOMPONENT_SEPARATOR
    segment: str = DEFAULT_SEGMENT_SEPARATOR

    def merge(self, overrides: Optional[Mapping[str, Optional[str]]]) -> "Delimiters":
        """
        Return a copy with the given delimiters replaced.

        Keys with a ``None`` or empty value are ignored so partial
        override mappings can be passed straight through.

        Raises:
            ValueError: If a key is not a delimiter name
        """
        if not overrides:
            return self
        if isinstance(overrides, Delimiters):
            overrides = overrides.to_dict()

        unknown = set(overrides) - set(asdict(self))
        if unknown:
            raise ValueError(f"Unknown delimiter name(s): {', '.join(sorted(unknown))}")

        changes = {name: value for name, value in overrides.items() if value}
        return replace(self, **changes) if changes else self

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


DEFAULT_DELIMITERS = Delimiters()


def detect_segment_delimiter(text: str, fallback: str = DEFAULT_SEGMENT_SEPARATOR) -> str:
    """
    Detect the segment terminator used in a message.

    Looks for CRLF, then LF, then CR; the first one found anywhere in the
    text wins. When the text contains none of them, ``fallback`` is used.
    """
    for terminator in SEGMENT_TERMINATORS:
        if terminator in text:
            return terminator
    return fallback


def detect_delimiters_from_msh(
    text: str, segment_delimiter: str = DEFAULT_SEGMENT_SEPARATOR
) -> Optional[Delimiters]:
    """
    Read the delimiter set from the message's own MSH header.

    Only the first segment is inspected. Detection is all-or-nothing: when
    the text does not start with "MSH", or the header is too short to hold
    the field separator plus all four encoding characters, ``None`` is
    returned and the caller keeps its current delimiters.

    Args:
        text: Raw message text
        segment_delimiter: Segment terminator already in effect

    Returns:
        The detected Delimiters (carrying ``segment_delimiter``), or None
    """
    end = text.find(segment_delimiter) if segment_delimiter else -1
    header = text[:end] if end >= 0 else text

    if not header.startswith("MSH"):
        return None

    encoding = header[MSH_ENCODING_START:MSH_ENCODING_END]
    if len(encoding) != MSH_ENCODING_END - MSH_ENCODING_START:
        logger.debug("MSH header too short for delimiter detection: %r", header)
        return None

    return Delimiters(
        field=header[MSH_FIELD_SEPARATOR_OFFSET],
        component=encoding[0],
        repetition=encoding[1],
        escape=encoding[2],
        subcomponent=encoding[3],
        segment=segment_delimiter,
    )
