"""
Preprocessing steps applied to raw text before tokenizing.

Each step takes the ParserContext and returns it (possibly replaced).
The default pipeline strips a UTF-8 BOM, settles the delimiters (from
the message's MSH header unless auto-detection is off) and rewrites every
newline variant to the segment delimiter.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Sequence

from .delimiters import (
    SEGMENT_TERMINATORS,
    Delimiters,
    detect_delimiters_from_msh,
    detect_segment_delimiter,
)

logger = logging.getLogger(__name__)

UTF8_BOM = "\ufeff"

_NEWLINES = re.compile(r"\r\n|\r|\n")


@dataclass
class ParserContext:
    """Mutable state threaded through the preprocessing steps."""

    input: str
    delimiters: Delimiters
    auto_detect: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)


PreprocessorStep = Callable[[ParserContext], ParserContext]


def strip_bom(ctx: ParserContext) -> ParserContext:
    """Remove a single leading UTF-8 byte order mark."""
    if ctx.input.startswith(UTF8_BOM):
        ctx.input = ctx.input[len(UTF8_BOM):]
        ctx.metadata["bom"] = True
    return ctx


def detect_delimiters(ctx: ParserContext) -> ParserContext:
    """Detect the segment terminator and the MSH-encoded delimiters."""
    if not ctx.auto_detect:
        return ctx

    segment = detect_segment_delimiter(ctx.input, ctx.delimiters.segment)
    detected = detect_delimiters_from_msh(ctx.input, segment)
    if detected is not None:
        ctx.delimiters = detected
        ctx.metadata["delimiters_detected"] = True
        logger.debug("Detected delimiters from MSH: %s", detected)
    else:
        ctx.delimiters = replace(ctx.delimiters, segment=segment)
    return ctx


def normalize_newlines(ctx: ParserContext) -> ParserContext:
    """
    Rewrite CRLF, LF and CR to the segment delimiter.

    Only applies when the segment delimiter is itself a newline variant;
    a custom terminator leaves line breaks inside the text untouched.
    """
    segment = ctx.delimiters.segment
    if segment in SEGMENT_TERMINATORS:
        ctx.input = _NEWLINES.sub(segment, ctx.input)
    return ctx


DEFAULT_PREPROCESSORS = (strip_bom, detect_delimiters, normalize_newlines)


def run_preprocessors(
    text: str,
    delimiters: Delimiters,
    auto_detect: bool = True,
    steps: Optional[Sequence[PreprocessorStep]] = None,
) -> ParserContext:
    """
    Build a ParserContext for ``text`` and run it through ``steps``.

    Args:
        text: Raw message text
        delimiters: Delimiters configured by the caller
        auto_detect: Whether detect_delimiters may override them
        steps: Steps to run; None means DEFAULT_PREPROCESSORS and an
            empty sequence disables preprocessing

    Returns:
        The final ParserContext
    """
    ctx = ParserContext(input=text, delimiters=delimiters, auto_detect=auto_detect)
    for step in DEFAULT_PREPROCESSORS if steps is None else steps:
        ctx = step(ctx)
    return ctx
