"""
Tree builders: turn one segment's tokens into a Segment node.

Field content is split level by level (field -> repetition -> component
-> subcomponent) on the matching delimiter tokens. The rules for empty
positions are asymmetric:

* a trailing field delimiter does not create a field
  (``PID|1|`` has one field);
* a trailing repetition, component or subcomponent delimiter does create
  an empty node (``OBX|A~`` has two repetitions);
* leading and intermediate delimiters always create empty nodes.

How far an empty position descends depends on the EmptyMode: ``legacy``
always builds the full Field -> FieldRepetition -> Component ->
Subcomponent("") chain, ``empty`` stops at the first container that has
no tokens at all.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .delimiters import DEFAULT_DELIMITERS, Delimiters
from .models import (
    Component,
    Field,
    FieldRepetition,
    Point,
    Position,
    Segment,
    SegmentHeader,
    Subcomponent,
)
from .tokenizer import Token, TokenType

DEFAULT_SEGMENT_TYPE = "*"
MSH_SEGMENT_TYPE = "MSH"


class EmptyMode(str, Enum):
    LEGACY = "legacy"
    EMPTY = "empty"


@dataclass(frozen=True)
class BuildContext:
    """Settings shared by every builder during one parse."""

    delimiters: Delimiters = DEFAULT_DELIMITERS
    empty_mode: EmptyMode = EmptyMode.LEGACY


@dataclass(frozen=True)
class SegmentBuildInput:
    """
    Everything a segment builder gets to see.

    ``tokens`` are the segment's tokens without the terminating
    SEGMENT_END; ``source`` is the full (preprocessed) message text the
    token positions refer to.
    """

    segment_type: str
    tokens: Tuple[Token, ...]
    index: int
    source: str
    context: BuildContext

    @property
    def text(self) -> str:
        """The segment's own source text."""
        if not self.tokens:
            return ""
        start = self.tokens[0].position.start.offset
        end = self.tokens[-1].position.end.offset
        return self.source[start:end]


Chunk = Tuple[Point, List[Token]]


def split_tokens(tokens: Sequence[Token], delimiter: TokenType, start: Point) -> List[Chunk]:
    """
    Split ``tokens`` on ``delimiter``.

    Always returns at least one chunk. Each chunk is paired with the point
    where it begins: ``start`` for the first, the end of the separating
    delimiter for the rest.
    """
    chunks: List[Chunk] = [(start, [])]
    for token in tokens:
        if token.type is delimiter:
            chunks.append((token.position.end, []))
        else:
            chunks[-1][1].append(token)
    return chunks


def _span(tokens: Sequence[Token], start: Point) -> Position:
    end = tokens[-1].position.end if tokens else start
    return Position(start, end)


# Field-level builders

def build_subcomponent(tokens: Sequence[Token], start: Point) -> Subcomponent:
    value = "".join(token.value or "" for token in tokens if token.type is TokenType.TEXT)
    return Subcomponent(value=value, position=_span(tokens, start))


def build_component(tokens: Sequence[Token], start: Point, context: BuildContext) -> Component:
    if not tokens and context.empty_mode is EmptyMode.EMPTY:
        return Component(children=(), position=_span(tokens, start))
    children = tuple(
        build_subcomponent(chunk, chunk_start)
        for chunk_start, chunk in split_tokens(tokens, TokenType.SUBCOMP_DELIM, start)
    )
    return Component(children=children, position=_span(tokens, start))


def build_repetition(
    tokens: Sequence[Token], start: Point, context: BuildContext
) -> FieldRepetition:
    if not tokens and context.empty_mode is EmptyMode.EMPTY:
        return FieldRepetition(children=(), position=_span(tokens, start))
    children = tuple(
        build_component(chunk, chunk_start, context)
        for chunk_start, chunk in split_tokens(tokens, TokenType.COMPONENT_DELIM, start)
    )
    return FieldRepetition(children=children, position=_span(tokens, start))


def build_field(tokens: Sequence[Token], start: Point, context: BuildContext) -> Field:
    if not tokens and context.empty_mode is EmptyMode.EMPTY:
        return Field(children=(), position=_span(tokens, start))
    children = tuple(
        build_repetition(chunk, chunk_start, context)
        for chunk_start, chunk in split_tokens(tokens, TokenType.REPETITION_DELIM, start)
    )
    return Field(children=children, position=_span(tokens, start))


def build_literal_field(value: str, position: Position) -> Field:
    """A field whose whole text is one value, never split on delimiters."""
    sub = Subcomponent(value=value, position=position)
    component = Component(children=(sub,), position=position)
    repetition = FieldRepetition(children=(component,), position=position)
    return Field(children=(repetition,), position=position)


# Segment Builders
class SegmentBuilder:
    """
    Builds a Segment node from a segment's tokens.

    This is the default strategy and handles any segment type. Subclasses
    set ``segment_type`` and override ``build`` (or ``can_build``) to give
    particular segments special treatment; see SegmentBuilderRegistry.
    """

    segment_type: str = DEFAULT_SEGMENT_TYPE

    def can_build(self, input: SegmentBuildInput) -> bool:
        return bool(input.tokens)

    def build(self, input: SegmentBuildInput) -> Optional[Segment]:
        """
        Build the segment, or return None when it has no fields.

        A segment consisting of only its name, or its name and a single
        trailing field delimiter, is dropped from the tree.
        """
        if not self.can_build(input):
            return None

        header, rest = self.build_header(input.tokens)
        fields = self.build_fields(rest, header.position.end, input.context)
        if not fields:
            return None

        return self.make_segment(input, header, fields)

    def build_header(self, tokens: Sequence[Token]) -> Tuple[SegmentHeader, Sequence[Token]]:
        """Split off the segment name; a nameless segment gets an empty header."""
        first = tokens[0]
        if first.type is TokenType.TEXT:
            return SegmentHeader(value=first.value or "", position=first.position), tokens[1:]
        start = first.position.start
        return SegmentHeader(value="", position=Position(start, start)), tokens

    def build_fields(
        self, tokens: Sequence[Token], start: Point, context: BuildContext
    ) -> List[Field]:
        """
        Build the fields that follow the header.

        The first chunk is whatever sits between the name and the first
        field delimiter; normally nothing. If a malformed segment has
        content glued to its name, that content is kept as the first field.
        """
        chunks = split_tokens(tokens, TokenType.FIELD_DELIM, start)
        leading, chunks = chunks[0], chunks[1:]
        if leading[1]:
            chunks.insert(0, leading)

        # Trailing field delimiter: no extra field
        if chunks and not chunks[-1][1]:
            chunks.pop()

        return [build_field(chunk, chunk_start, context) for chunk_start, chunk in chunks]

    def make_segment(
        self,
        input: SegmentBuildInput,
        header: SegmentHeader,
        fields: Sequence[Field],
        data: Optional[dict] = None,
    ) -> Segment:
        tokens = input.tokens
        return Segment(
            name=header.value,
            children=(header, *fields),
            index=input.index,
            delimiter=input.context.delimiters.field,
            position=Position(header.position.start, tokens[-1].position.end),
            data=data,
        )


class MSHSegmentBuilder(SegmentBuilder):
    """
    Builder for MSH segments.

    MSH-1 is the field separator itself and MSH-2 the (up to four)
    encoding characters. Both are kept as literal single values and never
    split on delimiters; everything from MSH-3 on is built normally.
    Works for the bootstrapped header at the start of a message as well
    as for MSH segments further down, which are tokenized normally.
    """

    segment_type = MSH_SEGMENT_TYPE

    def can_build(self, input: SegmentBuildInput) -> bool:
        return bool(input.tokens) and input.text.startswith(MSH_SEGMENT_TYPE)

    def build(self, input: SegmentBuildInput) -> Optional[Segment]:
        if not self.can_build(input):
            return None

        text = input.text
        origin = input.tokens[0].position.start

        def point(offset: int) -> Point:
            # MSH-1 and MSH-2 never span a segment delimiter
            return Point(origin.offset + offset, origin.line, origin.column + offset)

        name_end = len(MSH_SEGMENT_TYPE)
        header = SegmentHeader(value=MSH_SEGMENT_TYPE, position=Position(point(0), point(name_end)))

        fields: List[Field] = []
        separator = text[name_end:name_end + 1]
        if separator:
            fields.append(build_literal_field(separator, Position(point(name_end), point(name_end + 1))))

        encoding_start = name_end + 1
        encoding = text[encoding_start:encoding_start + 4]
        if encoding:
            fields.append(
                build_literal_field(
                    encoding, Position(point(encoding_start), point(encoding_start + len(encoding)))
                )
            )

        if not fields:
            return None

        literal_end = point(encoding_start + len(encoding))
        rest = _tokens_from(input.tokens, literal_end)
        fields.extend(self.build_fields(rest, literal_end, input.context))
        return self.make_segment(input, header, fields)


def _tokens_from(tokens: Sequence[Token], start: Point) -> List[Token]:
    """Tokens at or after ``start``; a TEXT token straddling it is trimmed."""
    result: List[Token] = []
    for token in tokens:
        token_start = token.position.start.offset
        token_end = token.position.end.offset
        if token_start >= start.offset:
            result.append(token)
        elif token.type is TokenType.TEXT and token_end > start.offset:
            cut = start.offset - token_start
            result.append(
                Token(TokenType.TEXT, Position(start, token.position.end), (token.value or "")[cut:])
            )
    return result
