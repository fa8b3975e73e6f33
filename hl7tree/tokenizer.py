"""
HL7 message tokenizer.

This module handles the raw wire format of HL7 v2.x messages, turning the
text into a flat stream of delimiter tokens and text runs, each annotated
with its exact source position. It makes no decisions about structure;
that is the tree builder's job.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .delimiters import DEFAULT_DELIMITERS, Delimiters
from .models import Point, Position

MSH_SEGMENT_NAME = "MSH"
MSH_FIELD_SEPARATOR_END = 4
MSH_ENCODING_END = 8


class TokenType(str, Enum):
    SEGMENT_END = "SEGMENT_END"
    FIELD_DELIM = "FIELD_DELIM"
    REPETITION_DELIM = "REPETITION_DELIM"
    COMPONENT_DELIM = "COMPONENT_DELIM"
    SUBCOMP_DELIM = "SUBCOMP_DELIM"
    TEXT = "TEXT"


# Token Dataclass
@dataclass(frozen=True)
class Token:
    """A delimiter or a run of text. Only TEXT tokens carry a value."""

    type: TokenType
    position: Position
    value: Optional[str] = None


# HL7 Tokenizer Class
class HL7Tokenizer:
    """
    Scans raw HL7 text into tokens, left to right.

    When the text starts with "MSH" the tokenizer first runs a one-time
    bootstrap: it emits the segment name, a synthetic FIELD_DELIM, the
    field separator as TEXT, another synthetic FIELD_DELIM and the
    encoding characters as TEXT. Those header characters are delimiters
    themselves, so scanning them normally would shred MSH-1 and MSH-2.
    Later MSH segments in the same text are tokenized normally.

    Usage:
        tokenizer = HL7Tokenizer(delimiters)
        for token in tokenizer.reset(text):
            ...
    """

    def __init__(self, delimiters: Delimiters = DEFAULT_DELIMITERS):
        self.delimiters = delimiters
        self._text = ""
        self._index = 0
        self._line = 1
        self._column = 1
        self._bootstrap: List[Tuple[TokenType, str]] = []

    def reset(self, text: str, delimiters: Optional[Delimiters] = None) -> "HL7Tokenizer":
        """Start scanning ``text`` from the beginning."""
        if delimiters is not None:
            self.delimiters = delimiters
        self._text = text
        self._index = 0
        self._line = 1
        self._column = 1
        self._bootstrap = self._plan_bootstrap(text)
        return self

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize ``text`` in one go."""
        return list(self.reset(text))

    @property
    def point(self) -> Point:
        """Current scan position."""
        return Point(offset=self._index, line=self._line, column=self._column)

    def __iter__(self) -> Iterator[Token]:
        token = self.next_token()
        while token is not None:
            yield token
            token = self.next_token()

    def next_token(self) -> Optional[Token]:
        """Return the next token, or None once the text is exhausted."""
        if self._bootstrap:
            return self._next_bootstrap_token()

        text = self._text
        if self._index >= len(text):
            return None

        start = self.point
        delims = self.delimiters
        segment = delims.segment
        char = text[self._index]

        if segment and text.startswith(segment, self._index):
            self._advance_line(len(segment))
            return Token(TokenType.SEGMENT_END, Position(start, self.point))

        token_type = self._delimiter_type(char)
        if token_type is not None:
            self._advance(1)
            return Token(token_type, Position(start, self.point))

        # TEXT until next delimiter or end
        end = self._scan_text(self._index)
        value = text[self._index:end]
        self._advance(len(value))
        return Token(TokenType.TEXT, Position(start, self.point), value)

    # ---- helpers ----

    def _plan_bootstrap(self, text: str) -> List[Tuple[TokenType, str]]:
        if not text.startswith(MSH_SEGMENT_NAME):
            return []

        # Never let a truncated header run into the next segment
        limit = len(text)
        if self.delimiters.segment:
            found = text.find(self.delimiters.segment)
            if found >= 0:
                limit = found

        separator = text[len(MSH_SEGMENT_NAME):min(MSH_FIELD_SEPARATOR_END, limit)]
        encoding = text[MSH_FIELD_SEPARATOR_END:min(MSH_ENCODING_END, limit)]

        return [
            (TokenType.TEXT, MSH_SEGMENT_NAME),
            (TokenType.FIELD_DELIM, ""),
            (TokenType.TEXT, separator),
            (TokenType.FIELD_DELIM, ""),
            (TokenType.TEXT, encoding),
        ]

    def _next_bootstrap_token(self) -> Optional[Token]:
        while self._bootstrap:
            token_type, value = self._bootstrap.pop(0)
            start = self.point
            if token_type is TokenType.FIELD_DELIM:
                # Synthetic: consumes no input
                return Token(TokenType.FIELD_DELIM, Position(start, start))
            if value:
                self._advance(len(value))
                return Token(TokenType.TEXT, Position(start, self.point), value)
        return self.next_token()

    def _delimiter_type(self, char: str) -> Optional[TokenType]:
        delims = self.delimiters
        if char == delims.field:
            return TokenType.FIELD_DELIM
        if char == delims.repetition:
            return TokenType.REPETITION_DELIM
        if char == delims.component:
            return TokenType.COMPONENT_DELIM
        if char == delims.subcomponent:
            return TokenType.SUBCOMP_DELIM
        return None

    def _scan_text(self, index: int) -> int:
        text = self._text
        delims = self.delimiters
        stops = {delims.field, delims.repetition, delims.component, delims.subcomponent}
        segment = delims.segment
        segment_start = segment[:1]

        end = index
        while end < len(text):
            char = text[end]
            if char in stops:
                break
            if char == segment_start and text.startswith(segment, end):
                break
            end += 1

        # A lone first character of a multi-character segment delimiter
        return max(end, index + 1)

    def _advance(self, count: int) -> None:
        self._index += count
        self._column += count

    def _advance_line(self, count: int) -> None:
        self._index += count
        self._line += 1
        self._column = 1


def tokenize(text: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> List[Token]:
    """Convenience wrapper around HL7Tokenizer."""
    return HL7Tokenizer(delimiters).tokenize(text)
