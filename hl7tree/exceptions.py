"""
Custom exceptions for HL7 parsing and path queries.

Parsing a message never raises for malformed content; these exceptions
cover the situations where guessing would be wrong: a malformed query
path, an ambiguous query, a fatal validation hook, or an unreadable file.
"""

from typing import Any, List, Optional


# Base Exception
class HL7ParseError(Exception):
    """Base exception for all HL7 parsing errors."""

    def __init__(
        self,
        message: str,
        segment: str = None,
        field_index: int = None,
        line_number: int = None,
    ):
        self.segment = segment
        self.field_index = field_index
        self.line_number = line_number

        details = []
        if segment:
            details.append(f"segment={segment}")
        if field_index is not None:
            details.append(f"field={field_index}")
        if line_number is not None:
            details.append(f"line={line_number}")

        full_message = message
        if details:
            full_message = f"{message} [{', '.join(details)}]"

        super().__init__(full_message)


# Path Syntax Error
class PathSyntaxError(HL7ParseError):
    """Raised when a query path does not follow the canonical path grammar."""

    def __init__(self, path: Any, reason: str, column: Optional[int] = None):
        self.path = path
        self.reason = reason
        self.column = column
        msg = f"Invalid HL7 path {path!r}: {reason}"
        if column is not None:
            msg += f" (at column {column})"
        super().__init__(msg)


# Ambiguous Path Error
class AmbiguousPathError(HL7ParseError):
    """
    Raised when a path reaches into a repeating field without naming
    the repetition.

    ``PID-3.1`` is only meaningful when PID-3 has a single repetition;
    with several, the caller must write ``PID-3[2].1``.
    """

    def __init__(
        self, path: str, segment: str, field_number: int, repetition_count: int
    ):
        self.path = path
        self.repetition_count = repetition_count
        super().__init__(
            f"Ambiguous path {path!r}: {segment}-{field_number} has "
            f"{repetition_count} repetitions, specify one explicitly "
            f"(e.g. {segment}-{field_number}[1])",
            segment=segment,
            field_index=field_number,
        )


# Validation Error
class ValidationError(HL7ParseError):
    """Raised when a validation hook reports a fatal error."""

    def __init__(
        self, message: str, node: Any = None, errors: Optional[List[str]] = None
    ):
        self.node = node
        self.errors = list(errors) if errors else [message]
        segment = getattr(node, "name", None)
        line = None
        position = getattr(node, "position", None)
        if position is not None and getattr(node, "type", None) == "segment":
            line = position.start.line
        super().__init__(message, segment=segment, line_number=line)


# Validation Warning
class ValidationWarning(UserWarning):
    """
    A non-fatal finding reported by a validation hook.

    Warnings are collected by the parser and handed to the diagnostic
    sink; they are never raised and never change the returned tree.
    """

    def __init__(self, message: str, node: Any = None):
        self.message = message
        self.node = node
        super().__init__(message)


# File Read Error
class FileReadError(HL7ParseError):
    """Raised when the input file cannot be read."""

    def __init__(self, filepath: str, reason: str):
        self.filepath = filepath
        self.reason = reason
        super().__init__(f"Cannot read file '{filepath}': {reason}")
