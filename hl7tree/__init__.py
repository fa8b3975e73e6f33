"""
HL7 v2 Tree Parser

Parses HL7 v2.x messages into a position-annotated syntax tree and
resolves canonical paths such as ``PID-5[1].2`` against it.
"""

from .builders import BuildContext, EmptyMode, SegmentBuilder, SegmentBuildInput
from .delimiters import Delimiters, detect_delimiters_from_msh, detect_segment_delimiter
from .exceptions import (
    AmbiguousPathError,
    FileReadError,
    HL7ParseError,
    PathSyntaxError,
    ValidationError,
    ValidationWarning,
)
from .parser import HL7v2Parser, ParseOptions, parse
from .path import PathLocator, clear_path_cache, parse_path, path_cache_size
from .query import Match, exists, matches, select, select_all, value
from .validation import (
    BasicValidationHook,
    SegmentRequirementValidationHook,
    ValidationHook,
    ValidationResult,
)

__version__ = "1.0.0"
__author__ = "Healthcare Integration Team"

__all__ = [
    "AmbiguousPathError",
    "BasicValidationHook",
    "BuildContext",
    "Delimiters",
    "EmptyMode",
    "FileReadError",
    "HL7ParseError",
    "HL7v2Parser",
    "Match",
    "ParseOptions",
    "PathLocator",
    "PathSyntaxError",
    "SegmentBuildInput",
    "SegmentBuilder",
    "SegmentRequirementValidationHook",
    "ValidationError",
    "ValidationHook",
    "ValidationResult",
    "ValidationWarning",
    "clear_path_cache",
    "detect_delimiters_from_msh",
    "detect_segment_delimiter",
    "exists",
    "matches",
    "parse",
    "parse_path",
    "path_cache_size",
    "select",
    "select_all",
    "value",
]
