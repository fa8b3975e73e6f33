"""
File I/O operations for HL7 message processing.

Handles reading HL7 files from disk with encoding fallback and error
handling, and writing parsed trees out as JSON.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import FileReadError
from .models import Root
from .parser import HL7v2Parser, ParseOptions


# Common encodings used in HL7 files
ENCODINGS_TO_TRY = ["utf-8", "latin-1", "cp1252"]


# Read HL7 File
def read_hl7_file(filepath: Union[str, Path]) -> str:
    """
    Read an HL7 file from disk.

    Attempts multiple encodings to handle various file sources. The file
    is read without newline translation so the original segment
    terminators reach the parser.

    Args:
        filepath: Path to the HL7 file

    Returns:
        File content as string

    Raises:
        FileReadError: If file cannot be read
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileReadError(str(filepath), "file does not exist")

    if not filepath.is_file():
        raise FileReadError(str(filepath), "path is not a file")

    last_error = None
    for encoding in ENCODINGS_TO_TRY:
        try:
            with open(filepath, "r", encoding=encoding, newline="") as f:
                return f.read()
        except UnicodeDecodeError as e:
            last_error = e
            continue
        except OSError as e:
            raise FileReadError(str(filepath), str(e))

    raise FileReadError(
        str(filepath),
        f"could not decode file with any supported encoding: {last_error}",
    )


# Parse HL7 File
def parse_hl7_file(
    filepath: Union[str, Path], options: Optional[ParseOptions] = None
) -> Root:
    """
    Read and parse an HL7 file.

    Args:
        filepath: Path to the HL7 file
        options: Parse options

    Returns:
        Root node of the parsed message
    """
    content = read_hl7_file(filepath)
    return HL7v2Parser(options).parse(content)


# Write JSON Output
def write_json_output(
    data: Any, filepath: Union[str, Path], pretty: bool = True
) -> None:
    """
    Write a parsed tree (or any JSON-serializable value) to a file.

    Args:
        data: A node with ``to_dict`` or a plain JSON value
        filepath: Output file path
        pretty: If True, format JSON with indentation
    """
    if hasattr(data, "to_dict"):
        data = data.to_dict()

    indent = 2 if pretty else None

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)
        f.write("\n")
