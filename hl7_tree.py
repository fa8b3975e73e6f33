#!/usr/bin/env python3
"""
HL7 v2 Tree Parser - Command Line Interface

Parses an HL7 v2.x message file into its syntax tree and prints it as
JSON, or resolves one or more paths against it.

Usage:
    python hl7_tree.py message.hl7
    python hl7_tree.py message.hl7 -q PID-5.1 -q MSH-9
    python hl7_tree.py message.hl7 --empty-mode empty -o tree.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List

from hl7tree import __version__
from hl7tree.exceptions import FileReadError, HL7ParseError
from hl7tree.io_handler import parse_hl7_file, write_json_output
from hl7tree.models import Root
from hl7tree.parser import ParseOptions
from hl7tree.query import node_value, select_all, value
from hl7tree.validation import BasicValidationHook


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="hl7-tree",
        description="Parse HL7 v2 messages into a JSON syntax tree and query it by path",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s message.hl7
      Print the syntax tree as JSON

  %(prog)s message.hl7 -q PID-5.1 -q MSH-9.2
      Print the values at the given paths

  %(prog)s message.hl7 -q OBX-5 --all
      Print every OBX-5 value in the message

  %(prog)s message.hl7 --empty-mode empty -o tree.json
      Save the tree without filler nodes for empty fields

  %(prog)s message.hl7 --validate
      Fail if the message does not start with a complete MSH segment
""",
    )

    parser.add_argument("input_file", type=Path, help="Path to the HL7 file to parse")

    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        dest="output_file",
        help="Output file path (default: stdout)",
    )

    parser.add_argument(
        "-q",
        "--query",
        action="append",
        dest="queries",
        metavar="PATH",
        help="Resolve a path such as PID-5[1].2 (repeatable)",
    )

    parser.add_argument(
        "--all",
        action="store_true",
        help="With --query, list the values of every match",
    )

    parser.add_argument(
        "--empty-mode",
        choices=["legacy", "empty"],
        default=None,
        help="How empty positions are represented (default: legacy)",
    )

    parser.add_argument(
        "--no-auto-detect",
        action="store_false",
        dest="auto_detect",
        help="Do not read delimiters from the MSH header",
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Run the basic structural checks (MSH first, MSH field count, empty segments)",
    )

    parser.add_argument(
        "-c",
        "--compact",
        action="store_true",
        help="Output compact JSON (no indentation)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def run_queries(root: Root, queries: List[str], all_matches: bool = False) -> Dict[str, object]:
    """
    Resolve each path against ``root``.

    Returns:
        Mapping of path to its value, or to the list of values of every
        match when ``all_matches`` is set
    """
    if all_matches:
        return {path: [node_value(m.node) for m in select_all(root, path)] for path in queries}
    return {path: value(root, path) for path in queries}


def main(args: List[str] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_argument_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    options = ParseOptions(
        auto_detect_delimiters=parsed_args.auto_detect,
        empty_mode=parsed_args.empty_mode,
        validation_hooks=[BasicValidationHook()] if parsed_args.validate else [],
    )

    try:
        root = parse_hl7_file(parsed_args.input_file, options)

        if parsed_args.queries:
            output = run_queries(root, parsed_args.queries, parsed_args.all)
        else:
            output = root.to_dict()

        if parsed_args.output_file:
            write_json_output(output, parsed_args.output_file, pretty=not parsed_args.compact)
            if parsed_args.verbose:
                print(f"Output written to: {parsed_args.output_file}", file=sys.stderr)
        else:
            indent = None if parsed_args.compact else 2
            print(json.dumps(output, indent=indent, ensure_ascii=False))

        if parsed_args.verbose:
            count = len(root.children)
            msg = "segment" if count == 1 else "segments"
            print(f"Successfully parsed {count} {msg}", file=sys.stderr)

        return 0

    except FileReadError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    except HL7ParseError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        return 2

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if parsed_args.verbose:
            import traceback

            traceback.print_exc()
        return 3


if __name__ == "__main__":
    sys.exit(main())
