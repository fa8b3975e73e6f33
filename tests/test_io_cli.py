"""Tests for file input and the command-line interface."""

import json
import logging

import pytest

from hl7_tree import main, run_queries
from hl7tree import parse
from hl7tree.exceptions import FileReadError
from hl7tree.io_handler import parse_hl7_file, read_hl7_file, write_json_output
from hl7tree.parser import ParseOptions

MESSAGE = (
    "MSH|^~\\&|LAB|HOSP|||20250502||ORU^R01|MSG1|P|2.5\r\n"
    "PID|1||P123||DOE^JANE~ROE^JANE\r\n"
    "OBX|1|TX|||A\r\n"
    "OBX|2|TX||||"
)


@pytest.fixture
def message_file(tmp_path):
    path = tmp_path / "message.hl7"
    path.write_bytes(MESSAGE.encode("utf-8"))
    return path


# Tests for file reading
class TestReadHL7File:
    """Tests for read_hl7_file and parse_hl7_file."""

    def test_line_endings_preserved(self, message_file):
        """Test that CRLF reaches the parser untranslated."""
        content = read_hl7_file(message_file)
        assert "\r\n" in content

    def test_latin1_fallback(self, tmp_path):
        """Test a file that is not valid UTF-8."""
        path = tmp_path / "latin1.hl7"
        path.write_bytes("PID|1||||Jos\xe9".encode("latin-1"))
        assert read_hl7_file(path).endswith("José")

    def test_missing_file(self, tmp_path):
        """Test a path that does not exist."""
        with pytest.raises(FileReadError, match="does not exist"):
            read_hl7_file(tmp_path / "missing.hl7")

    def test_directory(self, tmp_path):
        """Test a path that is not a file."""
        with pytest.raises(FileReadError, match="not a file"):
            read_hl7_file(tmp_path)

    def test_parse_file(self, message_file):
        """Test parsing straight from disk."""
        root = parse_hl7_file(message_file)
        assert [s.name for s in root.children] == ["MSH", "PID", "OBX", "OBX"]
        assert root.delimiter == "\r\n"

    def test_parse_file_with_options(self, message_file):
        """Test options are passed through."""
        root = parse_hl7_file(message_file, ParseOptions(empty_mode="empty"))
        assert root.children[3].fields[2].children == ()

    def test_write_json_output(self, tmp_path):
        """Test a tree is written as JSON."""
        out = tmp_path / "tree.json"
        write_json_output(parse("PID|1"), out)
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["type"] == "root"
        assert data["children"][0]["name"] == "PID"


# Tests for query helpers used by the CLI
class TestRunQueries:
    """Tests for run_queries."""

    def test_single_values(self):
        """Test the path-to-value mapping."""
        root = parse(MESSAGE)
        assert run_queries(root, ["PID-3", "ZZZ-1"]) == {"PID-3": "P123", "ZZZ-1": None}

    def test_all_values(self):
        """Test the path-to-values mapping."""
        root = parse(MESSAGE)
        assert run_queries(root, ["OBX-1"], all_matches=True) == {"OBX-1": ["1", "2"]}


# Tests for the command line
class TestCLI:
    """Tests for the hl7-tree command."""

    def test_prints_tree(self, message_file, capsys):
        """Test the default JSON tree output."""
        assert main([str(message_file)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["type"] == "root"
        assert len(data["children"]) == 4

    def test_compact(self, message_file, capsys):
        """Test compact output fits on one line."""
        assert main([str(message_file), "-c"]) == 0
        assert capsys.readouterr().out.count("\n") == 1

    def test_queries(self, message_file, capsys):
        """Test repeated --query options."""
        assert main([str(message_file), "-q", "MSH-9.1", "-q", "PID-5[2].1"]) == 0
        assert json.loads(capsys.readouterr().out) == {"MSH-9.1": "ORU", "PID-5[2].1": "ROE"}

    def test_query_all(self, message_file, capsys):
        """Test --all lists every match."""
        assert main([str(message_file), "-q", "PID-5.2", "--all"]) == 0
        assert json.loads(capsys.readouterr().out) == {"PID-5.2": ["JANE", "JANE"]}

    def test_empty_mode(self, message_file, capsys):
        """Test --empty-mode changes empty values to null."""
        assert main([str(message_file), "--empty-mode", "empty", "-q", "OBX[2]-3"]) == 0
        assert json.loads(capsys.readouterr().out) == {"OBX[2]-3": None}

    def test_output_file(self, message_file, tmp_path):
        """Test writing to --output."""
        out = tmp_path / "out.json"
        assert main([str(message_file), "-o", str(out)]) == 0
        assert json.loads(out.read_text(encoding="utf-8"))["type"] == "root"

    def test_no_auto_detect(self, tmp_path, capsys):
        """Test --no-auto-detect keeps the default delimiters."""
        path = tmp_path / "star.hl7"
        path.write_text("MSH*^~\\&*A*B", encoding="utf-8")
        assert main([str(path), "--no-auto-detect", "-q", "MSH-3"]) == 0
        assert json.loads(capsys.readouterr().out) == {"MSH-3": "*A*B"}

    def test_missing_file(self, tmp_path, capsys):
        """Test exit code 1 for unreadable input."""
        assert main([str(tmp_path / "missing.hl7")]) == 1
        assert "Error reading file" in capsys.readouterr().err

    def test_bad_path(self, message_file, capsys):
        """Test exit code 2 for a malformed query."""
        assert main([str(message_file), "-q", "pid-1"]) == 2
        assert "Parse error" in capsys.readouterr().err

    def test_ambiguous_path(self, message_file, capsys):
        """Test exit code 2 for an ambiguous query."""
        assert main([str(message_file), "-q", "PID-5.1"]) == 2
        assert "Ambiguous" in capsys.readouterr().err

    def test_verbose(self, message_file, capsys):
        """Test the verbose summary."""
        assert main([str(message_file), "-v"]) == 0
        assert "Successfully parsed 4 segments" in capsys.readouterr().err

    def test_validate_passes(self, message_file, capsys):
        """Test --validate accepts a well-formed message."""
        assert main([str(message_file), "--validate", "-q", "PID-3"]) == 0
        assert json.loads(capsys.readouterr().out) == {"PID-3": "P123"}

    def test_validate_rejects_missing_msh(self, tmp_path, capsys):
        """Test --validate turns a structural error into exit code 2."""
        path = tmp_path / "no_msh.hl7"
        path.write_text("PID|1||P123", encoding="utf-8")
        assert main([str(path), "--validate"]) == 2
        assert "must start with MSH" in capsys.readouterr().err

    def test_validate_reports_warnings(self, tmp_path, caplog):
        """Test --validate logs empty segments as warnings."""
        path = tmp_path / "empty_segment.hl7"
        path.write_text(MESSAGE + "\r\nZZZ||", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="hl7tree"):
            assert main([str(path), "--validate"]) == 0
        assert "Segment ZZZ appears to be empty" in caplog.text

    def test_no_validation_by_default(self, tmp_path):
        """Test structural checks only run when asked for."""
        path = tmp_path / "no_msh.hl7"
        path.write_text("PID|1||P123", encoding="utf-8")
        assert main([str(path)]) == 0

    def test_version(self, capsys):
        """Test --version exits after printing the version."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "1.0.0" in capsys.readouterr().out
