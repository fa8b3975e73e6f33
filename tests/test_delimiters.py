"""Unit tests for the delimiter model and detection."""

import pytest

from hl7tree.delimiters import (
    DEFAULT_DELIMITERS,
    Delimiters,
    detect_delimiters_from_msh,
    detect_segment_delimiter,
)


# Tests for the Delimiters value
class TestDelimiters:
    """Tests for the Delimiters dataclass."""

    def test_defaults(self):
        """Test the standard HL7 delimiter set."""
        d = DEFAULT_DELIMITERS
        assert d.field == "|"
        assert d.component == "^"
        assert d.repetition == "~"
        assert d.escape == "\\"
        assert d.subcomponent == "&"
        assert d.segment == "\r"

    def test_merge_overrides_given_keys(self):
        """Test that merge replaces only the named delimiters."""
        merged = DEFAULT_DELIMITERS.merge({"field": "*", "component": None})
        assert merged.field == "*"
        assert merged.component == "^"
        assert DEFAULT_DELIMITERS.field == "|"

    def test_merge_accepts_delimiters(self):
        """Test merging another Delimiters instance."""
        other = Delimiters(field="#")
        assert DEFAULT_DELIMITERS.merge(other).field == "#"

    def test_merge_none_returns_same(self):
        """Test that merging nothing is a no-op."""
        assert DEFAULT_DELIMITERS.merge(None) is DEFAULT_DELIMITERS

    def test_merge_rejects_unknown_names(self):
        """Test that a typo in a delimiter name is reported."""
        with pytest.raises(ValueError, match="feild"):
            DEFAULT_DELIMITERS.merge({"feild": "*"})

    def test_to_dict(self):
        """Test the dict form uses the six role names."""
        assert set(DEFAULT_DELIMITERS.to_dict()) == {
            "field", "component", "repetition", "escape", "subcomponent", "segment",
        }


# Tests for segment delimiter detection
class TestDetectSegmentDelimiter:
    """Tests for detect_segment_delimiter."""

    def test_crlf_wins_over_lf(self):
        """Test CRLF is preferred when present."""
        assert detect_segment_delimiter("A\nB\r\nC") == "\r\n"

    def test_lf(self):
        """Test LF-only text."""
        assert detect_segment_delimiter("A\nB\rC") == "\n"

    def test_cr(self):
        """Test CR-only text."""
        assert detect_segment_delimiter("A\rB") == "\r"

    def test_fallback(self):
        """Test the fallback is used when no line ending is present."""
        assert detect_segment_delimiter("PID|1") == "\r"
        assert detect_segment_delimiter("PID|1", "$") == "$"


# Tests for MSH delimiter detection
class TestDetectDelimitersFromMSH:
    """Tests for detect_delimiters_from_msh."""

    def test_custom_field_separator(self):
        """Test detection of a non-standard field separator."""
        result = detect_delimiters_from_msh("MSH*^~\\&*SENDER*FAC", "\r")
        assert result == Delimiters(
            field="*",
            component="^",
            repetition="~",
            escape="\\",
            subcomponent="&",
            segment="\r",
        )

    def test_all_roles_are_positional(self):
        """Test that MSH-2 is read as component, repetition, escape, subcomponent."""
        result = detect_delimiters_from_msh("MSH#!@$%#X", "\n")
        assert result.field == "#"
        assert result.component == "!"
        assert result.repetition == "@"
        assert result.escape == "$"
        assert result.subcomponent == "%"
        assert result.segment == "\n"

    def test_not_msh(self):
        """Test that text not starting with MSH is left alone."""
        assert detect_delimiters_from_msh("PID|1|2") is None

    def test_short_header_aborts(self):
        """Test that fewer than four encoding characters abort detection."""
        assert detect_delimiters_from_msh("MSH|^~") is None

    def test_only_first_segment_is_read(self):
        """Test that a short header cannot borrow characters from the next segment."""
        assert detect_delimiters_from_msh("MSH|^~\rPID|1", "\r") is None
