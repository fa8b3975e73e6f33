"""Unit tests for the path grammar and its cache."""

import logging

import pytest

from hl7tree.exceptions import PathSyntaxError
from hl7tree.path import (
    PARSE_CACHE_LIMIT,
    GroupLocator,
    PathCache,
    PathLocator,
    SegmentLocator,
    clear_path_cache,
    parse_path,
    path_cache_size,
)


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_path_cache()
    yield
    clear_path_cache()


# Tests for accepted paths
class TestParsePath:
    """Tests for valid paths."""

    def test_segment_only(self):
        """Test a bare name."""
        assert parse_path("PID") == PathLocator(segment=SegmentLocator("PID"))

    def test_full_field_path(self):
        """Test every field-level element."""
        locator = parse_path("PID-5[1].2.1")
        assert locator.segment == SegmentLocator("PID")
        assert locator.field == 5
        assert locator.repetition == 1
        assert locator.component == 2
        assert locator.subcomponent == 1

    def test_component_without_repetition(self):
        """Test that the repetition index is optional."""
        locator = parse_path("PID-5.2")
        assert locator.repetition is None
        assert locator.component == 2

    def test_segment_repetition(self):
        """Test a repetition on the segment name."""
        locator = parse_path("OBX[3]-5")
        assert locator.segment == SegmentLocator("OBX", 3)
        assert locator.field == 5

    def test_groups(self):
        """Test group prefixes."""
        locator = parse_path("ORDERS[2]-RESULT-OBX[3]-5[1].2.1")
        assert locator.groups == (GroupLocator("ORDERS", 2), GroupLocator("RESULT"))
        assert locator.segment == SegmentLocator("OBX", 3)
        assert (locator.field, locator.repetition, locator.component, locator.subcomponent) == (
            5, 1, 2, 1,
        )

    def test_group_leaf(self):
        """Test a path ending in a name that may be a group."""
        locator = parse_path("ORDER-TIMING")
        assert locator.groups == (GroupLocator("ORDER"),)
        assert locator.segment.name == "TIMING"
        assert not locator.has_field

    def test_names_with_digits(self):
        """Test alphanumeric names of any length."""
        assert parse_path("PV1-3").segment.name == "PV1"
        assert parse_path("Z01ABC").segment.name == "Z01ABC"

    def test_leading_zeros(self):
        """Test numbers with leading zeros."""
        assert parse_path("PID-05").field == 5

    def test_to_dict(self):
        """Test the structured form of a locator."""
        assert parse_path("G[2]-PID-3.1").to_dict() == {
            "segment": {"name": "PID"},
            "groups": [{"name": "G", "repetition": 2}],
            "field": 3,
            "component": 1,
        }


# Tests for rejected paths
class TestInvalidPaths:
    """Tests for paths that must be rejected."""

    @pytest.mark.parametrize(
        "path",
        [
            " PID-1",
            "PID-1 ",
            "pid-1",
            "1PID",
            "PID-0",
            "PID[0]",
            "ORDER[0]-PID",
            "PID-1[0]",
            "PID-1.0",
            "PID-1.1.0",
            "PID-",
            "PID-1.",
            "PID-1.1.1.1",
            "PID--1",
            "PID-1[1",
            "PID-a",
            "PID-١",
            "PID_1",
            "PID-1[1].2[1]",
        ],
    )
    def test_rejected(self, path):
        """Test malformed paths raise PathSyntaxError."""
        with pytest.raises(PathSyntaxError):
            parse_path(path)

    @pytest.mark.parametrize("path", ["", None, 5])
    def test_non_string(self, path):
        """Test that only non-empty strings are accepted."""
        with pytest.raises(PathSyntaxError, match="non-empty string"):
            parse_path(path)

    def test_error_reports_column(self):
        """Test the error points at the offending character."""
        with pytest.raises(PathSyntaxError) as exc_info:
            parse_path("PID-1x")
        assert exc_info.value.column == 6
        assert exc_info.value.path == "PID-1x"

    def test_non_positive_message(self):
        """Test the message for a zero index."""
        with pytest.raises(PathSyntaxError, match=">= 1"):
            parse_path("PID-0")


# Tests for the path cache
class TestPathCache:
    """Tests for memoization of parsed paths."""

    def test_cached_locator_reused(self):
        """Test a repeated path returns the cached locator."""
        first = parse_path("PID-3")
        assert parse_path("PID-3") is first
        assert path_cache_size() == 1

    def test_clear(self):
        """Test clearing resets the size to zero."""
        parse_path("PID-3")
        parse_path("PID-4")
        assert path_cache_size() == 2
        clear_path_cache()
        assert path_cache_size() == 0

    def test_errors_not_cached(self):
        """Test that rejected paths are not stored."""
        with pytest.raises(PathSyntaxError):
            parse_path("PID-0")
        assert path_cache_size() == 0

    def test_default_capacity(self):
        """Test the module cache never exceeds its capacity."""
        for i in range(1, PARSE_CACHE_LIMIT + 50):
            parse_path(f"PID-{i}")
        assert path_cache_size() == PARSE_CACHE_LIMIT

    def test_lru_eviction(self):
        """Test a hit protects an entry from eviction."""
        cache = PathCache(capacity=2)
        a, b, c = (parse_path(p) for p in ("A", "B", "C"))
        cache.put("A", a)
        cache.put("B", b)
        assert cache.get("A") is a
        cache.put("C", c)
        assert cache.keys() == ["A", "C"]
        assert "B" not in cache

    def test_eviction_logged(self, caplog):
        """Test evictions are logged at debug level."""
        cache = PathCache(capacity=1)
        cache.put("A", parse_path("A"))
        with caplog.at_level(logging.DEBUG, logger="hl7tree.path"):
            cache.put("B", parse_path("B"))
        assert any("Evicted" in r.getMessage() for r in caplog.records)

    def test_invalid_capacity(self):
        """Test a cache must hold at least one entry."""
        with pytest.raises(ValueError):
            PathCache(capacity=0)
