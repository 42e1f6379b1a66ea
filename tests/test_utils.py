"""Tests for utility helpers."""
import logging

from wafctl.utils import (
    RequestIdFilter,
    dedupe,
    set_log_level,
    set_request_id,
    setup_logging,
    split_csv,
)


def test_split_csv_flattens_and_strips():
    """Test that comma-separated values are flattened and stripped."""
    assert split_csv(["1.1.1.1, 2.2.2.2", "3.3.3.3", ",,"]) == ["1.1.1.1", "2.2.2.2", "3.3.3.3"]


def test_split_csv_empty():
    """Test that empty input gives an empty list."""
    assert split_csv([]) == []
    assert split_csv(None) == []


def test_dedupe_keeps_first_occurrence():
    """Test that dedupe keeps order and first occurrences."""
    assert dedupe(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_request_id_filter_uses_context():
    """Test that the filter stamps the context request ID."""
    record = logging.LogRecord("wafctl.test", logging.INFO, __file__, 1, "msg", None, None)

    RequestIdFilter().filter(record)
    assert record.request_id == "-"

    set_request_id("abc123")
    RequestIdFilter().filter(record)
    assert record.request_id == "abc123"


def test_setup_logging_adds_one_handler():
    """Test that repeated setup does not add handlers."""
    logger = setup_logging("utils-test")
    setup_logging("utils-test")

    assert logger.name == "wafctl.utils-test"
    assert len(logger.handlers) == 1


def test_set_log_level_applies_to_all_loggers():
    """Test that set_log_level reaches every wafctl logger."""
    first = setup_logging("level-a")
    second = setup_logging("level-b")

    set_log_level(logging.DEBUG)
    assert first.level == logging.DEBUG
    assert second.level == logging.DEBUG

    set_log_level(logging.INFO)
    assert first.level == logging.INFO
