"""Tests for log formatting."""

import logging
import sys

from core.log_config import LOG_FORMAT, ExtraFieldsFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.posts",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Failed to delete post image",
        args=(),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_formatter_appends_extra_context() -> None:
    formatter = ExtraFieldsFormatter(LOG_FORMAT)

    line = formatter.format(_record(post_id=7, storage_id="posts/u1/abc"))

    assert "[services.posts] Failed to delete post image" in line
    assert line.endswith("post_id=7 storage_id='posts/u1/abc'")


def test_formatter_leaves_plain_records_unchanged() -> None:
    formatter = ExtraFieldsFormatter(LOG_FORMAT)

    line = formatter.format(_record())

    assert line.endswith("[services.posts] Failed to delete post image")


def test_formatter_keeps_context_on_first_line_of_tracebacks() -> None:
    formatter = ExtraFieldsFormatter(LOG_FORMAT)
    try:
        raise RuntimeError("storage offline")
    except RuntimeError:
        record = _record(post_id=7)
        record.exc_info = sys.exc_info()

    first_line, _, rest = formatter.format(record).partition("\n")

    assert first_line.endswith("post_id=7")
    assert "RuntimeError: storage offline" in rest
