# backend/linklian/tests/unit/test_logging_config.py

import logging

from linklian.logging_config import LOGGING_CONFIG, RequestIdFilter, request_id_var


def make_record():
    return logging.LogRecord("linklian", logging.INFO, __file__, 1, "hello", None, None)


def test_filter_uses_the_current_request_id():
    token = request_id_var.set("abc123")
    try:
        record = make_record()
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "abc123"
    finally:
        request_id_var.reset(token)


def test_filter_outside_a_request_uses_placeholder():
    record = make_record()
    RequestIdFilter().filter(record)
    assert record.request_id == "-"


def test_default_handler_is_filtered():
    assert "request_id_filter" in LOGGING_CONFIG["handlers"]["default"]["filters"]
    assert "%(request_id)s" in LOGGING_CONFIG["formatters"]["default"]["fmt"]
