import logging

from tenancy.shared.telemetry.correlation import (CorrelationIdFilter, correlation_id_var,
                                                  get_correlation_id)


def make_record() -> logging.LogRecord:
    return logging.LogRecord("tenancy", logging.INFO, __file__, 1, "hello", None, None)


def test_filter_stamps_current_correlation_id():
    token = correlation_id_var.set("req-123")
    try:
        record = make_record()
        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "req-123"
    finally:
        correlation_id_var.reset(token)


def test_default_outside_a_request():
    record = make_record()
    CorrelationIdFilter().filter(record)

    assert record.correlation_id == "-"
    assert get_correlation_id() == "-"
