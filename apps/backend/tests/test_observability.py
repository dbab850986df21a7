import logging

from database import async_database_url
from observability import correlation_id_context, get_correlation_id
from observability.logging import REDACTED, RecordContextFilter


def _record(**extra):
    record = logging.LogRecord("catalog.test", logging.INFO, __file__, 1, "msg %s", ({"token": "abc"},), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_correlation_id_is_bound_for_the_block():
    assert get_correlation_id() is None
    with correlation_id_context("req-fixed") as req_id:
        assert req_id == "req-fixed"
        assert get_correlation_id() == "req-fixed"
    assert get_correlation_id() is None


def test_correlation_id_is_generated_when_missing():
    with correlation_id_context() as req_id:
        assert req_id.startswith("req-")


def test_filter_stamps_correlation_id_and_redacts():
    record = _record(password="hunter2", product_name="Executive Chair")
    with correlation_id_context("req-abc"):
        assert RecordContextFilter().filter(record)

    assert record.correlation_id == "req-abc"
    assert record.password == REDACTED
    assert record.product_name == "Executive Chair"
    assert record.args == {"token": REDACTED}


def test_async_database_url():
    assert async_database_url("postgres://u:p@db/catalog") == "postgresql+asyncpg://u:p@db/catalog"
    assert async_database_url("postgresql://u:p@db/catalog") == "postgresql+asyncpg://u:p@db/catalog"
    assert async_database_url("postgresql+asyncpg://u:p@db/catalog") == "postgresql+asyncpg://u:p@db/catalog"
