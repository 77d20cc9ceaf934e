import logging

from relmap.utils.logging import (
    LOG_LEVEL_ENV,
    ROOT_LOGGER,
    _level_from_env,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    time_call,
)


def test_correlation_id_round_trip():
    token = set_correlation_id("test-token")
    assert token == "test-token"
    assert get_correlation_id() == "test-token"


def test_loggers_live_under_package_root():
    assert get_logger("mapping.mapper").name == f"{ROOT_LOGGER}.mapping.mapper"
    assert logging.getLogger(ROOT_LOGGER).handlers


def test_time_call_logs_duration(caplog):
    logger = get_logger("tests.logging")
    caplog.set_level(logging.DEBUG, logger=logger.name)
    with time_call("unit-test", logger, threshold_ms=0) as timer:
        pass
    assert timer.elapsed_ms >= 0
    records = [record for record in caplog.records if record.name == logger.name]
    assert any("unit-test took" in record.message for record in records)
    assert records[-1].levelno == logging.WARNING


def test_time_call_logs_failures_at_debug(caplog):
    logger = get_logger("tests.logging")
    caplog.set_level(logging.DEBUG, logger=logger.name)
    try:
        with time_call("failing", logger, sql="SELECT 1", threshold_ms=0):
            raise KeyError("boom")
    except KeyError:
        pass
    record = [record for record in caplog.records if record.name == logger.name][-1]
    assert "failing failed after" in record.message
    assert record.levelno == logging.DEBUG
    assert record.sql == "SELECT 1"


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv(LOG_LEVEL_ENV, "debug")
    assert _level_from_env(logging.INFO) == logging.DEBUG
    monkeypatch.setenv(LOG_LEVEL_ENV, "30")
    assert _level_from_env(logging.INFO) == 30
    monkeypatch.setenv(LOG_LEVEL_ENV, "chatty")
    assert _level_from_env(logging.INFO) == logging.INFO


def test_mapper_statements_are_logged(mapper, caplog):
    caplog.set_level(logging.DEBUG, logger="relmap.mapping.mapper")
    mapper.comment[7].fetch()
    records = [record for record in caplog.records if record.name == "relmap.mapping.mapper"]
    timings = [record for record in records if record.message.startswith("mapper.execute took")]
    assert timings
    assert timings[-1].params == [7]
