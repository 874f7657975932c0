from __future__ import annotations

import json
import logging

from auto_diagnostic.logging import JsonFormatter, PlainFormatter, StepTimers, log_event


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def _logger() -> tuple[logging.Logger, _Capture]:
    logger = logging.getLogger("auto_diagnostic.tests.logging")
    logger.handlers = []
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    handler = _Capture()
    logger.addHandler(handler)
    return logger, handler


def test_log_event_attaches_step_and_duration() -> None:
    logger, handler = _logger()
    timers = StepTimers()

    log_event(logger, logging.INFO, "Fetching", step="fetch", phase="start", timers=timers, timer_key="fetch-1")
    log_event(
        logger,
        logging.INFO,
        "Fetched",
        step="fetch",
        phase="complete",
        timers=timers,
        timer_key="fetch-1",
        source="RDS instance",
    )

    start, done = handler.records
    assert start.event == "fetch.start"
    assert not hasattr(start, "duration_ms")
    assert done.event == "fetch.complete"
    assert isinstance(done.duration_ms, int)
    assert done.source == "RDS instance"


def test_formatters() -> None:
    logger, handler = _logger()
    log_event(logger, logging.WARNING, "Polled", step="poll", phase="retry", status="Running")
    record = handler.records[0]

    payload = json.loads(JsonFormatter().format(record))
    plain = PlainFormatter().format(record)

    assert payload["message"] == "Polled"
    assert payload["status"] == "Running"
    assert payload["level"] == "WARNING"
    assert plain.endswith("WARNING auto_diagnostic.tests.logging: [poll:retry] Polled")
