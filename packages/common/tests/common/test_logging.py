"""
Unit tests for logging configuration.

Run:
    pytest packages/common/tests/common/test_logging.py -v
"""

# mypy: disallow-untyped-defs=False, check-untyped-defs=False

import json
import logging
from datetime import date
from decimal import Decimal

import common.logging as common_logging
import pytest
import structlog
from common.logging import configure_logging, get_logger


def _single_entry(capsys) -> dict:
    captured = capsys.readouterr()
    return json.loads(captured.out.strip())


class TestLoggingConfiguration:
    """Structured logging setup"""

    def test_configure_logging_sets_service_name(self, capsys):
        configure_logging("ledger-api", "INFO")
        logger = get_logger("ledger_api.ledger.reports")

        logger.warning("price_resolution_gap", location_id=2, days=3)

        entry = _single_entry(capsys)
        assert entry["service"] == "ledger-api"
        assert entry["event"] == "price_resolution_gap"
        assert entry["location_id"] == 2
        assert entry["days"] == 3

    def test_json_output_structure(self, capsys):
        configure_logging("ledger-api", "INFO")
        logger = get_logger("ledger_api.main")

        logger.info("ledger_api_starting", env="local")

        entry = _single_entry(capsys)
        assert {"timestamp", "level", "service", "event", "logger"} <= entry.keys()
        assert entry["level"] == "info"
        assert entry["logger"] == "ledger_api.main"

    def test_money_and_days_render_exactly(self, capsys):
        configure_logging("ledger-api", "INFO")
        logger = get_logger("ledger_api.ledger.reports")

        logger.info(
            "report_built", total_cost=Decimal("116140.0"), first_day=date(2024, 1, 1)
        )

        entry = _single_entry(capsys)
        assert entry["total_cost"] == "116140.0"
        assert entry["first_day"] == "2024-01-01"

    def test_log_level_configuration(self):
        configure_logging("ledger-api", "WARNING")

        assert logging.getLogger().level == logging.WARNING

    def test_debug_filtered_by_level(self, capsys):
        configure_logging("ledger-api", "INFO")
        logger = get_logger(__name__)

        logger.debug("http_request_started")
        logger.info("http_request_finished", status_code=200)

        lines = [line for line in capsys.readouterr().out.strip().split("\n") if line]
        assert len(lines) == 1
        assert json.loads(lines[0])["event"] == "http_request_finished"

    def test_error_logging_includes_exception(self, capsys):
        configure_logging("ledger-api", "ERROR")
        logger = get_logger(__name__)

        try:
            raise ValueError("store unavailable")
        except ValueError:
            logger.error("ledger_error", exc_info=True)

        entry = _single_entry(capsys)
        assert "exception" in entry

    def test_contextvars_binding(self, capsys):
        configure_logging("ledger-api", "INFO")
        logger = get_logger(__name__)
        structlog.contextvars.bind_contextvars(request_id="req-1", client_ip="10.0.0.5")

        logger.info("http_request_finished")

        entry = _single_entry(capsys)
        assert entry["request_id"] == "req-1"
        assert entry["client_ip"] == "10.0.0.5"

    def test_configure_logging_idempotent(self, capsys):
        configure_logging("ledger-api", "INFO")
        get_logger("first").info("first_call")
        assert _single_entry(capsys)["service"] == "ledger-api"

        configure_logging("other-service", "DEBUG")
        get_logger("second").info("second_call")
        assert _single_entry(capsys)["service"] == "ledger-api"

    def test_force_reconfigures(self, capsys):
        configure_logging("ledger-api", "INFO")
        configure_logging("ledger-api-test", "DEBUG", force=True)

        get_logger("forced").debug("reconfigured")

        entry = _single_entry(capsys)
        assert entry["service"] == "ledger-api-test"
        assert entry["level"] == "debug"

    def test_uvicorn_loggers_share_handler(self):
        configure_logging("ledger-api", "INFO")

        root_handlers = logging.getLogger().handlers
        for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            uvicorn_logger = logging.getLogger(name)
            assert uvicorn_logger.handlers == root_handlers
            assert uvicorn_logger.propagate is False


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration between tests"""
    common_logging._configured = False
    logging.root.handlers = []
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()

    yield

    common_logging._configured = False
    structlog.reset_defaults()
    logging.root.handlers = []
    structlog.contextvars.clear_contextvars()
