"""Tests for settings and logging setup."""

import json
import logging
from decimal import Decimal

import pytest

from pricewatch.config import Settings, settings
from pricewatch.logging_config import (
    ContextConsoleFormatter,
    CustomJsonFormatter,
    get_logger,
    setup_logging,
)


def test_default_weights_sum_to_one():
    """Test match weights are a convex combination."""
    total = (
        settings.match_weight_name
        + settings.match_weight_brand
        + settings.match_weight_size
        + settings.match_weight_category
    )
    assert total == pytest.approx(1.0)


def test_default_thresholds():
    """Test classifier and reconciliation defaults."""
    assert settings.auto_match_threshold == 0.85
    assert settings.review_threshold == 0.60
    assert settings.promo_threshold == Decimal("0.20")
    assert settings.negligible_price_delta == Decimal("0.005")


def test_settings_fields_are_engine_tunables():
    """Test only engine tunables are declared."""
    assert "debug" not in Settings.model_fields


def test_env_override(monkeypatch):
    """Test settings are read from the environment."""
    monkeypatch.setenv("PROMO_THRESHOLD", "0.3")
    monkeypatch.setenv("batch_top_n", "3")

    overridden = Settings()

    assert overridden.promo_threshold == Decimal("0.3")
    assert overridden.batch_top_n == 3


def test_json_formatter_fields():
    """Test JSON log lines carry level, logger and source."""
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    record = logging.LogRecord(
        "pricewatch.test", logging.WARNING, __file__, 42, "price feed %s", ("late",), None, func="run"
    )

    data = json.loads(formatter.format(record))

    assert data["message"] == "price feed late"
    assert data["level"] == "WARNING"
    assert data["logger"] == "pricewatch.test"
    assert data["source"].endswith(":42")
    assert data["function"] == "run"
    assert "timestamp" in data


def test_setup_logging_writes_files(tmp_path):
    """Test log files are created under logs/."""
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    for handler in previous_handlers:
        root.removeHandler(handler)

    try:
        setup_logging(base_dir=tmp_path, log_level="DEBUG")
        logging.getLogger("pricewatch.test").error("reconciliation failed")
        for handler in root.handlers:
            handler.flush()

        app_log = (tmp_path / "logs" / "app.log").read_text(encoding="utf-8")
        error_log = (tmp_path / "logs" / "error.log").read_text(encoding="utf-8")

        assert "reconciliation failed" in app_log
        assert json.loads(error_log.splitlines()[-1])["level"] == "ERROR"
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)


def test_get_logger_adds_context(caplog):
    """Test the adapter attaches context fields to records."""
    log = get_logger("pricewatch.test", feed="monitoring")

    with caplog.at_level(logging.INFO, logger="pricewatch.test"):
        log.info("import started")

    assert caplog.records[-1].feed == "monitoring"


def _record(**extra):
    record = logging.LogRecord("pricewatch.reconcile.engine", logging.INFO, __file__, 7, "feed reconciled", (), None)
    for name, value in extra.items():
        setattr(record, name, value)
    return record


def test_json_formatter_groups_run_context():
    """Test feed context fields are nested under context."""
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")

    data = json.loads(formatter.format(_record(feed="monitoring", import_date="2025-03-10", attempt=2)))

    assert data["context"] == {"feed": "monitoring", "import_date": "2025-03-10"}
    assert "feed" not in data
    assert data["attempt"] == 2


def test_json_formatter_without_context():
    """Test records without run context carry no context key."""
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")

    data = json.loads(formatter.format(_record()))

    assert "context" not in data


def test_console_formatter_appends_context():
    """Test console lines end with the run context."""
    formatter = ContextConsoleFormatter("%(levelname)s %(message)s")

    line = formatter.format(_record(feed="sales", detected_format="Generic Sales"))

    assert line == "INFO feed reconciled [feed=sales detected_format=Generic Sales]"


def test_get_logger_call_extra_wins(caplog):
    """Test per-call extra overrides the adapter context."""
    log = get_logger("pricewatch.test", feed="monitoring", import_date="2025-03-10")

    with caplog.at_level(logging.INFO, logger="pricewatch.test"):
        log.info("format detected", extra={"feed": "sales"})

    record = caplog.records[-1]
    assert record.feed == "sales"
    assert record.import_date == "2025-03-10"
