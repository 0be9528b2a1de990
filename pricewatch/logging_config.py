"""Structured logging for import and reconciliation runs.

Feed imports attach run context (feed kind, import date, detected format) to
their log records. The JSON formatter groups those fields under "context" so
one import can be followed through logs/app.log.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pythonjsonlogger import jsonlogger

from pricewatch.config import settings

# Extra fields the ETL and reconciliation engines attach to records
CONTEXT_FIELDS = ("feed", "import_date", "detected_format", "skipped_reasons", "sku")

JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter: record time, level, source and grouped run context."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['source'] = f"{record.filename}:{record.lineno}"
        if record.funcName:
            log_record['function'] = record.funcName

        context = {name: log_record.pop(name) for name in CONTEXT_FIELDS if name in log_record}
        if context:
            log_record['context'] = context


class ContextConsoleFormatter(logging.Formatter):
    """Plain console lines with the run context appended as key=value pairs."""

    def format(self, record):
        line = super().format(record)
        context = [f"{name}={getattr(record, name)}" for name in CONTEXT_FIELDS if hasattr(record, name)]
        if context:
            line = f"{line} [{' '.join(context)}]"
        return line


def setup_logging(
    base_dir: str | Path | None = None,
    log_level: str | None = None,
    json_console: bool = False,
):
    """Configure logging for an import run.

    Args:
        base_dir: Directory that receives logs/ (default: current directory)
        log_level: Level name overriding settings.log_level
        json_console: Write JSON lines to stdout as well (for log shippers)
    """
    logs_dir = (Path(base_dir) if base_dir else Path.cwd()) / "logs"
    logs_dir.mkdir(exist_ok=True)

    level_name = (log_level or settings.log_level).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Repeated runs in one process must not stack handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    json_formatter = CustomJsonFormatter(JSON_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(json_formatter if json_console else ContextConsoleFormatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    json_handler = logging.FileHandler(logs_dir / "app.log", encoding="utf-8")
    json_handler.setFormatter(json_formatter)
    root_logger.addHandler(json_handler)

    error_handler = logging.FileHandler(logs_dir / "error.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(json_formatter)
    root_logger.addHandler(error_handler)

    return root_logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that stamps run context on every record; per-call extra wins."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger carrying run context.

    Args:
        name: Logger name (usually __name__)
        **context: Context fields, e.g. feed='monitoring', import_date='2025-03-10'

    Returns:
        LoggerAdapter with context
    """
    return LoggerAdapter(logging.getLogger(name), context)
