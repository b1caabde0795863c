"""CLI utilities: formatting, logging setup."""

import json
import logging
from decimal import Decimal
from pathlib import Path

from logistics_kernel.logging_config import StructuredFormatter, configure_logging


class _FlushingFileHandler(logging.FileHandler):
    """FileHandler that flushes after every emit so the log updates immediately."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()


def fmt_amount(v) -> str:
    """Format amount for display (e.g. $1,234.50)."""
    d = Decimal(str(v))
    return f"${d:,.2f}"


def setup_logging(level: str, log_file: Path | None = None) -> None:
    """JSON logs to stderr, or to ``log_file`` when given so stdout stays clean."""
    if log_file is None:
        configure_logging(level=level)
        return
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = _FlushingFileHandler(str(log_file), mode="a")
    handler.setFormatter(StructuredFormatter())
    configure_logging(level=level, handler=handler)


def print_result(result) -> int:
    """Print an OperationResult as JSON; return the process exit code."""
    print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    return 0 if result.success else 1
