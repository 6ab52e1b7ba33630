"""Structured Logging — checkout-aware log formatting for the storefront API.

Invariants:
    - Every record carries timestamp, level, logger and message
    - Checkout identifiers (user, order, product, payment intent) and the
      status transition fields are emitted only when the record has them
    - The timestamp is when the record was created, not when it was formatted
    - setup_logging installs exactly one storefront handler on the root logger,
      however often the app starts in one process

Design Decisions:
    - stdlib logging plus our own formatters: services pass ids through `extra`
    - Text format lists the same ids as key=value so local logs stay greppable
    - SQLAlchemy engine logging pinned to WARNING unless LOG_LEVEL is DEBUG
"""

import logging
import json
from datetime import datetime, timezone

CHECKOUT_FIELDS = (
    "user_id", "order_id", "product_id", "payment_intent_id",
    "error_code", "path", "from_status", "to_status", "quantity",
)

_installed_handler: logging.Handler | None = None


def _checkout_fields(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key]
        for key in CHECKOUT_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, ready for a log shipper."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_checkout_fields(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        # Decimal totals and datetimes fall back to str
        return json.dumps(log, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable line with checkout ids appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _checkout_fields(record)
        if not fields:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{line} [{pairs}]"


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the storefront handler on the root logger, replacing a previous one."""
    global _installed_handler

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())

    root = logging.getLogger()
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)
    root.addHandler(handler)
    _installed_handler = handler

    root_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(root_level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if root_level <= logging.DEBUG else logging.WARNING,
    )
    return handler
