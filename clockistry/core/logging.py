"""JSON log lines for every logger in the process.

Each line carries ``timestamp``, ``level``, ``logger``, ``message`` and
``service``; keyword data passed as ``logger.info(..., extra={...})`` lands
under ``extra``.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from clockistry.core.config import get_settings

SERVICE_NAME = "clockistry"

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    def __init__(self, env: Optional[str] = None):
        super().__init__()
        self.env = env

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
        }
        if self.env:
            payload["env"] = self.env

        extras = record_extras(record)
        if extras:
            payload["extra"] = extras

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(payload, default=str)


def configure_logging() -> None:
    settings = get_settings()

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.addHandler(logging.StreamHandler())
    root_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    formatter = JsonFormatter(env=settings.env)
    for handler in root_logger.handlers:
        handler.setFormatter(formatter)
