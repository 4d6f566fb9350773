"""
Настройка логирования mintsale.

Текстовый формат по умолчанию; JSON-формат (structured) переносит в запись
все поля, переданные через ``extra=`` (session_id, operation, error_context).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

# Атрибуты, которые есть у любой LogRecord; всё остальное пришло из extra=
_BASE_RECORD_KEYS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())


class StructuredFormatter(logging.Formatter):
    """Одна JSON-строка на запись."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _BASE_RECORD_KEYS and key not in {"args", "message"}:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logger(name: str, level: str = "INFO", structured: bool = False) -> logging.Logger:
    """
    Логгер с единственным stream handler.

    Повторный вызов для того же имени заменяет handler, а не добавляет
    второй (движков в процессе может быть несколько).

    Args:
        name: Имя логгера
        level: Уровень (DEBUG, INFO, WARNING, ERROR, CRITICAL), регистр не важен
        structured: JSON-формат вместо текстового
    """
    numeric_level = getattr(logging, level.upper())
    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    logger.handlers = []

    handler = logging.StreamHandler()
    handler.setLevel(numeric_level)
    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
