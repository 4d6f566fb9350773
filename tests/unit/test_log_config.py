"""Тесты для configure_logger / StructuredFormatter."""

import json
import logging

from mintsale.core.log_config import StructuredFormatter, configure_logger


class TestStructuredFormatter:
    """JSON-форматирование записей"""

    def test_base_fields(self) -> None:
        record = logging.LogRecord("mintsale.engine", logging.INFO, __file__, 1, "deposit %d", (5,), None)
        data = json.loads(StructuredFormatter().format(record))
        assert data["level"] == "INFO"
        assert data["logger"] == "mintsale.engine"
        assert data["message"] == "deposit 5"
        assert "timestamp" in data

    def test_extra_fields_included(self) -> None:
        record = logging.LogRecord("mintsale.engine", logging.WARNING, __file__, 1, "rejected", (), None)
        record.session_id = 3
        record.error_context = {"now": 2_200}
        data = json.loads(StructuredFormatter().format(record))
        assert data["session_id"] == 3
        assert data["error_context"] == {"now": 2_200}


class TestConfigureLogger:
    """Настройка логгера"""

    def test_level_and_single_handler(self) -> None:
        logger = configure_logger("mintsale.test", level="debug")
        configure_logger("mintsale.test", level="debug")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_structured_handler(self) -> None:
        logger = configure_logger("mintsale.test.structured", structured=True)
        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)
