"""
Unit Tests for Logging Module

Tests logger creation, request context, and the log_stage helper.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from src.core.config.constants import Stage
from src.core.logging.logger import (
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    set_request_id,
)


@pytest.mark.unit
class TestLoggerCreation:
    """Test logger creation and configuration."""

    def test_get_logger_returns_logger_instance(self):
        logger = get_logger(__name__)
        # structlog logger is not a standard logging.Logger
        assert logger is not None
        assert hasattr(logger, "info")

    def test_get_logger_with_different_names(self):
        logger1 = get_logger("module1")
        logger2 = get_logger("module2")

        assert logger1 is not logger2


@pytest.mark.unit
class TestRequestContext:
    """Test request ID context management."""

    def test_set_and_get_request_id(self):
        set_request_id("req-123")
        try:
            assert get_request_id() == "req-123"
        finally:
            clear_request_id()

    def test_clear_request_id(self):
        set_request_id("req-123")
        clear_request_id()

        assert get_request_id() is None

    def test_last_set_wins(self):
        set_request_id("req-1")
        set_request_id("req-2")
        try:
            assert get_request_id() == "req-2"
        finally:
            clear_request_id()

    async def test_request_id_isolated_between_tasks(self):
        """Each asyncio task sees only the request ID it set."""

        async def handle(request_id: str) -> str | None:
            set_request_id(request_id)
            await asyncio.sleep(0)
            return get_request_id()

        results = await asyncio.gather(handle("req-a"), handle("req-b"), handle("req-c"))

        assert results == ["req-a", "req-b", "req-c"]


@pytest.mark.unit
class TestLogStageFunction:
    """Test the log_stage utility function."""

    def test_log_stage_calls_logger(self):
        mock_logger = MagicMock()

        log_stage(mock_logger, "CACHE.1_WRITE", "Product cached", product_id=42)

        mock_logger.info.assert_called_once()
        call_args = mock_logger.info.call_args[0]
        call_kwargs = mock_logger.info.call_args[1]
        assert call_args[0] == "Product cached"
        assert call_kwargs["stage"] == "CACHE.1_WRITE"
        assert call_kwargs["product_id"] == 42

    def test_log_stage_unwraps_enum_stage(self):
        mock_logger = MagicMock()

        log_stage(mock_logger, Stage.CACHE_READ, "Cache hit")

        assert mock_logger.info.call_args[1]["stage"] == Stage.CACHE_READ.value

    def test_log_stage_with_different_levels(self):
        mock_logger = MagicMock()

        log_stage(mock_logger, Stage.RETRY, "Retrying", level="debug")
        mock_logger.debug.assert_called_once()

        mock_logger.reset_mock()

        log_stage(mock_logger, Stage.RETRY, "Retries exhausted", level="WARNING")
        mock_logger.warning.assert_called_once()

    def test_log_stage_with_invalid_level(self):
        with pytest.raises(AttributeError):
            log_stage(object(), Stage.RETRY, "message", level="invalid_level")
