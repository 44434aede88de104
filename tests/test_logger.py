"""Tests for the logging setup module."""

import io
import logging

from idverify.utils.logger import get_logger, setup_logging


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def test_setup_creates_handler(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        root.handlers.clear()
        try:
            setup_logging("DEBUG")
            assert len(root.handlers) == 1
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_setup_idempotent(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        root.handlers.clear()
        try:
            setup_logging("INFO")
            count = len(root.handlers)
            setup_logging("INFO")
            assert len(root.handlers) == count
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_setup_invalid_level_defaults_to_info(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        root.handlers.clear()
        try:
            setup_logging("NONEXISTENT")
            assert root.level == logging.INFO
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_writes_to_given_stream(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        root.handlers.clear()
        stream = io.StringIO()
        try:
            setup_logging("INFO", stream=stream)
            get_logger("idverify.test").info("hello %s", "world")
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
        assert "idverify.test - INFO - hello world" in stream.getvalue()

    def test_noisy_loggers_capped_at_info(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        pil_logger = logging.getLogger("PIL")
        saved_pil_level = pil_logger.level
        root.handlers.clear()
        try:
            setup_logging("DEBUG")
            assert pil_logger.level == logging.INFO
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            pil_logger.setLevel(saved_pil_level)


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_returns_named_logger(self) -> None:
        logger = get_logger("test.module")
        assert logger.name == "test.module"
        assert isinstance(logger, logging.Logger)

    def test_same_name_returns_same_logger(self) -> None:
        assert get_logger("test.same") is get_logger("test.same")
