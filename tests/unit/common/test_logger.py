"""Tests for logging setup."""

import logging
import logging.handlers

import pytest

from academy.common.logger import DECISION_LOGGERS, attach_decision_trail, setup_logger


def _reset(name):
    for logger_name in [name] + [f"{name}.{child}" for child in DECISION_LOGGERS]:
        logger = logging.getLogger(logger_name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


@pytest.fixture
def logger_name(request):
    name = f"academy-test-{request.node.name}"
    yield name
    _reset(name)


class TestSetupLogger:
    """Tests for setup_logger."""

    def test_console_only(self, logger_name):
        logger = setup_logger(logger_name, level="debug", file_logging=False)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_file_logging(self, logger_name, tmp_path):
        logger = setup_logger(logger_name, log_dir=str(tmp_path / "logs"), console_logging=False)
        handler = logger.handlers[0]
        assert isinstance(handler, logging.handlers.RotatingFileHandler)

        logger.info("decision recorded")
        handler.flush()
        content = (tmp_path / "logs" / f"{logger_name}.log").read_text()
        assert "[INFO]" in content
        assert "decision recorded" in content

    def test_no_duplicate_handlers(self, logger_name):
        setup_logger(logger_name, file_logging=False)
        logger = setup_logger(logger_name, level="WARNING", file_logging=False)
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_invalid_level(self, logger_name):
        with pytest.raises(ValueError):
            setup_logger(logger_name, level="LOUD", file_logging=False)


class TestDecisionTrail:
    """Tests for the separate decision trail file."""

    def test_decisions_written_to_trail(self, logger_name, tmp_path):
        setup_logger(
            logger_name,
            log_dir=str(tmp_path),
            file_logging=False,
            console_logging=False,
            decision_trail=True,
        )

        logging.getLogger(f"{logger_name}.core.audit.recorder").warning("forward failed")
        logging.getLogger(f"{logger_name}.api.routers.health").info("health check")

        trail = logging.getLogger(f"{logger_name}.core.audit").handlers[0]
        trail.flush()
        content = (tmp_path / f"{logger_name}-decisions.log").read_text()
        assert "forward failed" in content
        assert "health check" not in content

    def test_trail_shared_by_decision_loggers(self, logger_name):
        handler = logging.NullHandler()
        attach_decision_trail(logger_name, handler)
        attach_decision_trail(logger_name, handler)

        for child in DECISION_LOGGERS:
            assert logging.getLogger(f"{logger_name}.{child}").handlers == [handler]
