import logging

import pytest
import structlog

from trivia_live.logging_config import setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    structlog.reset_defaults()


class TestSetupLogging:
    def test_configures_single_stdout_handler(self):
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_repeated_calls_replace_handler(self):
        setup_logging()
        setup_logging("debug")
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_json_format_renders_one_object_per_line(self, capsys):
        setup_logging(log_format="json")

        structlog.get_logger("trivia_live.test").info("game created", game_id="game_1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        assert '"event": "game created"' in line
        assert '"game_id": "game_1"' in line

    def test_rejects_unknown_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging("LOUD")

    def test_rejects_unknown_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            setup_logging(log_format="xml")
