"""
Logging setup unit tests
"""

import logging

import pytest

from dashboard.logging_config import QUIET_LOGGERS, get_logger, setup_logging


@pytest.fixture
def restore_levels():
    names = ("dashboard",) + QUIET_LOGGERS
    levels = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


class TestSetupLogging:
    """Test setup_logging"""

    def test_third_party_loggers_quiet_by_default(self, restore_levels):
        """Library loggers only report warnings at INFO"""
        setup_logging("INFO")

        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
        assert get_logger("dashboard.main").getEffectiveLevel() == logging.INFO

    def test_debug_enables_everything(self, restore_levels):
        """DEBUG lets SQL statements through"""
        setup_logging("debug")

        assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG
        assert get_logger("dashboard.repository").getEffectiveLevel() == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, restore_levels):
        setup_logging("LOUD")

        assert logging.getLogger("dashboard").level == logging.INFO
