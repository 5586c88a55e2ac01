import pytest
import logging

from receptionist.config.constants import LOGGER_NAME

@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)

    # Let caplog see application records
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.propagate = True
    yield
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
        handler.close()
