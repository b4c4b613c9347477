"""
Tests for the rich-backed logging helpers.
"""

import logging

import pytest

from mcpmux.utils.logging import configure_logging, get_logger, level_from_name


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    configure_logging(logging.INFO)


def test_get_logger_is_cached():
    assert get_logger("mcpmux.tests.cached") is get_logger("mcpmux.tests.cached")


def test_data_is_appended_to_message(caplog):
    logger = get_logger("mcpmux.tests.data")

    with caplog.at_level(logging.INFO, logger="mcpmux.tests.data"):
        logger.info("Server %s loaded", "alpha", data={"tools": 2})

    assert caplog.records[-1].getMessage() == "Server alpha loaded {'tools': 2}"


def test_configure_logging_updates_existing_loggers(tmp_path):
    logger = get_logger("mcpmux.tests.configure")
    log_file = tmp_path / "mcpmux.log"

    configure_logging(logging.DEBUG, add_file_handler=str(log_file))
    logger.debug("written to file")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert "written to file" in log_file.read_text()

    configure_logging(logging.WARNING)
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1


@pytest.mark.parametrize(
    "name, level",
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("nonsense", logging.INFO)],
)
def test_level_from_name(name, level):
    assert level_from_name(name) == level
