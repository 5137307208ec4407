import logging

import pytest

from nvmediscovery.logsetup import (
    LoggingConfig,
    setup_logging,
    setup_logging_with_console_timestamp,
)


@pytest.mark.parametrize("level", ["debug", "info", "warn", "warning", "error", "fatal"])
def test_valid_levels(level):
    assert LoggingConfig(level=level).is_valid() is None


def test_invalid_level_message():
    with pytest.raises(ValueError) as info:
        LoggingConfig(level="wrong_level").is_valid()
    assert str(info.value) == (
        "invalid logging.level parameter provided. supported levels: "
        "[debug info warn warning error fatal], provided: wrong_level"
    )


def test_setup_sets_level():
    logger = setup_logging(LoggingConfig(level="error"))
    assert logger.level == logging.ERROR


def test_setup_default_level_is_info():
    logger = setup_logging(LoggingConfig())
    assert logger.level == logging.INFO


def test_setup_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logging(LoggingConfig(level="loud"))


def test_file_logging(tmp_path):
    path = tmp_path / "client.log"
    logger = setup_logging_with_console_timestamp(
        LoggingConfig(level="debug", filename=str(path), max_size=1)
    )
    logger.debug("hello file")
    for handler in logger.handlers:
        handler.flush()
    assert "hello file" in path.read_text()
    assert len(logger.handlers) == 2