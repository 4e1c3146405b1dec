"""Tests for the PprintLogger wrapper and setup_logging.

This module verifies:
- Pydantic models (packages, failures) are logged as indented JSON
- Containers go through pformat, plain strings and %-arguments pass through
- pprint=False falls back to str()
- Unknown attributes delegate to the wrapped logger
- get_logger places loggers under the pkgvault hierarchy
- setup_logging adds its handler only once
"""

import logging
from io import StringIO

from pkgvault.errors import FailureRecord
from pkgvault.logging import LOGGER_NAME, PprintLogger, get_logger, setup_logging
from tests.conftest import make_package


def _capture(name: str) -> tuple[PprintLogger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return PprintLogger(logger), stream


class TestPprintLogger:
    """Tests for PprintLogger formatting and delegation."""

    def test_model_logged_as_json(self) -> None:
        logger, stream = _capture("test_pkgvault_model")
        logger.info(make_package("openssl", "3.0.13", maintainers=("alice",)))

        output = stream.getvalue()
        assert '"name": "openssl"' in output
        assert '"maintainers": [' in output

    def test_failure_record_logged_as_json(self) -> None:
        logger, stream = _capture("test_pkgvault_failure")
        logger.warning(FailureRecord(stage="render", subject="abc-x", message="boom"))

        output = stream.getvalue()
        assert output.startswith("WARNING")
        assert '"stage": "render"' in output

    def test_container_uses_pformat(self) -> None:
        logger, stream = _capture("test_pkgvault_container")
        logger.debug({"curl": ["openssl", "zlib"]})
        assert "{'curl': ['openssl', 'zlib']}" in stream.getvalue()

    def test_string_with_arguments(self) -> None:
        logger, stream = _capture("test_pkgvault_args")
        logger.info("Rendered %d of %d", 3, 4)
        assert "Rendered 3 of 4" in stream.getvalue()

    def test_pprint_false_uses_str(self) -> None:
        logger, stream = _capture("test_pkgvault_plain")
        package = make_package("zlib")
        logger.info(package, pprint=False)
        assert str(package) in stream.getvalue()

    def test_all_levels(self) -> None:
        logger, stream = _capture("test_pkgvault_levels")
        data = {"level": "test"}
        logger.debug(data)
        logger.info(data)
        logger.warning(data)
        logger.error(data)
        logger.critical(data)

        output = stream.getvalue()
        for level in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            assert level in output

    def test_exception_includes_traceback(self) -> None:
        logger, stream = _capture("test_pkgvault_exception")
        try:
            raise OSError("disk full")
        except OSError:
            logger.exception("write failed")
        output = stream.getvalue()
        assert "write failed" in output
        assert "disk full" in output

    def test_delegates_attributes(self) -> None:
        logger, _ = _capture("test_pkgvault_delegate")
        assert logger.name == "test_pkgvault_delegate"
        assert logger.isEnabledFor(logging.DEBUG)


class TestGetLogger:
    """Tests for get_logger()."""

    def test_root_of_hierarchy(self) -> None:
        assert get_logger().name == LOGGER_NAME

    def test_child_name_is_prefixed(self) -> None:
        assert get_logger("render").name == "pkgvault.render"
        assert get_logger("pkgvault.graph").name == "pkgvault.graph"


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_handler_added_once(self) -> None:
        name = "test_pkgvault_setup"
        logging.getLogger(name).handlers.clear()
        setup_logging(logging.INFO, name=name)
        logger = setup_logging(logging.DEBUG, name=name)

        assert len(logging.getLogger(name).handlers) == 1
        assert logger.level == logging.DEBUG
        assert logging.getLogger(name).handlers[0].level == logging.DEBUG
