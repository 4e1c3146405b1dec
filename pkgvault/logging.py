import logging
from pprint import pformat
from typing import Any

from pydantic import BaseModel

LOGGER_NAME = "pkgvault"
LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"


class PprintLogger:
    """A logger wrapper that pretty-prints models and containers.

    Package records, failure lists and statistics are easier to read in a log
    when dumped structurally, so every level method accepts arbitrary objects.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _format_message(self, msg: Any, pprint: bool = True) -> str:
        """Format a message, optionally using pprint.

        Pydantic models are rendered with model_dump_json(); other non-string
        objects go through pformat. Plain strings are passed through unchanged
        so %-style arguments still work.
        """
        if not pprint or isinstance(msg, str):
            return str(msg)
        if isinstance(msg, BaseModel):
            return msg.model_dump_json(indent=2)
        return pformat(msg, width=120, depth=None)

    def debug(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._logger.debug(self._format_message(msg, pprint=pprint), *args, stacklevel=2, **kwargs)

    def info(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._logger.info(self._format_message(msg, pprint=pprint), *args, stacklevel=2, **kwargs)

    def warning(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._logger.warning(self._format_message(msg, pprint=pprint), *args, stacklevel=2, **kwargs)

    def error(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._logger.error(self._format_message(msg, pprint=pprint), *args, stacklevel=2, **kwargs)

    def critical(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._logger.critical(self._format_message(msg, pprint=pprint), *args, stacklevel=2, **kwargs)

    def exception(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._logger.exception(self._format_message(msg, pprint=pprint), *args, stacklevel=2, **kwargs)

    # Delegate other standard logger methods/attributes
    def __getattr__(self, name: str) -> Any:
        return getattr(self._logger, name)


def get_logger(name: str | None = None) -> PprintLogger:
    """Return a PprintLogger under the pkgvault hierarchy without touching handlers."""
    if name is None or name == LOGGER_NAME:
        return PprintLogger(logging.getLogger(LOGGER_NAME))
    if not name.startswith(f"{LOGGER_NAME}."):
        name = f"{LOGGER_NAME}.{name}"
    return PprintLogger(logging.getLogger(name))


def setup_logging(level: int = logging.INFO, name: str = LOGGER_NAME) -> PprintLogger:
    """Set up the stderr handler for the pkgvault hierarchy and return its logger.

    Safe to call repeatedly: the level is updated and a handler is only added
    the first time.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)
    return PprintLogger(logger)
