import logging

from webdash.core.interfaces.logging import LoggingPort
from webdash.core.logging_config import coerce_level


class LoggingAdapter(LoggingPort):
    """LoggingPort backed by one stdlib logger.

    Adds no handlers of its own; `configure_logging` owns the sinks and the
    correlation id filter, records just propagate to the root logger.
    """

    def __init__(self, name: str = "webdash", log_level: int | str = logging.INFO):
        self._logger = logging.getLogger(name)
        self._logger.setLevel(coerce_level(log_level))
        self._logger.propagate = True

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args):
        self._logger.debug(msg, *args)

    def info(self, msg: str, *args):
        self._logger.info(msg, *args)

    def warning(self, msg: str, *args):
        self._logger.warning(msg, *args)

    def error(self, msg: str, *args):
        self._logger.error(msg, *args)

    def exception(self, msg: str, *args):
        self._logger.exception(msg, *args)
