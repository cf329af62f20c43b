from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings
from rich import print

from webdash.adapters.logging_adapter import LoggingAdapter
from webdash.core.interfaces.logging import LoggingPort

# using pydantic_settings to manage environment variables
# and do automatic type casting in a central place
class WebdashSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }
    WEBDASH_LOG_LEVEL: str = "INFO"
    # Base URL of the dashboard API that serves /job-status, /start-job, /update-job-status
    WEBDASH_API_BASE_URL: str = "http://localhost:3000/api"
    WEBDASH_API_SERVER_HOST: str = "0.0.0.0"
    WEBDASH_API_SERVER_PORT: int = 8000
    WEBDASH_HTTP_TIMEOUT: float = 10.0  # seconds, per request

    # Polling contract of the generation job API
    WEBDASH_POLL_INTERVAL: float = 2.0
    WEBDASH_VERIFY_RETRY_DELAY: float = 2.0
    WEBDASH_NOT_FOUND_RETRY_DELAY: float = 2.0
    WEBDASH_TRANSPORT_RETRY_DELAY: float = 1.0
    WEBDASH_MAX_NOT_FOUND_RETRIES: int = 10
    WEBDASH_MAX_CONSECUTIVE_ERRORS: int = 5
    WEBDASH_MAX_POLL_ATTEMPTS: int = 120
    WEBDASH_RETRY_TRANSPORT_DURING_VERIFICATION: bool = False
    WEBDASH_CAP_VERIFICATION_NOT_FOUND: bool = True

    # start-job retries (tenacity)
    WEBDASH_START_JOB_ATTEMPTS: int = 3
    WEBDASH_START_JOB_RETRY_WAIT: float = 0.5
    WEBDASH_START_JOB_RETRY_MAX_WAIT: float = 4.0

    # Finished supervisors kept for status queries before the oldest are dropped
    WEBDASH_MAX_FINISHED_JOBS: int = 100

    # Where the completed website record is written (None keeps it in memory)
    WEBDASH_RESULT_FILE: Path | None = Path("scratch/webdash_website.json")

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes"""
        logger.info("webdash settings:")
        print(self)

    @field_validator("WEBDASH_API_BASE_URL", mode="before")
    def strip_trailing_slash(cls, value: str) -> str:
        """Endpoint paths are appended with a leading slash."""
        return str(value).rstrip("/")


class NoOpLogger(LoggingPort):
    def info(self, msg: str, *args):
        pass

    def warning(self, msg: str, *args):
        pass

    def error(self, msg: str, *args):
        pass

    def debug(self, msg: str, *args):
        pass

    def exception(self, msg: str, *args):
        pass


class _LoggerHandle(LoggingPort):
    """Stable module-level logger whose backend the composition root can swap.

    Modules bind `logger` at import time; `set_logger` replaces the delegate
    so they pick up the configured adapter without re-importing.
    """

    def __init__(self, delegate: LoggingPort):
        self._delegate = delegate

    def set_delegate(self, delegate: LoggingPort) -> None:
        self._delegate = delegate

    def info(self, msg: str, *args):
        self._delegate.info(msg, *args)

    def warning(self, msg: str, *args):
        self._delegate.warning(msg, *args)

    def error(self, msg: str, *args):
        self._delegate.error(msg, *args)

    def debug(self, msg: str, *args):
        self._delegate.debug(msg, *args)

    def exception(self, msg: str, *args):
        self._delegate.exception(msg, *args)


app_settings = WebdashSettings()

logger = _LoggerHandle(LoggingAdapter("webdash", app_settings.WEBDASH_LOG_LEVEL))


def set_logger(new_logger: LoggingPort) -> None:
    logger.set_delegate(new_logger)
