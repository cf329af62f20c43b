"""Retry decisions for failed status polls.

`RetryPolicy` is pure: it only looks at the error class and the attempt count it
is handed. The mutable streak counters live in `RetryCounters`, one instance per
supervisor, so two classifications never share a budget.
"""

from enum import StrEnum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from webdash.core.config import SupervisorConfig
from webdash.core.models.outcome import FailureReason

NOT_FOUND_EXHAUSTED_MESSAGE = "Job not found after maximum retries"
TRANSPORT_EXHAUSTED_MESSAGE = "Error connecting to the server after maximum retries"
TIMED_OUT_MESSAGE = "Website generation timed out"


class ErrorClass(StrEnum):
    not_found = "not_found"
    transport = "transport"


class RetryDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["retry", "give_up"]
    delay: float = 0.0
    reason: Optional[FailureReason] = None
    message: Optional[str] = None

    @property
    def should_retry(self) -> bool:
        return self.action == "retry"


class RetryPolicy:
    def __init__(self, config: SupervisorConfig):
        self._config = config

    def decide(self, error_class: ErrorClass, attempt: int) -> RetryDecision:
        """Decide what to do after the `attempt`-th consecutive failure of `error_class`.

        `attempt` counts from 1. Reaching the cap gives up, so a cap of 10
        tolerates nine misses and fails on the tenth.
        """
        if error_class == ErrorClass.not_found:
            if attempt >= self._config.max_not_found_retries:
                return RetryDecision(
                    action="give_up",
                    reason=FailureReason.not_found_exhausted,
                    message=NOT_FOUND_EXHAUSTED_MESSAGE,
                )
            return RetryDecision(action="retry", delay=self._config.not_found_retry_delay)

        if attempt >= self._config.max_consecutive_errors:
            return RetryDecision(
                action="give_up",
                reason=FailureReason.transport_exhausted,
                message=TRANSPORT_EXHAUSTED_MESSAGE,
            )
        return RetryDecision(action="retry", delay=self._config.transport_retry_delay)

    def check_attempt_ceiling(self, polls_issued: int) -> Optional[RetryDecision]:
        """Return a give-up decision once the global poll ceiling is reached."""
        if polls_issued >= self._config.max_poll_attempts:
            return RetryDecision(
                action="give_up",
                reason=FailureReason.timed_out,
                message=TIMED_OUT_MESSAGE,
            )
        return None


class RetryCounters:
    """Consecutive-failure streaks, one per classification."""

    def __init__(self) -> None:
        self.not_found = 0
        self.transport = 0

    def record_failure(self, error_class: ErrorClass) -> int:
        if error_class == ErrorClass.not_found:
            self.not_found += 1
            # the server answered, so the transport streak is broken
            self.transport = 0
            return self.not_found
        self.transport += 1
        return self.transport

    def record_found(self) -> None:
        self.not_found = 0
        self.transport = 0
