from typing import Any, Awaitable, Callable, Optional, Sequence, Type

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from webdash.core.settings import logger


class TenacityRetryAdapter:
    """RetryPort on top of tenacity's AsyncRetrying.

    Backoff is exponential from `wait_initial` capped at `wait_max`. Every
    scheduled retry is logged with its attempt number and the cause.
    """

    def __init__(
        self,
        attempts: int = 3,
        wait_initial: float = 0.5,
        wait_max: float = 4.0,
        retry_on: Sequence[Type[BaseException]] = (Exception,),
    ) -> None:
        self.attempts = attempts
        self.wait_initial = wait_initial
        self.wait_max = wait_max
        self.retry_on = tuple(retry_on)

    @staticmethod
    def _log_retry(label: str, attempts: int) -> Callable[[RetryCallState], None]:
        def before_sleep(state: RetryCallState) -> None:
            cause = state.outcome.exception() if state.outcome else None
            delay = state.next_action.sleep if state.next_action else 0.0
            logger.warning(
                f"[retry:{label}] attempt {state.attempt_number}/{attempts} failed "
                f"error={cause!r}; retrying in {delay:.2f}s"
            )

        return before_sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[Any]],
        *,
        attempts: Optional[int] = None,
        wait_initial: Optional[float] = None,
        wait_max: Optional[float] = None,
        retry_on: Optional[Sequence[Type[BaseException]]] = None,
        label: str = "operation",
    ) -> Any:
        attempts = attempts or self.attempts
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=wait_initial if wait_initial is not None else self.wait_initial,
                max=wait_max if wait_max is not None else self.wait_max,
            ),
            retry=retry_if_exception_type(tuple(retry_on) if retry_on else self.retry_on),
            before_sleep=self._log_retry(label, attempts),
            reraise=True,
        )
        async for attempt in retrying:  # pragma: no cover - control flow instrumentation
            with attempt:
                return await operation()
