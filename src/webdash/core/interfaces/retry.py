from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence, Type


class RetryPort(Protocol):
    """Retries a one-shot async call with exponential backoff.

    Only calls that must eventually succeed or fail once (starting a job) go
    through it. The status polling loop never does: it classifies each failure
    itself in `core.managers.retry_policy`.

    Keyword options left as None fall back to the implementation's defaults.
    The last exception is re-raised once the attempts are used up; exceptions
    outside `retry_on` are raised immediately.
    """

    async def execute(
        self,
        operation: Callable[[], Awaitable[Any]],
        *,
        attempts: Optional[int] = None,
        wait_initial: Optional[float] = None,
        wait_max: Optional[float] = None,
        retry_on: Optional[Sequence[Type[BaseException]]] = None,
        label: str = "operation",
    ) -> Any:  # pragma: no cover - protocol
        ...
