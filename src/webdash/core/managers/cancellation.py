import asyncio


class CancellationToken:
    """Cooperative cancel flag shared between a caller and one supervisor.

    Setting it is synchronous and safe from any coroutine or callback on the
    supervisor's event loop. Sleeps taken through the token wake up as soon
    as it is set.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, delay: float) -> bool:
        """Sleep for `delay` seconds; return False if cancelled before or during the wait."""
        if self._event.is_set():
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False
