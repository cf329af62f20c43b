"""Call-site adapters over the single JobSupervisor core.

Two consumers drive a generation job:

* imperative flows (scripts, request handlers) that just want the outcome:
  `wait_for_outcome`;
* UI feeds that render each step as it happens: `ProgressStream`, an observer
  that is also an async iterator.

Both go through `GenerationTracker`, so neither can start a second polling loop
for a job that is already supervised.
"""

import asyncio
from typing import AsyncIterator, Optional

from webdash.core.managers.generation_tracker import GenerationTracker
from webdash.core.models.outcome import TerminalOutcome
from webdash.core.models.progress import GenerationProgress


async def wait_for_outcome(
    tracker: GenerationTracker,
    job_id: str,
    timeout: Optional[float] = None,
) -> TerminalOutcome:
    """Supervise `job_id` (or join the running supervisor) and return its outcome.

    On `timeout` the supervisor is cancelled and asyncio.TimeoutError propagates.
    """
    supervisor = tracker.track(job_id)
    try:
        return await asyncio.wait_for(supervisor.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        supervisor.cancel()
        raise


class ProgressStream:
    """Yield each GenerationProgress of one job, ending after the terminal one.

    Usage::

        stream = follow_progress(tracker, job_id)
        async for progress in stream:
            render(progress)
        outcome = stream.outcome
    """

    def __init__(self, job_id: str):
        self.job_id = job_id
        self._queue: asyncio.Queue[GenerationProgress] = asyncio.Queue()
        self._outcome: Optional[TerminalOutcome] = None
        self._closed = False

    @property
    def outcome(self) -> Optional[TerminalOutcome]:
        return self._outcome

    def on_progress(self, job_id: str, progress: GenerationProgress) -> None:
        if job_id != self.job_id or self._closed:
            return
        self._queue.put_nowait(progress)
        if progress.is_terminal:
            self._closed = True

    def on_terminal(self, job_id: str, outcome: TerminalOutcome) -> None:
        if job_id == self.job_id:
            self._outcome = outcome

    def __aiter__(self) -> AsyncIterator[GenerationProgress]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[GenerationProgress]:
        while True:
            progress = await self._queue.get()
            yield progress
            if progress.is_terminal:
                return


def follow_progress(tracker: GenerationTracker, job_id: str) -> ProgressStream:
    """Supervise `job_id` (or join the running supervisor) and stream its progress.

    The stream starts with the supervisor's current progress, so a late
    subscriber still sees where the job is.
    """
    supervisor = tracker.track(job_id)
    stream = ProgressStream(job_id)
    stream.on_progress(job_id, supervisor.progress)
    if supervisor.outcome is not None:
        stream.on_terminal(job_id, supervisor.outcome)
    supervisor.add_observer(stream)
    return stream
