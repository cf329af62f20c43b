"""GenerationTracker: owns the supervisors of one process/session.

It is the only registry of supervised jobs and it is an ordinary instance, not a
module-level singleton: tests and web apps each build their own. It enforces
that at most one supervisor per job id is active, wires the optional server-side
cancel notification, and turns a supervisor's `retry()` into a brand new
supervisor.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, Optional, Set

from webdash.core.config import SupervisorConfig
from webdash.core.exceptions import UnknownJobError
from webdash.core.interfaces.job_starter import JobStarterPort
from webdash.core.interfaces.job_status import JobStatusPort
from webdash.core.interfaces.notifier import NotifierPort
from webdash.core.interfaces.observers import SupervisorObserver
from webdash.core.interfaces.result_sink import ResultSinkPort
from webdash.core.managers.job_supervisor import (
    CancelCallback,
    CompleteCallback,
    ErrorCallback,
    JobSupervisor,
)
from webdash.core.settings import logger

CANCEL_REASON = "Generation cancelled by user"


class GenerationTracker:
    """Creates, indexes and tears down JobSupervisors.

    Terminal supervisors stay queryable until more than `max_finished` of them
    exist; the oldest are then released together with their task and callbacks.

    Attributes:
        config: Configuration handed to every supervisor it creates
    """

    def __init__(
        self,
        status_client: JobStatusPort,
        result_sink: ResultSinkPort,
        config: SupervisorConfig,
        job_starter: Optional[JobStarterPort] = None,
        notifier: Optional[NotifierPort] = None,
        max_finished: int = 100,
    ) -> None:
        self._status = status_client
        self._sink = result_sink
        self._starter = job_starter
        self._notifier = notifier
        self.config = config
        self._supervisors: Dict[str, JobSupervisor] = {}
        self._background: Set[asyncio.Task] = set()
        self._shutdown = False
        self._max_finished = max_finished

    def track(
        self,
        job_id: str,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_cancel: Optional[CancelCallback] = None,
        observers: Optional[Iterable[SupervisorObserver]] = None,
    ) -> JobSupervisor:
        """Start supervising `job_id`, or return the supervisor already doing so."""
        existing = self._supervisors.get(job_id)
        if existing is not None and existing.is_active:
            logger.debug(f"[tracker:track] already supervised job_id={job_id}; ignoring")
            return existing
        if self._shutdown:
            raise RuntimeError("GenerationTracker is shut down")

        supervisor = JobSupervisor(
            job_id,
            status_client=self._status,
            result_sink=self._sink,
            config=self.config,
            job_starter=self._starter,
            on_complete=on_complete,
            on_error=on_error,
            on_cancel=on_cancel,
            observers=observers,
            notifier=self._notifier,
        )
        # a re-tracked id moves to the end of the registry
        self._supervisors.pop(job_id, None)
        self._supervisors[job_id] = supervisor
        self._prune_finished()
        supervisor.start()
        logger.info(f"[tracker:track] supervising job_id={job_id}")
        return supervisor

    def _prune_finished(self) -> None:
        """Drop the oldest terminal supervisors beyond `max_finished`."""
        finished = [job_id for job_id, sup in self._supervisors.items() if sup.is_terminal]
        for job_id in finished[: max(0, len(finished) - self._max_finished)]:
            del self._supervisors[job_id]
            logger.debug(f"[tracker:prune] released finished job_id={job_id}")

    def get(self, job_id: str) -> Optional[JobSupervisor]:
        return self._supervisors.get(job_id)

    def require(self, job_id: str) -> JobSupervisor:
        supervisor = self._supervisors.get(job_id)
        if supervisor is None:
            raise UnknownJobError(job_id)
        return supervisor

    def active_job_ids(self) -> list[str]:
        return [job_id for job_id, sup in self._supervisors.items() if sup.is_active]

    def cancel(self, job_id: str, notify_server: bool = False) -> bool:
        """Cancel supervision of `job_id`.

        With `notify_server` the API is asked to mark the job cancelled first;
        that request runs in the background and never delays the local cancel.
        """
        supervisor = self.require(job_id)
        if notify_server and supervisor.is_active and self._starter is not None:
            task = asyncio.create_task(self._starter.request_cancel(job_id, CANCEL_REASON))
            self._background.add(task)
            task.add_done_callback(self._background.discard)
        return supervisor.cancel()

    async def retry(self, job_id: str) -> JobSupervisor:
        """Retry a failed or cancelled job and supervise the relaunched one.

        The old supervisor is left as it is; a new one is always created, for the
        new job id or, when nothing could be relaunched, for the same id again.
        """
        previous = self.require(job_id)
        result = await previous.retry()
        if result.reload:
            logger.info(f"[tracker:retry] re-supervising job_id={job_id} (no parameters to relaunch)")
        else:
            logger.info(f"[tracker:retry] supervising relaunched job_id={result.job_id} retry_of={job_id}")
        return self.track(result.job_id, observers=previous.observers, **previous.callbacks)

    async def shutdown(self) -> None:
        self._shutdown = True
        tasks = []
        for supervisor in list(self._supervisors.values()):
            if supervisor.task is not None:
                tasks.append(supervisor.task)
            supervisor.cancel()
        tasks.extend(self._background)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug(f"[tracker:shutdown] stopped supervisors count={len(tasks)}")
