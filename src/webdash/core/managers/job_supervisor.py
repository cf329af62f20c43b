"""JobSupervisor: client-side state machine for one website-generation job.

Responsibilities:
1. Verify the job exists (one status request per attempt).
2. Poll the status endpoint on a fixed cadence, one request in flight at most.
3. Absorb transient failures through the RetryPolicy; fail on any cap.
4. Map coarse progress onto generation steps and emit it to observers.
5. Hand a completed site to the ResultSink at most once.
6. Settle exactly one terminal outcome and fire exactly one callback.
7. Relaunch a failed/cancelled job with the captured parameters (retry).

States: verifying -> polling -> {complete, failed, cancelled}. Terminal
transitions happen in `_finish`, synchronously: once it returns no further
status request is dispatched and any response still in flight is discarded.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Any, Callable, Iterable, Optional

from webdash.core.config import SupervisorConfig
from webdash.core.exceptions import InvalidSupervisorStateError, JobStartError
from webdash.core.interfaces.job_starter import JobStarterPort
from webdash.core.interfaces.job_status import JobStatusPort
from webdash.core.interfaces.notifier import Notification, NotifierPort
from webdash.core.interfaces.observers import SupervisorObserver
from webdash.core.interfaces.result_sink import ResultSinkPort
from webdash.core.logging_config import bind_correlation_id
from webdash.core.managers.cancellation import CancellationToken
from webdash.core.managers.progress_mapper import (
    initial_progress,
    progress_for,
    running_progress,
)
from webdash.core.managers.retry_policy import (
    ErrorClass,
    RetryCounters,
    RetryDecision,
    RetryPolicy,
)
from webdash.core.models.job import CompletedSite, GenerationParams, JobSnapshot, JobStatus
from webdash.core.models.lookup import Found, NotFound, StatusLookup
from webdash.core.models.outcome import (
    Cancelled,
    Completed,
    Failed,
    FailureReason,
    RetryResult,
    TerminalOutcome,
)
from webdash.core.models.progress import GenerationProgress, ProgressStatus
from webdash.core.settings import logger
from webdash.core.utils.job_id import generate_job_id

SERVER_FAILED_MESSAGE = "Failed to generate website"
MISSING_URL_MESSAGE = "Website generated but URL not found"
VERIFICATION_TRANSPORT_MESSAGE = "Error connecting to the server"
UNEXPECTED_ERROR_MESSAGE = "Unexpected error while tracking website generation"


class SupervisorState(StrEnum):
    verifying = "verifying"
    polling = "polling"
    complete = "complete"
    failed = "failed"
    cancelled = "cancelled"


TERMINAL_STATES = frozenset(
    {SupervisorState.complete, SupervisorState.failed, SupervisorState.cancelled}
)

CompleteCallback = Callable[[CompletedSite], Any]
ErrorCallback = Callable[[str], Any]
CancelCallback = Callable[[], Any]


class OutcomeChannel:
    """One-shot holder for the terminal outcome.

    `settle` succeeds once; later calls are ignored and return False, which is
    what makes the supervisor's callbacks fire exactly once.
    """

    def __init__(self) -> None:
        self._outcome: Optional[TerminalOutcome] = None
        self._waiters: list[asyncio.Future] = []

    @property
    def settled(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> Optional[TerminalOutcome]:
        return self._outcome

    def settle(self, outcome: TerminalOutcome) -> bool:
        if self._outcome is not None:
            return False
        self._outcome = outcome
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(outcome)
        self._waiters.clear()
        return True

    async def wait(self) -> TerminalOutcome:
        if self._outcome is not None:
            return self._outcome
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter


class JobSupervisor:
    """Supervises one generation job until it completes, fails or is cancelled.

    Attributes:
        job_id: The supervised job
        config: Immutable polling/retry configuration
    """

    def __init__(
        self,
        job_id: str,
        status_client: JobStatusPort,
        result_sink: ResultSinkPort,
        config: SupervisorConfig,
        job_starter: Optional[JobStarterPort] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_cancel: Optional[CancelCallback] = None,
        observers: Optional[Iterable[SupervisorObserver]] = None,
        notifier: Optional[NotifierPort] = None,
    ) -> None:
        self.job_id = job_id
        self.config = config
        self._status = status_client
        self._sink = result_sink
        self._starter = job_starter
        self._on_complete = on_complete
        self._on_error = on_error
        self._on_cancel = on_cancel
        self._observers: list[SupervisorObserver] = list(observers or [])
        self._notifier = notifier

        self._policy = RetryPolicy(config)
        self._counters = RetryCounters()
        self._token = CancellationToken()
        self._channel = OutcomeChannel()
        self._state = SupervisorState.verifying
        self._progress: GenerationProgress = initial_progress()
        self._params: Optional[GenerationParams] = None
        self._task: Optional[asyncio.Task] = None
        self._polls_issued = 0
        self._sink_attempted = False
        self._retrying = False

    # ---------------- Public surface -----------------
    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def progress(self) -> GenerationProgress:
        return self._progress

    @property
    def generation_params(self) -> Optional[GenerationParams]:
        return self._params

    @property
    def outcome(self) -> Optional[TerminalOutcome]:
        return self._channel.outcome

    @property
    def polls_issued(self) -> int:
        return self._polls_issued

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def is_active(self) -> bool:
        return not self.is_terminal

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    # Callbacks and observers are shared with a retried supervisor
    @property
    def callbacks(self) -> dict[str, Any]:
        return {
            "on_complete": self._on_complete,
            "on_error": self._on_error,
            "on_cancel": self._on_cancel,
        }

    @property
    def observers(self) -> list[SupervisorObserver]:
        return list(self._observers)

    def add_observer(self, observer: SupervisorObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def start(self) -> Optional[asyncio.Task]:
        """Launch the supervision task. Idempotent; a terminal supervisor is never restarted."""
        if self._task is not None or self.is_terminal:
            return self._task
        logger.debug(f"[supervisor:start] scheduling supervision job_id={self.job_id}")
        self._task = asyncio.create_task(self._run(), name=f"supervisor:{self.job_id}")
        return self._task

    def cancel(self) -> bool:
        """Stop supervising locally. Does not tell the server to stop the job.

        Returns True if this call moved the supervisor to `cancelled`.
        """
        if self.is_terminal:
            return False
        logger.info(f"[supervisor:cancel] cancelled by caller job_id={self.job_id} state={self._state}")
        finished = self._finish(Cancelled(origin="caller"))
        if finished:
            self._notify(
                Notification(
                    title="Generation cancelled",
                    description="Website generation has been cancelled",
                    job_id=self.job_id,
                )
            )
        return finished

    async def wait(self) -> TerminalOutcome:
        """Wait for the terminal outcome."""
        return await self._channel.wait()

    async def retry(self) -> RetryResult:
        """Relaunch this job's generation parameters under a fresh job id.

        Only allowed once the supervisor failed or was cancelled. Without
        captured parameters nothing is started and the result asks the caller
        to supervise the original job again.
        """
        if self._state not in (SupervisorState.failed, SupervisorState.cancelled):
            raise InvalidSupervisorStateError(self.job_id, str(self._state), "retry")
        if self._retrying:
            raise InvalidSupervisorStateError(self.job_id, "retrying", "retry")

        if self._params is None:
            logger.warning(
                f"[supervisor:retry] no generation parameters captured; falling back to reload job_id={self.job_id}"
            )
            return RetryResult(job_id=self.job_id, reload=True)

        if self._starter is None:
            raise JobStartError("No job starter configured", job_id=self.job_id)

        self._retrying = True
        new_job_id = generate_job_id()
        try:
            logger.info(f"[supervisor:retry] starting job_id={new_job_id} retry_of={self.job_id}")
            await self._starter.start_job(new_job_id, self._params)
        except JobStartError as exc:
            logger.error(f"[supervisor:retry] start failed job_id={new_job_id} error={exc.message}")
            self._notify(
                Notification(
                    title="Error retrying generation",
                    description=exc.message or "Please try again later",
                    variant="destructive",
                    job_id=self.job_id,
                )
            )
            raise
        finally:
            self._retrying = False
        return RetryResult(job_id=new_job_id)

    # ---------------- Supervision task -----------------
    async def _run(self) -> None:
        with bind_correlation_id(self.job_id):
            try:
                if await self._verify():
                    await self._poll_loop()
            except asyncio.CancelledError:
                if self.is_terminal:
                    # torn down by _finish; nothing left to do
                    return
                self._finish(Cancelled(origin="caller"))
                raise
            except Exception:
                logger.exception(f"[supervisor:error] unexpected error job_id={self.job_id}")
                self._fail(UNEXPECTED_ERROR_MESSAGE, FailureReason.unexpected_error)

    async def _verify(self) -> bool:
        """Check the job exists before committing to a polling loop.

        Returns True when the job is pending/processing and polling should start.
        """
        counters = RetryCounters()
        while not self._token.cancelled:
            logger.debug(f"[supervisor:verify] checking job_id={self.job_id}")
            lookup = await self._status.fetch_status(self.job_id)
            if self.is_terminal:
                logger.debug(f"[supervisor:verify] discarding stale response job_id={self.job_id}")
                return False

            if isinstance(lookup, Found):
                return await self._handle_snapshot(lookup.snapshot, verifying=True)

            if isinstance(lookup, NotFound):
                attempt = counters.record_failure(ErrorClass.not_found)
                logger.info(f"[supervisor:verify] job not visible yet job_id={self.job_id} attempt={attempt}")
                if self.config.cap_verification_not_found:
                    decision = self._policy.decide(ErrorClass.not_found, attempt)
                    if not decision.should_retry:
                        self._give_up(decision)
                        return False
                delay = self.config.verify_retry_delay
            else:
                if not self.config.retry_transport_during_verification:
                    logger.error(f"[supervisor:verify] transport failure job_id={self.job_id} lookup={lookup!r}")
                    self._fail(VERIFICATION_TRANSPORT_MESSAGE, FailureReason.verification_transport_error)
                    return False
                attempt = counters.record_failure(ErrorClass.transport)
                decision = self._policy.decide(ErrorClass.transport, attempt)
                logger.warning(
                    f"[supervisor:verify] transport failure job_id={self.job_id} attempt={attempt} action={decision.action}"
                )
                if not decision.should_retry:
                    self._give_up(decision)
                    return False
                delay = decision.delay

            if not await self._token.sleep(delay):
                return False
        return False

    async def _poll_loop(self) -> None:
        self._state = SupervisorState.polling
        delay = self.config.poll_interval
        while True:
            if not await self._token.sleep(delay):
                logger.debug(f"[supervisor:poll] stopping: cancelled job_id={self.job_id}")
                return
            if self.is_terminal:
                return

            ceiling = self._policy.check_attempt_ceiling(self._polls_issued)
            if ceiling is not None:
                logger.warning(
                    f"[supervisor:poll] attempt ceiling reached job_id={self.job_id} polls={self._polls_issued}"
                )
                self._give_up(ceiling)
                return

            self._polls_issued += 1
            logger.debug(f"[supervisor:poll] polling job_id={self.job_id} poll={self._polls_issued}")
            lookup = await self._status.fetch_status(self.job_id)
            if self.is_terminal:
                logger.debug(f"[supervisor:poll] discarding stale response job_id={self.job_id}")
                return

            next_delay = await self._handle_poll_result(lookup)
            if next_delay is None:
                return
            delay = next_delay

    async def _handle_poll_result(self, lookup: StatusLookup) -> Optional[float]:
        """Process one poll result. Returns the delay before the next poll, None to stop."""
        if isinstance(lookup, Found):
            self._counters.record_found()
            keep_polling = await self._handle_snapshot(lookup.snapshot, verifying=False)
            return self.config.poll_interval if keep_polling else None

        error_class = ErrorClass.not_found if isinstance(lookup, NotFound) else ErrorClass.transport
        attempt = self._counters.record_failure(error_class)
        decision = self._policy.decide(error_class, attempt)
        logger.info(
            f"[supervisor:poll] {error_class} job_id={self.job_id} attempt={attempt} action={decision.action}"
        )
        if not decision.should_retry:
            self._give_up(decision)
            return None
        return decision.delay

    async def _handle_snapshot(self, snapshot: JobSnapshot, verifying: bool) -> bool:
        """Apply a found snapshot. Returns True while the job is still running."""
        if snapshot.generation_params is not None:
            self._params = snapshot.generation_params

        if snapshot.status == JobStatus.failed:
            message = snapshot.error or SERVER_FAILED_MESSAGE
            logger.warning(f"[supervisor:snapshot] server reported failure job_id={self.job_id} error={message}")
            self._fail(message, FailureReason.server_failed)
            if not verifying:
                self._notify(
                    Notification(
                        title="Generation Failed",
                        description=message,
                        variant="destructive",
                        job_id=self.job_id,
                    )
                )
            return False

        if snapshot.status == JobStatus.complete:
            await self._complete(snapshot)
            return False

        if snapshot.status == JobStatus.cancelled:
            logger.info(f"[supervisor:snapshot] job cancelled server-side job_id={self.job_id}")
            self._finish(Cancelled(origin="server"))
            return False

        status = (
            ProgressStatus.processing
            if snapshot.status == JobStatus.processing
            else ProgressStatus.pending
        )
        self._progress = running_progress(snapshot.progress, status)
        logger.debug(
            f"[supervisor:snapshot] job_id={self.job_id} status={snapshot.status} "
            f"progress={snapshot.progress} step={self._progress.current_step}"
        )
        self._emit_progress()
        return True

    async def _complete(self, snapshot: JobSnapshot) -> None:
        if snapshot.site_url is None:
            logger.error(f"[supervisor:complete] job complete without site url job_id={self.job_id}")
            self._fail(MISSING_URL_MESSAGE, FailureReason.missing_result_url)
            return

        site = CompletedSite.from_snapshot(self.job_id, snapshot)
        await self._persist(site)
        if self.is_terminal:
            # cancelled while the record was being written
            return
        self._finish(Completed(site=site))

    async def _persist(self, site: CompletedSite) -> None:
        if self._sink_attempted:
            return
        self._sink_attempted = True
        try:
            await self._sink.save(site)
            logger.debug(f"[supervisor:complete] result stored job_id={self.job_id} site_url={site.site_url}")
        except Exception as exc:
            # best effort; the in-memory outcome stays authoritative
            logger.warning(f"[supervisor:complete] result sink failed job_id={self.job_id} error={exc!r}")

    # ---------------- Terminal handling -----------------
    def _give_up(self, decision: RetryDecision) -> None:
        self._fail(decision.message or SERVER_FAILED_MESSAGE, decision.reason or FailureReason.unexpected_error)

    def _fail(self, message: str, reason: FailureReason) -> None:
        self._finish(Failed(message=message, reason=reason))

    def _finish(self, outcome: TerminalOutcome) -> bool:
        if not self._channel.settle(outcome):
            logger.debug(f"[supervisor:terminal] ignoring second outcome job_id={self.job_id} kind={outcome.kind}")
            return False

        if isinstance(outcome, Completed):
            self._state = SupervisorState.complete
            self._progress = progress_for(ProgressStatus.complete)
        elif isinstance(outcome, Failed):
            self._state = SupervisorState.failed
            self._progress = progress_for(ProgressStatus.error)
        else:
            self._state = SupervisorState.cancelled
            self._progress = progress_for(ProgressStatus.cancelled)
        self._token.cancel()

        logger.info(f"[supervisor:terminal] job_id={self.job_id} state={self._state} polls={self._polls_issued}")
        self._emit_progress()
        for observer in self._observers:
            try:
                observer.on_terminal(self.job_id, outcome)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_terminal failed observer={type(observer).__name__} "
                    f"job_id={self.job_id} error={exc}"
                )
        self._fire_callback(outcome)
        self._stop_task()
        return True

    def _fire_callback(self, outcome: TerminalOutcome) -> None:
        try:
            if isinstance(outcome, Completed):
                if self._on_complete:
                    self._on_complete(outcome.site)
            elif isinstance(outcome, Failed):
                if self._on_error:
                    self._on_error(outcome.message)
            elif self._on_cancel:
                self._on_cancel()
        except Exception as exc:
            logger.error(f"[supervisor:callback] callback failed job_id={self.job_id} kind={outcome.kind} error={exc}")

    def _stop_task(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    # ---------------- Emission helpers -----------------
    def _emit_progress(self) -> None:
        for observer in self._observers:
            try:
                observer.on_progress(self.job_id, self._progress)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_progress failed observer={type(observer).__name__} "
                    f"job_id={self.job_id} error={exc}"
                )

    def _notify(self, notification: Notification) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.notify(notification)
        except Exception as exc:
            logger.error(f"[supervisor:notify] notifier failed job_id={self.job_id} error={exc}")
