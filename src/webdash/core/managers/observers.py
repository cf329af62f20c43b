"""Concrete observer implementations for supervisor events."""

import logging
from typing import Dict, List, Optional

from webdash.core.models.outcome import TerminalOutcome
from webdash.core.models.progress import GenerationProgress


logger = logging.getLogger(__name__)


class ProgressHistoryObserver:
    """Records every emitted progress value and the outcome, per job.

    Shared by all supervisors of a web app so the UI can show how a job moved
    through the steps, including across a retry. Both the entries per job and
    the number of jobs are bounded; the least recently seen job is dropped first.
    """

    def __init__(self, max_entries: int = 200, max_jobs: int = 500):
        self._max_entries = max_entries
        self._max_jobs = max_jobs
        self._history: Dict[str, List[GenerationProgress]] = {}
        self._outcomes: Dict[str, TerminalOutcome] = {}

    def _touch(self, job_id: str) -> None:
        entries = self._history.pop(job_id, [])
        self._history[job_id] = entries
        while len(self._history) > self._max_jobs:
            oldest = next(iter(self._history))
            del self._history[oldest]
            self._outcomes.pop(oldest, None)
            logger.debug(f"[observer:history] evicted job_id={oldest}")

    def on_progress(self, job_id: str, progress: GenerationProgress) -> None:
        self._touch(job_id)
        entries = self._history[job_id]
        # repeated identical polls add nothing
        if entries and entries[-1] == progress:
            return
        entries.append(progress)
        if len(entries) > self._max_entries:
            del entries[0]
        logger.debug(
            f"[observer:history] job_id={job_id} step={progress.current_step} progress={progress.progress}"
        )

    def on_terminal(self, job_id: str, outcome: TerminalOutcome) -> None:
        self._touch(job_id)
        self._outcomes[job_id] = outcome

    def history(self, job_id: str) -> List[GenerationProgress]:
        return list(self._history.get(job_id, []))

    def outcome(self, job_id: str) -> Optional[TerminalOutcome]:
        return self._outcomes.get(job_id)

    def job_ids(self) -> List[str]:
        return list(self._history)
