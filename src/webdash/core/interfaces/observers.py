"""Observer protocol for supervisor events.

Observers decouple side effects (progress display, history recording, UI feeds)
from the supervisor's state machine. They are called synchronously from the
supervisor task, so implementations must not block.
"""

from typing import Protocol

from webdash.core.models.outcome import TerminalOutcome
from webdash.core.models.progress import GenerationProgress


class SupervisorObserver(Protocol):
    """Observer protocol for a supervised generation job.

    - on_progress: every time GenerationProgress is recomputed
    - on_terminal: once, when the supervisor settles its outcome
    """

    def on_progress(self, job_id: str, progress: GenerationProgress) -> None:
        """Called with the freshly recomputed progress.

        Args:
            job_id: Supervised job
            progress: New progress value (never a patched copy)
        """
        ...

    def on_terminal(self, job_id: str, outcome: TerminalOutcome) -> None:
        """Called exactly once per supervisor.

        Args:
            job_id: Supervised job
            outcome: Completed, Failed or Cancelled
        """
        ...
