"""Result types of a single job-status lookup.

The status client never raises; every outcome of one request is one of these.
"""

from typing import Optional

from webdash.core.models.job import JobSnapshot


class StatusLookup:
    pass


class Found(StatusLookup):
    def __init__(self, snapshot: JobSnapshot):
        self.snapshot = snapshot

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Found(status={self.snapshot.status}, progress={self.snapshot.progress})"


class NotFound(StatusLookup):
    """2xx answer without a job document: not persisted server-side yet."""

    def __repr__(self) -> str:  # pragma: no cover
        return "NotFound()"


class TransportFailure(StatusLookup):
    def __init__(self, cause: Exception, status: Optional[int] = None):
        self.cause = cause
        self.status = status

    def __repr__(self) -> str:  # pragma: no cover
        return f"TransportFailure(status={self.status}, cause={self.cause!r})"
