from typing import Optional

from webdash.core.models.upstream_error import UpstreamErrorResponse


class UpstreamException(Exception):
    """Raised by HTTP adapters when the generation API cannot be reached or answers badly."""
    def __init__(self, response: UpstreamErrorResponse):
        self.response = response
        super().__init__(f"{response.title} ({response.status}): {response.detail}")


class TransientUpstreamError(UpstreamException):
    """Wrapper for upstream errors worth retrying (connection errors, 502, 503, 504)."""

    pass


# Domain-specific tracking exceptions

class WebdashError(Exception):
    """Base exception for errors that cross the tracker's public boundary.

    Attributes:
        message: Human-readable error description
        job_id: Optional job identifier
    """
    def __init__(self, message: str, job_id: Optional[str] = None):
        self.message = message
        self.job_id = job_id
        super().__init__(message)


class JobStartError(WebdashError):
    """Raised when the start-job endpoint refuses or fails to launch a job.

    Attributes:
        upstream_status: HTTP status code from the API (if applicable)
    """
    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        upstream_status: Optional[int] = None,
    ):
        self.upstream_status = upstream_status
        super().__init__(message=message, job_id=job_id)


class InvalidSupervisorStateError(WebdashError):
    """Raised when an operation is not allowed in the supervisor's current state."""
    def __init__(self, job_id: str, state: str, operation: str):
        self.state = state
        self.operation = operation
        message = f"Cannot {operation} job {job_id} while it is {state}"
        super().__init__(message=message, job_id=job_id)


class UnknownJobError(WebdashError):
    """Raised by the tracker for a job id it has never supervised."""
    def __init__(self, job_id: str):
        super().__init__(message=f"Job {job_id} is not tracked", job_id=job_id)
