from abc import ABC, abstractmethod

from webdash.core.models.job import GenerationParams


class JobStarterPort(ABC):
    """Port to the endpoints that launch and stop generation jobs."""

    @abstractmethod
    async def start_job(self, job_id: str, params: GenerationParams) -> None:
        """Start a job under `job_id` with the given parameters.

        Raises JobStartError when the API does not confirm the start.
        """
        raise NotImplementedError

    @abstractmethod
    async def request_cancel(self, job_id: str, reason: str) -> None:
        """Ask the API to mark the job cancelled. Best effort; must not raise."""
        raise NotImplementedError
