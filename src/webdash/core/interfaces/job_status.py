from abc import ABC, abstractmethod

from webdash.core.models.lookup import StatusLookup


class JobStatusPort(ABC):
    @abstractmethod
    async def fetch_status(self, job_id: str) -> StatusLookup:
        """Issue one status request for `job_id`.

        Must return Found, NotFound or TransportFailure and never raise.
        """
        pass
