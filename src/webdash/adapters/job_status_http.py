from pydantic import ValidationError

from webdash.core.exceptions import UpstreamException
from webdash.core.interfaces.http_client import HttpClientPort
from webdash.core.interfaces.job_status import JobStatusPort
from webdash.core.models.job import JobSnapshot
from webdash.core.models.lookup import Found, NotFound, StatusLookup, TransportFailure
from webdash.core.settings import logger


class HttpJobStatusClient(JobStatusPort):
    """Reads `GET {base_url}/job-status?jobId=<id>` and normalizes the answer.

    Every failure mode (HTTP error, network, timeout, malformed body) becomes a
    TransportFailure; nothing propagates to the supervisor.
    """

    def __init__(self, http_client: HttpClientPort, base_url: str, timeout: float | None = None):
        self._http = http_client
        self._url = base_url.rstrip("/") + "/job-status"
        self._timeout = timeout

    async def fetch_status(self, job_id: str) -> StatusLookup:
        try:
            body = await self._http.get(self._url, params={"jobId": job_id}, timeout=self._timeout)
        except UpstreamException as exc:
            logger.debug(f"[http:status] upstream error job_id={job_id} status={exc.response.status}")
            return TransportFailure(exc, status=exc.response.status)
        except Exception as exc:
            logger.warning(f"[http:status] unexpected error job_id={job_id} error={exc!r}")
            return TransportFailure(exc)

        if not isinstance(body, dict):
            return TransportFailure(ValueError(f"unexpected status body type {type(body).__name__}"))

        job = body.get("job")
        if not job:
            return NotFound()
        if not isinstance(job, dict):
            return TransportFailure(ValueError("job field is not an object"))

        try:
            snapshot = JobSnapshot.from_payload(job)
        except (ValidationError, ValueError, OverflowError) as exc:
            logger.warning(f"[http:status] malformed job document job_id={job_id} error={exc}")
            return TransportFailure(exc)
        return Found(snapshot)
