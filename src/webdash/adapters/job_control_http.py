from typing import Any, Dict, Optional

from webdash.core.exceptions import JobStartError, TransientUpstreamError, UpstreamException
from webdash.core.interfaces.http_client import HttpClientPort
from webdash.core.interfaces.job_starter import JobStarterPort
from webdash.core.interfaces.retry import RetryPort
from webdash.core.models.job import GenerationParams
from webdash.core.models.upstream_error import UpstreamErrorResponse
from webdash.core.settings import logger

START_FAILED_MESSAGE = "Failed to start website generation"
TRANSIENT_STATUSES = (502, 503, 504)


class HttpJobControlAdapter(JobStarterPort):
    """Starts jobs (`POST /start-job`) and reports cancellations (`POST /update-job-status`)."""

    def __init__(
        self,
        http_client: HttpClientPort,
        base_url: str,
        retry_port: Optional[RetryPort] = None,
        attempts: int = 3,
        wait_initial: float = 0.5,
        wait_max: float = 4.0,
    ):
        self._http = http_client
        self._base = base_url.rstrip("/")
        self._retry = retry_port
        self._attempts = attempts
        self._wait_initial = wait_initial
        self._wait_max = wait_max

    async def start_job(self, job_id: str, params: GenerationParams) -> None:
        url = f"{self._base}/start-job"
        payload: Dict[str, Any] = {**params.to_request_body(), "jobId": job_id}

        async def post_once() -> Dict[str, Any]:
            try:
                resp = await self._http.post(url, json=payload)
            except UpstreamException as exc:
                if exc.response.status in TRANSIENT_STATUSES:
                    raise TransientUpstreamError(exc.response) from exc
                raise
            if resp.get("status") in TRANSIENT_STATUSES:
                logger.debug(f"[http:start] transient status={resp.get('status')} job_id={job_id}; will retry")
                raise TransientUpstreamError(
                    UpstreamErrorResponse(
                        title="Upstream Unavailable",
                        status=resp["status"],
                        detail=self._error_text(resp.get("body")) or START_FAILED_MESSAGE,
                    )
                )
            return resp

        try:
            if self._retry:
                resp = await self._retry.execute(
                    post_once,
                    attempts=self._attempts,
                    wait_initial=self._wait_initial,
                    wait_max=self._wait_max,
                    retry_on=(TransientUpstreamError,),
                    label="start-job",
                )
            else:
                resp = await post_once()
        except UpstreamException as exc:
            logger.error(
                f"[http:start] start-job failed job_id={job_id} status={exc.response.status} detail={exc.response.detail}"
            )
            raise JobStartError(
                exc.response.detail or START_FAILED_MESSAGE,
                job_id=job_id,
                upstream_status=exc.response.status,
            ) from exc

        status = resp.get("status") or 0
        body = resp.get("body")
        if status >= 400:
            raise JobStartError(
                self._error_text(body) or START_FAILED_MESSAGE,
                job_id=job_id,
                upstream_status=status,
            )
        if not isinstance(body, dict) or not body.get("success"):
            raise JobStartError(
                self._error_text(body) or START_FAILED_MESSAGE,
                job_id=job_id,
                upstream_status=status,
            )
        logger.info(f"[http:start] job started job_id={job_id} subdomain={body.get('subdomain')}")

    async def request_cancel(self, job_id: str, reason: str) -> None:
        url = f"{self._base}/update-job-status"
        try:
            resp = await self._http.post(url, json={"jobId": job_id, "status": "cancelled", "error": reason})
        except UpstreamException as exc:
            logger.warning(f"[http:cancel] cancel notification failed job_id={job_id} detail={exc.response.detail}")
            return
        if (resp.get("status") or 0) >= 400:
            logger.warning(f"[http:cancel] cancel notification rejected job_id={job_id} status={resp.get('status')}")
            return
        logger.debug(f"[http:cancel] cancel notification sent job_id={job_id}")

    @staticmethod
    def _error_text(body: Any) -> Optional[str]:
        if isinstance(body, dict):
            error = body.get("error")
            return str(error) if error else None
        return None
