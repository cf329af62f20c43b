# webdash/adapters/aiohttp_client_adapter.py
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from webdash.core.exceptions import UpstreamException
from webdash.core.interfaces.http_client import HttpClientPort
from webdash.core.models.upstream_error import UpstreamErrorResponse
from webdash.core.settings import logger

SOCK_CONNECT_TIMEOUT = 5.0


def _upstream_error(title: str, status: int, detail: str) -> UpstreamException:
    return UpstreamException(UpstreamErrorResponse(title=title, status=status, detail=detail))


class AioHttpClientAdapter(HttpClientPort):
    """HttpClientPort over one shared aiohttp ClientSession.

    Must be entered (`async with`) before use; the web adapter's lifespan does
    that. Transport problems surface as UpstreamException: timeouts as 504,
    connection errors and non-JSON GET bodies as 502.
    """

    def __init__(self, default_total: float = 10.0):
        self._session: Optional[aiohttp.ClientSession] = None
        # A status poll should answer well inside the two second cadence;
        # `default_total` only bounds a stuck request.
        self._default_total = default_total

    async def __aenter__(self):
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _client_timeout(self, timeout: float | None) -> aiohttp.ClientTimeout:
        total = timeout if timeout is not None else self._default_total
        return aiohttp.ClientTimeout(total=total, sock_read=total, sock_connect=SOCK_CONNECT_TIMEOUT)

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")
        return self._session

    @asynccontextmanager
    async def _translate_errors(self, method: str, url: str) -> AsyncIterator[None]:
        try:
            yield
        except asyncio.TimeoutError:
            logger.error(f"[http:{method}] timeout calling generation API url={url}")
            raise _upstream_error("Upstream Timeout", 504, "The request to the generation API timed out.")
        except aiohttp.ClientError as exc:
            logger.error(f"[http:{method}] connection error calling generation API url={url} error={exc}")
            raise _upstream_error(
                "Upstream Connection Error", 502, "There was a connection error with the generation API."
            )

    async def get(
        self,
        url: str,
        params: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        session = self._require_session()
        async with self._translate_errors("get", url):
            async with session.get(url, params=params, timeout=self._client_timeout(timeout)) as response:
                if response.status >= 400:
                    body_text = await response.text()
                    logger.warning(
                        f"[http:get] generation API answered {response.status} url={url} body={body_text[:200]}"
                    )
                    raise _upstream_error(
                        "Upstream HTTP Error",
                        response.status,
                        f"The generation API returned an HTTP error: {response.status}",
                    )
                try:
                    return await response.json()
                except aiohttp.ContentTypeError:
                    response_text = await response.text()
                    logger.error(f"[http:get] non-JSON body url={url} content={response_text[:500]}")
                    raise _upstream_error(
                        "Invalid Response Content",
                        502,
                        f"The response from the generation API was not valid JSON: '{response_text[:100]}'",
                    )

    async def post(
        self,
        url: str,
        json: Dict[str, Any] | None,
        timeout: float | None = None,
        headers: Dict[str, str] | None = None,
    ) -> Dict[str, Any]:
        session = self._require_session()
        async with self._translate_errors("post", url):
            async with session.post(
                url, json=json, timeout=self._client_timeout(timeout), headers=headers
            ) as response:
                try:
                    body: Any = await response.json()
                except aiohttp.ContentTypeError:
                    body = await response.text()
                # No raise_for_status: the caller reads the error body itself
                return {
                    "status": response.status,
                    "headers": dict(response.headers),
                    "body": body,
                }
