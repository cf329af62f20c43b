# webdash/core/interfaces/http_client.py
from abc import ABC, abstractmethod
from typing import Any, Dict


class HttpClientPort(ABC):
    """JSON-over-HTTP access to the generation API.

    Implementations are async context managers; the session lives between
    `__aenter__` and `__aexit__`.
    """

    @abstractmethod
    async def __aenter__(self) -> "HttpClientPort":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def get(
        self,
        url: str,
        params: Dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        """Return the parsed JSON body of a GET.

        Raises UpstreamException for non-2xx answers, network failures,
        timeouts and non-JSON bodies. `timeout` (seconds, total) falls back to
        the adapter default when None.
        """
        pass

    @abstractmethod
    async def post(
        self,
        url: str,
        json: Dict[str, Any] | None,
        timeout: float | None = None,
        headers: Dict[str, str] | None = None,
    ) -> Dict[str, Any]:
        """POST a JSON body and return ``{"status", "headers", "body"}``.

        HTTP error statuses are returned so the caller can read the error body;
        only network failures and timeouts raise UpstreamException.
        """
        pass
