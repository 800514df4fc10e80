"""HTTP GET capability used by every wallpaper source.

Sources never talk to the network directly: they are handed an object
with an async ``get(url, headers=None)`` returning an HttpResponse. The
default implementation wraps a ``requests.Session`` and runs each blocking
call in a worker thread so the event loop keeps ticking while a provider
is slow.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

import config
from core.errors import SourceError, SourceErrorType

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    status: int
    json: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HttpClient:
    """Interface for the injected HTTP capability."""

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        raise NotImplementedError

    def close(self):
        """Release resources. Override if needed."""


class RequestsHttpClient(HttpClient):
    """HttpClient backed by requests, one shared session per client."""

    def __init__(self, timeout: float = config.HTTP_TIMEOUT,
                 user_agent: str = config.HTTP_USER_AGENT):
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers["User-Agent"] = user_agent
        self._session.headers["Accept"] = "application/json"

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return await asyncio.to_thread(self._get, url, headers or {})

    def _get(self, url: str, headers: Dict[str, str]) -> HttpResponse:
        logger.debug("GET %s", url)
        resp = self._session.get(url, headers=headers, timeout=self._timeout)
        payload = None
        if resp.content:
            try:
                payload = resp.json()
            except ValueError:
                # Error pages are often HTML; only complain when the status says success
                if resp.ok:
                    raise SourceError(
                        SourceErrorType.UNKNOWN,
                        f"Response from {url} is not valid JSON",
                        details={"status": resp.status_code},
                    )
        return HttpResponse(resp.status_code, payload)

    def close(self):
        self._session.close()
