# fidforge/transport/http.py
"""
fidforge Transport: HTTP

Async HTTP transport used by the naming-authority and hub clients.

    HTTPTransport      - abstract get/post
    HttpxTransport     - httpx.AsyncClient with connection pooling
    MockHTTPTransport  - records requests, answers from routes or a queue

Usage:
    transport = HttpxTransport(timeout=30.0)
    resp = await transport.get("https://fnames.farcaster.xyz/transfers/current",
                               params={"fid": "1000"})
    if resp.ok:
        data = resp.json()
    await transport.aclose()
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class TransportError(Exception):
    """Request never produced an HTTP response (DNS, connect, timeout)."""

    def __init__(self, method: str, url: str, reason: str):
        self.method = method
        self.url = url
        self.reason = reason
        super().__init__(f"{method} {url} failed: {reason}")


# =============================================================================
# Response
# =============================================================================

@dataclass
class HTTPResponse:
    """HTTP response."""
    status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Parse body as JSON (None for an empty body)."""
        if not self.body.strip():
            return None
        return json.loads(self.body)

    @classmethod
    def from_json(cls, status: int, payload: Any) -> HTTPResponse:
        return cls(
            status=status,
            body=json.dumps(payload).encode(),
            headers={"content-type": "application/json"},
        )


# =============================================================================
# HTTP Transport (Abstract)
# =============================================================================

class HTTPTransport(ABC):
    """Abstract HTTP transport."""

    @abstractmethod
    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        """Send GET request."""
        pass

    @abstractmethod
    async def post(
        self,
        url: str,
        data: bytes,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        """Send POST request."""
        pass

    async def aclose(self) -> None:
        """Release connections."""
        pass


class HttpxTransport(HTTPTransport):
    """
    httpx-backed transport.

    Uses one persistent AsyncClient, created on first use.
    """

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _request(self, method: str, url: str, **kwargs: Any) -> HTTPResponse:
        try:
            resp = await self._get_client().request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(method, url, str(e) or type(e).__name__) from e

        logger.debug(f"{method} {url} -> {resp.status_code}")
        return HTTPResponse(
            status=resp.status_code,
            body=resp.content,
            headers=dict(resp.headers),
        )

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        return await self._request("GET", url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        data: bytes,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        return await self._request("POST", url, content=data, headers=headers)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# =============================================================================
# Mock Transport (for testing)
# =============================================================================

Handler = Callable[[Dict[str, Any]], HTTPResponse]


class MockHTTPTransport(HTTPTransport):
    """
    Mock HTTP transport for testing.

    Responses come from, in order:
        1. the response queue (FIFO)
        2. the first route whose method and path match
        3. a 404
    """

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self._response_queue: List[HTTPResponse] = []
        self._routes: List[Tuple[str, str, Union[HTTPResponse, Handler]]] = []

    def queue_response(self, response: HTTPResponse) -> None:
        """Queue a response to return."""
        self._response_queue.append(response)

    def route(
        self,
        method: str,
        path: str,
        response: Union[HTTPResponse, Handler],
    ) -> None:
        """Answer method+path with a fixed response or a handler(request)."""
        self._routes.append((method.upper(), path, response))

    def requests_for(self, method: str, path: str) -> List[Dict[str, Any]]:
        """Recorded requests matching method+path."""
        return [
            r for r in self.requests
            if r["method"] == method.upper() and r["path"] == path
        ]

    def _respond(self, request: Dict[str, Any]) -> HTTPResponse:
        self.requests.append(request)
        if self._response_queue:
            return self._response_queue.pop(0)
        for method, path, response in self._routes:
            if method == request["method"] and path == request["path"]:
                return response(request) if callable(response) else response
        return HTTPResponse(status=404, body=b"Not Found")

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        return self._respond({
            "method": "GET",
            "url": url,
            "path": urlsplit(url).path,
            "params": dict(params or {}),
            "headers": dict(headers or {}),
            "data": b"",
        })

    async def post(
        self,
        url: str,
        data: bytes,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        return self._respond({
            "method": "POST",
            "url": url,
            "path": urlsplit(url).path,
            "params": {},
            "headers": dict(headers or {}),
            "data": data,
        })
