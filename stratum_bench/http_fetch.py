from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Set

import httpx

from .bench_protocol import JSON, HttpMethod, dumps, loads
from .support.version import user_agent

log = logging.getLogger("stratum_bench.http")

DEFAULT_TIMEOUT = 30.0


@dataclass
class FetchRequest:
    """One outgoing request to the benchmark service."""

    method: HttpMethod
    host: str
    port: int
    path: str
    body: Optional[JSON] = None
    tls: bool = True
    quiet: bool = False
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def url(self) -> str:
        scheme = "https" if self.tls else "http"
        default_port = 443 if self.tls else 80
        netloc = self.host if self.port == default_port else f"{self.host}:{self.port}"
        return f"{scheme}://{netloc}{self.path}"


@dataclass
class HttpData:
    """
    Response (or transport failure) delivered to an HttpHandler.

    `status` is 0 and `error` is set when no response arrived at all.
    """

    method: HttpMethod
    url: str
    status: int = 0
    body: bytes = b""
    error: Optional[str] = None

    def status_name(self) -> str:
        return httpx.codes.get_reason_phrase(self.status) or str(self.status)

    def json(self) -> JSON:
        return loads(self.body)

    def is_transport_error(self) -> bool:
        return self.error is not None


class HttpHandler(Protocol):
    def on_http_data(self, data: HttpData) -> None: ...


class HttpListener:
    """Logs every response under `tag` before passing it to the handler."""

    def __init__(self, handler: HttpHandler, tag: str = "bench") -> None:
        self.handler = handler
        self.tag = tag

    def on_http_data(self, data: HttpData) -> None:
        if data.error is not None:
            log.debug("[%s] %s %s failed: %s", self.tag, data.method.value, data.url, data.error)
        else:
            log.debug("[%s] %s %s -> %d", self.tag, data.method.value, data.url, data.status)
        self.handler.on_http_data(data)


class Fetcher:
    """
    Fire-and-forget HTTP facility on top of httpx.AsyncClient.

    `fetch()` schedules the request on the running loop and returns
    immediately; the listener is called with an HttpData once the exchange
    completes or fails. There are no retries.

    Usage:
        fetcher = Fetcher()
        fetcher.fetch(FetchRequest(HttpMethod.GET, "api.example", 443, "/1/x"), listener)
        await fetcher.join()
        await fetcher.aclose()
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                headers={"User-Agent": user_agent()},
            )
        return self._client

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def fetch(self, req: FetchRequest, listener: HttpHandler) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._deliver(req, listener))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def send(self, req: FetchRequest) -> HttpData:
        headers = dict(req.headers)
        content: Optional[bytes] = None
        if req.body is not None:
            content = dumps(req.body)
            headers["Content-Type"] = "application/json"
        if not req.quiet:
            log.info("%s %s", req.method.value, req.url)
        try:
            response = await self.client.request(
                req.method.value, req.url, content=content, headers=headers
            )
        except httpx.HTTPError as exc:
            return HttpData(req.method, req.url, error=str(exc) or type(exc).__name__)
        return HttpData(req.method, req.url, status=response.status_code, body=response.content)

    async def _deliver(self, req: FetchRequest, listener: HttpHandler) -> None:
        data = await self.send(req)
        listener.on_http_data(data)

    async def join(self) -> None:
        """Wait until every scheduled request, including chained ones, is delivered."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        if self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = ["FetchRequest", "HttpData", "HttpHandler", "HttpListener", "Fetcher"]
