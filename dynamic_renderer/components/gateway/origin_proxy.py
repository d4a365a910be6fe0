"""
Relays inbound requests to the origin and streams the origin response back
unmodified (status, end-to-end headers, raw body bytes).
"""
from typing import AsyncIterator, Iterable, List, Optional, Tuple

import httpx
from starlette.requests import Request
from starlette.responses import StreamingResponse

from dynamic_renderer.core.exceptions import GatewayError
from dynamic_renderer.core.logger import get_logger

logger = get_logger(__name__)

# RFC 7230 section 6.1 connection-level headers; never forwarded in either direction.
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})


def _end_to_end(headers: Iterable[Tuple[str, str]], drop: Iterable[str] = ()) -> List[Tuple[str, str]]:
    excluded = HOP_BY_HOP_HEADERS.union(h.lower() for h in drop)
    return [(k, v) for k, v in headers if k.lower() not in excluded]


async def _relay(upstream: httpx.Response) -> AsyncIterator[bytes]:
    """Yields the raw origin body; the upstream connection is released however iteration ends."""
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    finally:
        await upstream.aclose()


class OriginProxy:
    """
    Forwards requests to `base_url` over a shared `httpx.AsyncClient`.

    Redirects are not followed; the origin's 3xx is relayed to the client as-is.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=False)

    def target_url(self, path: str, query: str = "") -> str:
        url = f"{self.base_url}{path}"
        return f"{url}?{query}" if query else url

    async def forward(self, request: Request) -> StreamingResponse:
        """
        Sends `request` to the origin and returns a streaming response that
        relays the origin's answer.

        Raises:
            GatewayError: If the origin cannot be reached.
        """
        url = self.target_url(request.url.path, request.url.query)
        headers = _end_to_end(request.headers.items(), drop=("host", "content-length"))
        headers.append(("x-forwarded-host", request.headers.get("host", "")))
        headers.append(("x-forwarded-proto", request.url.scheme))
        if request.client:
            headers.append(("x-forwarded-for", request.client.host))
        body = await request.body()

        upstream_request = self._client.build_request(request.method, url, headers=headers, content=body)
        try:
            upstream = await self._client.send(upstream_request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"Origin request failed for {request.method} {url}: {e}")
            raise GatewayError(f"Origin request failed for {url}: {e}")

        logger.debug(f"Origin responded {upstream.status_code} for {request.method} {url}")
        response = StreamingResponse(
            _relay(upstream),
            status_code=upstream.status_code,
        )
        # raw_headers keeps repeated headers such as Set-Cookie intact.
        response.raw_headers = [
            (k.encode("latin-1"), v.encode("latin-1"))
            for k, v in _end_to_end(upstream.headers.multi_items())
        ]
        return response

    async def close(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
