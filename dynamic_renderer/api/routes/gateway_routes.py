"""
Catch-all gateway route.

Every inbound request, whatever its method or path, is classified by the
`EdgeDispatcher` and answered with a captured document, or relayed to the
origin through the `OriginProxy`.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse, Response

from dynamic_renderer.components.gateway import (
    EdgeDispatcher,
    GatewayRequest,
    OriginProxy,
    RouteKind,
    RoutingDecision,
)
from dynamic_renderer.core.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

PROXIED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_dispatcher(request: Request) -> EdgeDispatcher:
    return request.app.state.dispatcher


def get_origin_proxy(request: Request) -> OriginProxy:
    return request.app.state.origin_proxy


def local_response(decision: RoutingDecision) -> Response:
    """
    Synthetic answers for loopback hosts, so local testing never depends on a
    reachable origin.
    """
    if decision.kind is RouteKind.FALLBACK_TO_ORIGIN:
        return PlainTextResponse("Not found", status_code=status.HTTP_404_NOT_FOUND)
    return PlainTextResponse("Localhost content", status_code=status.HTTP_200_OK)


@router.api_route("/{full_path:path}", methods=PROXIED_METHODS, include_in_schema=False)
async def dispatch_request(
    request: Request,
    dispatcher: EdgeDispatcher = Depends(get_dispatcher),
    origin_proxy: OriginProxy = Depends(get_origin_proxy),
):
    gateway_request = GatewayRequest(
        host=request.url.hostname or "",
        path=request.url.path,
        user_agent=request.headers.get("user-agent", ""),
    )
    decision = await dispatcher.dispatch(gateway_request)

    if decision.kind is RouteKind.SERVE_CACHED:
        # Content-Type is passed as a header so it stays exactly "text/html".
        return Response(
            content=decision.document,
            status_code=status.HTTP_200_OK,
            headers=dispatcher.cached_headers(),
        )

    # Loopback hosts never reach the origin, human page requests included;
    # only a cache hit is served for real.
    if dispatcher.is_local(gateway_request):
        return local_response(decision)

    return await origin_proxy.forward(request)
