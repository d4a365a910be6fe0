"""
Gateway component for the Dynamic Renderer.

Routing decisions for inbound requests and the transport that relays
requests to the origin.
"""
from .dispatcher import (
    EdgeDispatcher,
    GatewayRequest,
    LookupResult,
    RouteKind,
    RoutingDecision,
    decide,
)
from .origin_proxy import OriginProxy

__all__ = [
    "EdgeDispatcher",
    "GatewayRequest",
    "LookupResult",
    "RouteKind",
    "RoutingDecision",
    "decide",
    "OriginProxy",
]
