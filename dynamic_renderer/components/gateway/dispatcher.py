"""
Edge dispatch: decides, per request, whether to pass through to the origin,
serve a captured document, or fall back to the live origin after a miss.

The decision itself is the pure function `decide()`. `EdgeDispatcher` wraps it
with the one piece of I/O involved, the storage lookup, which always fails
open: a missing object, a storage error and a lookup timeout all end in
`FALLBACK_TO_ORIGIN`.
"""
import asyncio
from enum import Enum
from typing import Dict, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from dynamic_renderer.components.classifier.request_classifier import ClassificationResult, RequestClassifier
from dynamic_renderer.core.exceptions import StorageNotFoundError
from dynamic_renderer.core.keys import cache_key_for
from dynamic_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from dynamic_renderer.components.storage.base import StorageBackend
    from dynamic_renderer.core.config import RenderSettings

logger = get_logger(__name__)


class RouteKind(str, Enum):
    PASS_THROUGH = "pass_through"
    SERVE_CACHED = "serve_cached"
    FALLBACK_TO_ORIGIN = "fallback_to_origin"


class GatewayRequest(BaseModel):
    """The parts of an inbound request the dispatcher looks at."""
    model_config = ConfigDict(frozen=True)

    host: str
    path: str
    user_agent: str = ""


class LookupResult(BaseModel):
    """Outcome of one storage lookup. `error` is set when the lookup itself failed."""
    model_config = ConfigDict(frozen=True)

    found: bool
    document: Optional[bytes] = None
    error: Optional[str] = None


class RoutingDecision(BaseModel):
    """
    Terminal routing outcome for one request.

    `document` is only set for SERVE_CACHED; `cache_key` is set whenever a
    lookup was attempted.
    """
    model_config = ConfigDict(frozen=True)

    kind: RouteKind
    document: Optional[bytes] = None
    cache_key: Optional[str] = None

    @classmethod
    def pass_through(cls) -> "RoutingDecision":
        return cls(kind=RouteKind.PASS_THROUGH)

    @classmethod
    def serve_cached(cls, document: bytes, cache_key: Optional[str] = None) -> "RoutingDecision":
        return cls(kind=RouteKind.SERVE_CACHED, document=document, cache_key=cache_key)

    @classmethod
    def fallback_to_origin(cls, cache_key: Optional[str] = None) -> "RoutingDecision":
        return cls(kind=RouteKind.FALLBACK_TO_ORIGIN, cache_key=cache_key)


def decide(
    classification: ClassificationResult,
    lookup: Optional[LookupResult] = None,
    cache_key: Optional[str] = None,
) -> RoutingDecision:
    """
    Pure routing function.

    media asset            -> PASS_THROUGH
    not a bot              -> PASS_THROUGH
    bot, document found    -> SERVE_CACHED
    bot, anything else     -> FALLBACK_TO_ORIGIN
    """
    if classification.is_media_asset or not classification.is_bot:
        return RoutingDecision.pass_through()
    if lookup is not None and lookup.found and lookup.document is not None:
        return RoutingDecision.serve_cached(lookup.document, cache_key)
    return RoutingDecision.fallback_to_origin(cache_key)


class EdgeDispatcher:
    """
    Stateless per-request router. Holds only configuration and collaborators,
    so one instance can serve concurrent requests.

    Attributes:
        cache_ttl (int): max-age, in seconds, sent with cached responses.
        lookup_timeout (float): Upper bound, in seconds, on a storage lookup.
        domain_name (str): Hostname used for cache keys; empty means the request host.
        local_hosts (frozenset): Hostnames that get synthetic responses instead of proxying.
    """

    def __init__(
        self,
        settings: "RenderSettings",
        storage: "StorageBackend",
        classifier: Optional[RequestClassifier] = None,
    ):
        self.storage = storage
        self.classifier = classifier or RequestClassifier(settings.classifier)
        self.cache_ttl = settings.gateway.cache_ttl
        self.lookup_timeout = settings.gateway.lookup_timeout
        self.cached_marker_header = settings.gateway.cached_marker_header
        self.local_hosts = frozenset(h.lower() for h in settings.gateway.local_hosts)
        self.domain_name = settings.site.domain_name

    def cache_key(self, request: GatewayRequest) -> str:
        hostname = self.domain_name or request.host
        return cache_key_for(hostname, request.path)

    def is_local(self, request: GatewayRequest) -> bool:
        return request.host.lower() in self.local_hosts

    def cached_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "text/html",
            "Cache-Control": f"public, max-age={self.cache_ttl}",
            self.cached_marker_header: "true",
        }

    async def lookup(self, cache_key: str) -> LookupResult:
        """Fetches `cache_key` from storage. Never raises."""
        try:
            document = await asyncio.wait_for(self.storage.get(cache_key), timeout=self.lookup_timeout)
        except StorageNotFoundError:
            logger.debug(f"Cache miss for key '{cache_key}'")
            return LookupResult(found=False)
        except asyncio.TimeoutError:
            logger.warning(f"Storage lookup timed out after {self.lookup_timeout}s for key '{cache_key}'")
            return LookupResult(found=False, error="timeout")
        except Exception as e:
            # Any lookup failure falls back to the origin rather than failing the request.
            logger.error(f"Error fetching cached content for key '{cache_key}': {e}", exc_info=True)
            return LookupResult(found=False, error=str(e))
        logger.debug(f"Cache hit for key '{cache_key}' ({len(document)} bytes)")
        return LookupResult(found=True, document=document)

    async def dispatch(self, request: GatewayRequest) -> RoutingDecision:
        classification = self.classifier.classify(request.path, request.user_agent)
        if classification.is_media_asset or not classification.is_bot:
            return decide(classification)

        cache_key = self.cache_key(request)
        lookup = await self.lookup(cache_key)
        decision = decide(classification, lookup, cache_key)
        logger.info(f"Bot request {request.host}{request.path} -> {decision.kind.value}")
        return decision
