"""
Classifies inbound requests for the edge gateway.

Two independent questions are answered per request:
- is the path a media/static asset that must never be served from the cache?
- does the User-Agent belong to a known crawler?

Bot detection is a case-insensitive substring match. A human UA that happens
to contain a bot token is treated as a bot; an unlisted bot gets pass-through.
"""
from typing import Iterable, Optional, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from dynamic_renderer.core.config import DEFAULT_BOT_USER_AGENTS, DEFAULT_MEDIA_EXTENSIONS

if TYPE_CHECKING:
    from dynamic_renderer.core.config import ClassifierSettings


class ClassificationResult(BaseModel):
    """Per-request classification; never persisted."""
    model_config = ConfigDict(frozen=True)

    is_media_asset: bool
    is_bot: bool


def _lowered(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(v.lower() for v in values if v)


class RequestClassifier:
    """
    Attributes:
        bot_user_agents (Tuple[str, ...]): Lowercased crawler signatures.
        media_extensions (Tuple[str, ...]): Lowercased file extensions that bypass caching.
    """

    def __init__(self, settings: Optional["ClassifierSettings"] = None):
        if settings:
            self.bot_user_agents = _lowered(settings.bot_user_agents)
            self.media_extensions = _lowered(settings.media_extensions)
        else:
            self.bot_user_agents = _lowered(DEFAULT_BOT_USER_AGENTS)
            self.media_extensions = _lowered(DEFAULT_MEDIA_EXTENSIONS)

    def is_media_asset(self, path: str) -> bool:
        # str.endswith accepts a tuple; an empty tuple never matches.
        return path.lower().endswith(self.media_extensions)

    def is_bot(self, client_identity: Optional[str]) -> bool:
        if not client_identity:
            return False
        lowered = client_identity.lower()
        return any(signature in lowered for signature in self.bot_user_agents)

    def classify(self, path: str, client_identity: Optional[str]) -> ClassificationResult:
        return ClassificationResult(
            is_media_asset=self.is_media_asset(path),
            is_bot=self.is_bot(client_identity),
        )
