"""
Turns a rendered DOM snapshot into a self-contained, storage-safe document.

The `DocumentSanitizer` wraps BeautifulSoup to:
- strip every <script> element (inline and external),
- guarantee a single UTF-8 charset declaration at the top of each <head>,
- inject a <base href> pointing at the source origin so relative links and
  assets resolve against the real site instead of the storage bucket.

Sanitizing is total: malformed markup never raises, and running the
sanitizer on its own output changes nothing.
"""
from typing import List, Optional, TYPE_CHECKING
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Doctype, NavigableString, Tag

from dynamic_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from dynamic_renderer.core.config import SanitizerSettings

logger = get_logger(__name__)


def _origin_of(url: str) -> Optional[str]:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def _is_charset_declaration(tag: Tag) -> bool:
    if tag.has_attr("charset"):
        return True
    return str(tag.get("http-equiv", "")).lower() == "content-type"


class DocumentSanitizer:
    """
    Applies script removal, charset normalization and base-URL injection, in that order.

    Attributes:
        remove_scripts (bool): Whether <script> elements are stripped.
        inject_base_url (bool): Whether a <base href="{origin}"> is injected.
    """
    PARSER = "html.parser"

    def __init__(self, settings: Optional["SanitizerSettings"] = None):
        self.remove_scripts = settings.remove_scripts if settings else True
        self.inject_base_url = settings.inject_base_url if settings else True

    def sanitize(self, html: str, source_url: str) -> str:
        """
        Returns the sanitized document for `html` rendered from `source_url`.

        Never raises. If the parser fails on some pathological input the
        original markup is returned unchanged and a warning is logged.
        """
        try:
            return self._sanitize(html, source_url)
        except Exception as e:
            logger.warning(f"Sanitizer could not process document from {source_url}; storing it unmodified: {e}", exc_info=True)
            return html

    def _sanitize(self, html: str, source_url: str) -> str:
        soup = BeautifulSoup(html, self.PARSER)

        if self.remove_scripts:
            scripts = soup.find_all("script")
            logger.debug(f"Removing {len(scripts)} script element(s) from {source_url}")
            for script in scripts:
                script.decompose()

        # Malformed pages can carry several <head> sections; each one is fixed up.
        heads: List[Tag] = soup.find_all("head")

        for head in heads:
            self._ensure_charset(soup, head)

        if self.inject_base_url:
            origin = _origin_of(source_url)
            if origin is None:
                logger.warning(f"Cannot derive origin from '{source_url}'; skipping base URL injection.")
            else:
                logger.debug(f"Adding base URL: {origin}")
                for head in heads:
                    self._ensure_base(soup, head, origin)

        self._trim_after_doctype(soup)
        return str(soup)

    @staticmethod
    def _trim_after_doctype(soup: BeautifulSoup) -> None:
        # A doctype already serializes with a trailing newline.
        for node in list(soup.contents):
            if not isinstance(node, Doctype):
                continue
            following = node.next_sibling
            if type(following) is not NavigableString:
                continue
            remainder = following.lstrip()
            if remainder:
                following.replace_with(NavigableString(remainder))
            else:
                following.extract()

    @staticmethod
    def _ensure_charset(soup: BeautifulSoup, head: Tag) -> None:
        declarations = [m for m in head.find_all("meta") if _is_charset_declaration(m)]
        keeper = next((m for m in declarations if m.has_attr("charset")), None)
        for meta in declarations:
            if meta is not keeper:
                meta.decompose()
        if keeper is None:
            keeper = soup.new_tag("meta", attrs={"charset": "utf-8"})
        else:
            keeper["charset"] = "utf-8"
            keeper.extract()
        head.insert(0, keeper)

    @staticmethod
    def _ensure_base(soup: BeautifulSoup, head: Tag, origin: str) -> None:
        matching = [b for b in head.find_all("base") if b.get("href") == origin]
        for extra in matching[1:]:
            extra.decompose()
        if matching:
            keeper = matching[0].extract()
        else:
            keeper = soup.new_tag("base", attrs={"href": origin})
        head.insert(0, keeper)
