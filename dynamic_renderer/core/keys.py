"""
Cache key derivation shared by the capture pipeline and the edge gateway.

Both sides must produce byte-identical keys for the same hostname and path;
any divergence shows up as permanent cache misses.
"""
import hashlib
import re
from urllib.parse import quote, unquote, urlsplit

_SEPARATOR_RUN = re.compile(r"/{2,}")

# Characters left unescaped when re-encoding a path (RFC 3986 pchar plus '/').
_PATH_SAFE = "/:@!$&'()*+,;=-._~"


def derive_site_id(hostname: str) -> str:
    """
    Returns the site identity for `hostname`: the hex MD5 digest of the name.

    MD5 is used for stable namespacing only, not for security.
    """
    return hashlib.md5(hostname.encode("utf-8")).hexdigest()


def derive_cache_key(site_id: str, hostname: str, path: str) -> str:
    """
    Builds the storage key `cache/{site_id}/{hostname}{path}.html`.

    Runs of consecutive '/' are collapsed into one.
    """
    return _SEPARATOR_RUN.sub("/", f"cache/{site_id}/{hostname}{path}") + ".html"


def normalize_path(path: str) -> str:
    """
    Canonical form of a URL path: percent-encoding normalized, empty path as '/'.

    Browsers and ASGI servers disagree on whether paths arrive encoded, so
    both sides pass through here before deriving a key.
    """
    if not path:
        return "/"
    return quote(unquote(path), safe=_PATH_SAFE)


def cache_key_for(hostname: str, path: str) -> str:
    """Site identity and cache key in one call, with the path normalized."""
    hostname = hostname.lower()
    return derive_cache_key(derive_site_id(hostname), hostname, normalize_path(path))


def cache_key_for_url(url: str) -> str:
    """
    Cache key for a full URL. Query string and fragment are not part of the key.

    Raises:
        ValueError: If the URL has no hostname.
    """
    parts = urlsplit(url)
    if not parts.hostname:
        raise ValueError(f"URL has no hostname: {url!r}")
    return cache_key_for(parts.hostname, parts.path)
