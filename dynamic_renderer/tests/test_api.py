import httpx
import pytest
from fastapi.testclient import TestClient

from dynamic_renderer.api.main import create_app
from dynamic_renderer.components.gateway import OriginProxy
from dynamic_renderer.components.storage import StorageBackend
from dynamic_renderer.core.config import RenderSettings
from dynamic_renderer.core.exceptions import StorageError, StorageNotFoundError
from dynamic_renderer.core.keys import cache_key_for

GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
CHROME = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
CACHED_DOCUMENT = b'<html><head><base href="http://testserver"><meta charset="utf-8"></head><body>cached</body></html>'


class MemoryStorage(StorageBackend):
    """Dictionary-backed storage for exercising the gateway without a bucket."""

    def __init__(self, objects=None, fail=False):
        self.objects = dict(objects or {})
        self.fail = fail
        self.gets = []
        self.closed = False

    async def put(self, key, data, content_type, upsert=True):
        self.objects[key] = data

    async def get(self, key):
        self.gets.append(key)
        if self.fail:
            raise StorageError("storage backend unavailable")
        if key not in self.objects:
            raise StorageNotFoundError(key)
        return self.objects[key]

    async def close(self):
        self.closed = True


class FakeOrigin:
    """Records proxied requests and answers like a small origin site."""

    def __init__(self, down=False):
        self.down = down
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path == "/logo.png":
            return httpx.Response(200, headers={"content-type": "image/png"}, content=b"\x89PNG")
        return httpx.Response(
            200,
            headers={"content-type": "text/html; charset=utf-8", "set-cookie": "session=abc"},
            content=b"<html><body>origin page</body></html>",
        )


@pytest.fixture
def settings():
    return RenderSettings(origin={"base_url": "https://origin.example.com"})


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def storage():
    return MemoryStorage({cache_key_for("testserver", "/products/42"): CACHED_DOCUMENT})


@pytest.fixture
def client(settings, storage, origin):
    proxy = OriginProxy(
        settings.origin.base_url,
        client=httpx.AsyncClient(transport=httpx.MockTransport(origin)),
    )
    app = create_app(settings=settings, storage=storage, origin_proxy=proxy)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def test_bot_with_stored_document_gets_cached_version(client, storage, origin):
    response = client.get("/products/42", headers={"User-Agent": GOOGLEBOT})

    assert response.status_code == 200
    assert response.content == CACHED_DOCUMENT
    assert response.headers["content-type"] == "text/html"
    assert response.headers["cache-control"] == "public, max-age=3600"
    assert response.headers["x-cached-version"] == "true"
    assert storage.gets == [cache_key_for("testserver", "/products/42")]
    assert origin.requests == []


def test_bot_without_stored_document_gets_origin_response(client, origin):
    response = client.get("/products/43?page=2", headers={"User-Agent": GOOGLEBOT})

    assert response.status_code == 200
    assert response.text == "<html><body>origin page</body></html>"
    assert "x-cached-version" not in response.headers
    assert str(origin.requests[0].url) == "https://origin.example.com/products/43?page=2"


def test_human_passes_through_without_lookup(client, storage, origin):
    response = client.get("/products/42", headers={"User-Agent": CHROME})

    assert response.status_code == 200
    assert response.text == "<html><body>origin page</body></html>"
    assert response.headers["set-cookie"] == "session=abc"
    assert storage.gets == []
    assert origin.requests[0].headers["user-agent"] == CHROME


def test_bot_requesting_media_bypasses_cache(client, storage, origin):
    response = client.get("/logo.png", headers={"User-Agent": GOOGLEBOT})

    assert response.status_code == 200
    assert response.content == b"\x89PNG"
    assert response.headers["content-type"] == "image/png"
    assert storage.gets == []


def test_post_is_proxied_with_body(client, origin):
    response = client.post("/api/contact", content=b"name=x", headers={"User-Agent": CHROME})

    assert response.status_code == 200
    assert origin.requests[0].method == "POST"
    assert origin.requests[0].content == b"name=x"


@pytest.mark.parametrize("user_agent, expected_status, expected_text", [
    (CHROME, 200, "Localhost content"),
    (GOOGLEBOT, 404, "Not found"),
])
def test_local_host_gets_synthetic_response(client, origin, user_agent, expected_status, expected_text):
    response = client.get("/anything", headers={"User-Agent": user_agent, "Host": "localhost"})

    assert response.status_code == expected_status
    assert response.text == expected_text
    assert origin.requests == []


def test_local_host_bot_hit_still_served_from_cache(settings, origin):
    storage = MemoryStorage({cache_key_for("localhost", "/"): CACHED_DOCUMENT})
    proxy = OriginProxy(settings.origin.base_url, client=httpx.AsyncClient(transport=httpx.MockTransport(origin)))
    app = create_app(settings=settings, storage=storage, origin_proxy=proxy)

    with TestClient(app, base_url="http://localhost") as local_client:
        response = local_client.get("/", headers={"User-Agent": GOOGLEBOT})

    assert response.status_code == 200
    assert response.headers["x-cached-version"] == "true"


def test_storage_failure_falls_back_to_origin(settings, origin):
    storage = MemoryStorage(fail=True)
    proxy = OriginProxy(settings.origin.base_url, client=httpx.AsyncClient(transport=httpx.MockTransport(origin)))
    app = create_app(settings=settings, storage=storage, origin_proxy=proxy)

    with TestClient(app) as test_client:
        response = test_client.get("/products/42", headers={"User-Agent": GOOGLEBOT})

    assert response.status_code == 200
    assert response.text == "<html><body>origin page</body></html>"
    assert len(storage.gets) == 1


def test_unreachable_origin_returns_bad_gateway(settings, storage):
    proxy = OriginProxy(
        settings.origin.base_url,
        client=httpx.AsyncClient(transport=httpx.MockTransport(FakeOrigin(down=True))),
    )
    app = create_app(settings=settings, storage=storage, origin_proxy=proxy)

    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/products/99", headers={"User-Agent": CHROME})

    assert response.status_code == 502
    assert response.json() == {"detail": "The origin server could not be reached."}


def test_configured_domain_name_drives_cache_key(origin):
    settings = RenderSettings(
        origin={"base_url": "https://origin.example.com"},
        site={"domain_name": "www.example.com"},
    )
    storage = MemoryStorage({cache_key_for("www.example.com", "/"): CACHED_DOCUMENT})
    proxy = OriginProxy(settings.origin.base_url, client=httpx.AsyncClient(transport=httpx.MockTransport(origin)))
    app = create_app(settings=settings, storage=storage, origin_proxy=proxy)

    with TestClient(app) as test_client:
        response = test_client.get("/", headers={"User-Agent": GOOGLEBOT})

    assert response.content == CACHED_DOCUMENT
    assert origin.requests == []


def test_lifespan_closes_storage(settings, origin):
    storage = MemoryStorage()
    proxy = OriginProxy(settings.origin.base_url, client=httpx.AsyncClient(transport=httpx.MockTransport(origin)))
    app = create_app(settings=settings, storage=storage, origin_proxy=proxy)

    with TestClient(app):
        assert not storage.closed
    assert storage.closed


def test_no_docs_routes_are_exposed(client, origin):
    response = client.get("/docs", headers={"User-Agent": CHROME})
    # /docs belongs to the origin site, not the gateway
    assert response.text == "<html><body>origin page</body></html>"
    assert str(origin.requests[0].url) == "https://origin.example.com/docs"
