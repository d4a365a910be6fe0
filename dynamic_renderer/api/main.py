"""
Main application file for the Dynamic Renderer edge gateway.

`create_app()` builds the FastAPI application: it sets up logging, creates the
storage backend, dispatcher and origin proxy for the application's lifetime,
registers exception handlers and mounts the catch-all gateway router.

Run locally with:
    uvicorn --factory dynamic_renderer.api.main:create_app --host 0.0.0.0 --port 8080
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from dynamic_renderer import __version__
from dynamic_renderer.api.routes import gateway_router
from dynamic_renderer.components.gateway import EdgeDispatcher, OriginProxy
from dynamic_renderer.components.storage import StorageBackend, create_storage
from dynamic_renderer.core.config import RenderSettings, load_settings
from dynamic_renderer.core.exceptions import DynamicRendererError, GatewayError
from dynamic_renderer.core.logger import setup_logging, get_logger

logger = get_logger(__name__)


def create_app(
    settings: Optional[RenderSettings] = None,
    storage: Optional[StorageBackend] = None,
    origin_proxy: Optional[OriginProxy] = None,
) -> FastAPI:
    """
    Builds the gateway application.

    Args:
        settings (Optional[RenderSettings]): Settings to use; loaded from APP_ENV if None.
        storage (Optional[StorageBackend]): Storage to read captured documents from;
            built from `settings.storage` if None.
        origin_proxy (Optional[OriginProxy]): Origin transport; built from
            `settings.origin` if None.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or load_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        backend = storage or create_storage(settings.storage)
        proxy = origin_proxy or OriginProxy(settings.origin.base_url, timeout=settings.gateway.proxy_timeout)
        app.state.settings = settings
        app.state.dispatcher = EdgeDispatcher(settings, backend)
        app.state.origin_proxy = proxy
        logger.info(f"Gateway started (env={settings.environment}, origin={settings.origin.base_url}).")
        try:
            yield
        finally:
            await proxy.close()
            await backend.close()
            logger.info("Gateway stopped.")

    app = FastAPI(
        title="Dynamic Renderer Gateway",
        description="Serves pre-rendered HTML to crawlers and proxies everything else to the origin.",
        version=__version__,
        lifespan=lifespan,
        # Every path belongs to the origin site; no docs routes on the gateway.
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.exception_handler(GatewayError)
    async def gateway_exception_handler(request: Request, exc: GatewayError):
        """The origin could not be reached; nothing better than 502 is available."""
        logger.error(f"GatewayError for request: {request.method} {request.url}: {exc.message}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "The origin server could not be reached."},
        )

    @app.exception_handler(DynamicRendererError)
    async def dynamic_renderer_exception_handler(request: Request, exc: DynamicRendererError):
        logger.error(
            f"DynamicRendererError caught: {exc.__class__.__name__} - {exc.message} "
            f"for request: {request.method} {request.url}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An internal gateway error occurred."},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.critical(
            f"Generic unhandled exception caught: {exc.__class__.__name__} - {str(exc)} "
            f"for request: {request.method} {request.url}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An unexpected server error occurred."},
        )

    app.include_router(gateway_router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8080)
