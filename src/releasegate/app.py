"""FastAPI application factory for Releasegate."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from releasegate.common.config import SECRET_SOURCE_SESSION, get_settings
from releasegate.common.schemas import HealthResponse


def create_app() -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        settings.log_secret_source()
        yield
        # Shutdown
        from releasegate.deps import close_http_client
        await close_http_client()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            version=settings.api_version,
            secret_source=settings.download_secret_source or SECRET_SOURCE_SESSION,
        )

    # Mount routers
    from releasegate.licensing.router import router as licensing_router
    from releasegate.downloads.router import router as downloads_router
    from releasegate.activation.router import router as activation_router

    prefix = settings.api_prefix
    app.include_router(licensing_router, prefix=prefix, tags=["licenses"])
    app.include_router(downloads_router, prefix=prefix, tags=["downloads"])
    app.include_router(activation_router, prefix=prefix, tags=["activation"])

    return app
