"""FastAPI application setup."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from buildcache import __version__
from buildcache.api import routes
from buildcache.config import CacheConfig
from buildcache.errors import ArtifactNotFound, BuildCacheError, InvalidArtifactPath
from buildcache.storage.location import ArtifactLocation, create_location

logger = logging.getLogger(__name__)


def create_app(config: CacheConfig, location: ArtifactLocation | None = None) -> FastAPI:
    """Create the application.

    The storage backend is built on startup unless ``location`` is given.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if getattr(app.state, "location", None) is None:
            app.state.location = await create_location(config.storage)
        logger.info(f"Cache server ready (api {config.server.api_version})")
        yield

    app = FastAPI(title="buildcache", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.tokens = frozenset(config.server.tokens)
    app.state.location = location

    app.include_router(routes.router, prefix=f"/{config.server.api_version}")

    @app.exception_handler(ArtifactNotFound)
    async def artifact_not_found_handler(request: Request, exc: ArtifactNotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(InvalidArtifactPath)
    async def invalid_path_handler(request: Request, exc: InvalidArtifactPath):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(BuildCacheError)
    async def cache_error_handler(request: Request, exc: BuildCacheError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc)},
        )

    return app
