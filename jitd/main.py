"""FastAPI application for the jitd daemon.

This module creates the application that serves JIT-compiled assets from a
source directory, caching artifacts in a cache directory.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from starlette.requests import Request

from jit_library.config.loader import load_config
from jit_library.config.settings import JitSettings
from jit_library.formats import find_format
from jit_library.freshness import confine_path
from jit_library.storage.paths import get_cache_dir

from .middleware import JITMiddleware
from .middleware import request_path

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_middleware(settings: JitSettings) -> JITMiddleware:
    """Build the asset middleware for a settings object.

    Sources are read from `source_dir` (also the confinement root); artifacts
    mirror the source tree inside `cache_dir` with compiled extensions.

    Args:
        settings: Daemon settings

    Returns:
        Configured middleware
    """
    source_dir = Path(settings.source_dir)
    cache_dir = Path(settings.cache_dir) if settings.cache_dir else get_cache_dir()

    def source(request: Request) -> str:
        return request_path(request)

    def dest(request: Request) -> Path:
        relative = Path(request_path(request))
        descriptor = find_format(relative)
        if descriptor is not None:
            relative = relative.with_suffix(descriptor.output_extension)
        return confine_path(relative, cache_dir)

    return JITMiddleware(
        root=source_dir,
        source=source,
        dest=dest,
        hash_drift=settings.hash_drift,
        immutable=settings.immutable,
        force=settings.force,
        minify=settings.minify,
        serve_non_handled=settings.serve_non_handled,
        dedupe=settings.dedupe,
    )


def create_app(settings: JitSettings | None = None) -> FastAPI:
    """Create the jitd application.

    Args:
        settings: Daemon settings (default: loaded from jit.yaml + environment)

    Returns:
        FastAPI application with the asset middleware mounted
    """
    settings = settings or load_config()
    logging.getLogger().setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Serving {settings.source_dir} under {settings.mount_path}")
        yield
        logger.info("Shutting down jitd")

    app = FastAPI(
        title="jitd",
        description="Just-in-time compilation cache for Vue, SCSS and script assets",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.mount(settings.mount_path, create_middleware(settings))

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint.

        Returns:
            Service information
        """
        return {
            "name": "jitd",
            "version": VERSION,
            "assets": settings.mount_path,
            "docs": "/docs",
        }

    return app
