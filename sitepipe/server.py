"""Local dev server for the generated site."""
import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from sitepipe.config import Config

logger = logging.getLogger(__name__)


def create_app(site_dir: str | Path) -> FastAPI:
    """Create the static file app.

    Args:
        site_dir: Generated site directory

    Returns:
        FastAPI app serving site_dir at /
    """
    app = FastAPI(
        title="sitepipe dev server",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Site may not be built yet when the server starts
    app.mount(
        "/",
        StaticFiles(directory=str(site_dir), html=True, check_dir=False),
        name="site",
    )
    return app


async def serve(config: Config) -> None:
    """Serve the generated site on the current event loop until stopped."""
    app = create_app(config.paths.site_dir)
    server_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="info",
    )
    server = uvicorn.Server(server_config)
    logger.info(f"Serving {config.paths.site_dir} at http://{config.server.host}:{config.server.port}")
    await server.serve()
