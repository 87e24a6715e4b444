"""lsprobe HTTP entry point.

Serves the language server lookups on loopback for a local UI.
"""

import uvicorn
from fastapi import FastAPI

from . import __version__
from .api.router import api_router
from .config import get_config
from .middleware.error_handler import register_error_handlers
from .utils.logging import get_logger, setup_logging

config = get_config()
setup_logging(
    debug=config.debug,
    log_dir=config.log_dir,
    log_max_bytes=config.log_max_bytes,
    log_backup_count=config.log_backup_count,
)
logger = get_logger("lsprobe.main")


def create_app() -> FastAPI:
    app = FastAPI(
        title="lsprobe",
        description="Language server port and CSRF token discovery",
        version=__version__,
    )
    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()


def main():
    """Run the lsprobe server."""
    logger.info("lsprobe_starting", host=config.host, port=config.port)
    uvicorn.run(
        "lsprobe.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
