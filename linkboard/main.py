from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from linkboard import __version__
from linkboard.api.routes import router
from linkboard.config import STATIC_DIR, settings
from linkboard.db.links import LinkStore
from linkboard.engine.monitor import ResourceMonitor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── startup ───────────────────────────────────────
    links = LinkStore(settings.links_file)
    monitor = ResourceMonitor(settings)
    monitor.start()

    app.state.links = links
    app.state.monitor = monitor

    logger.info("Links dashboard %s started", __version__)

    yield

    # ── shutdown ──────────────────────────────────────
    monitor.stop()
    logger.info("Links dashboard shut down")


app = FastAPI(title=settings.app_name, version=__version__, debug=settings.debug, lifespan=lifespan)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)


@app.get("/", include_in_schema=False)
async def index() -> FileResponse:
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")


def run(argv: list[str] | None = None) -> None:
    """Console entry point: serve the dashboard with uvicorn."""
    import uvicorn

    parser = argparse.ArgumentParser(
        prog="linkboard",
        description="simple http server displaying links to your services with local json database",
    )
    parser.add_argument("-p", "--port", type=int, default=settings.port)
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--version", action="version", version=__version__)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
