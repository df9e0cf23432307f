from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from linkboard.models import Link, LinkRef

logger = logging.getLogger(__name__)

router = APIRouter()

_TRUTHY = {"1", "true", "yes"}


# ── resources ─────────────────────────────────────────


@router.get("/api/resources")
def get_resources(request: Request, history: str | None = None) -> JSONResponse:
    monitor = getattr(request.app.state, "monitor", None)
    if monitor is None:
        return JSONResponse({"detail": "resources not available"}, status_code=503)
    include_history = (history or "").lower() in _TRUTHY
    snap = monitor.snapshot(include_history)
    return JSONResponse(snap.to_json_dict(), headers={"Cache-Control": "no-store"})


@router.get("/api/status")
def get_status(request: Request) -> dict:
    monitor = request.app.state.monitor
    return {
        "status": "running",
        "monitor_running": monitor.running,
        "tick_interval": monitor.settings.tick_interval,
        "ticks": monitor.ticks,
        "history_points": monitor.history_length,
        "platform": monitor.platform.system,
        "failing": monitor.snapshot().errors.failed(),
    }


# ── links ─────────────────────────────────────────────


@router.get("/api/links")
def get_links(request: Request) -> list[dict]:
    return [link.model_dump() for link in request.app.state.links.get_links()]


@router.post("/api/links", status_code=status.HTTP_201_CREATED)
def save_link(link: Link, request: Request) -> Response:
    request.app.state.links.save_link(link)
    return Response(status_code=status.HTTP_201_CREATED)


@router.delete("/api/links")
def delete_link(ref: LinkRef, request: Request) -> dict:
    removed = request.app.state.links.delete_link(ref.url)
    if not removed:
        logger.debug("Delete for unknown link %s", ref.url)
    return {"deleted": removed}
