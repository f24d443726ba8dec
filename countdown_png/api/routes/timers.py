"""
Timer Routes
============

FastAPI routes serving the live countdown frame and one-shot renders.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response

from countdown_png.api.query import parse_timer_query
from countdown_png.api.services import TimerServices, get_services
from countdown_png.config.logging import get_logger
from countdown_png.core.rendering.engine import CountdownRenderingError
from countdown_png.core.rendering.html_generator import HTMLGenerationError
from countdown_png.core.sessions.store import DEFAULT_SESSION_ID
from countdown_png.models.schemas import GenerateTimerResponse, one_shot_timer_config

logger = get_logger(__name__)

router = APIRouter(tags=["Timers"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/live-timer.png", response_class=Response)
async def live_timer(
    request: Request,
    session_id: str = Query(DEFAULT_SESSION_ID, alias="sessionId"),
    services: TimerServices = Depends(get_services),
) -> Response:
    """
    Serve the most recent live frame.

    Any query parameters update the caller's session before the cached frame
    is returned. Invalid parameters are ignored individually.
    """
    if request.query_params:
        update = parse_timer_query(request.query_params)
        services.store.upsert(session_id or DEFAULT_SESSION_ID, update)

    frame = services.cache.current()
    if frame is None:
        return PlainTextResponse(
            "Timer image not ready", status_code=503, headers=NO_CACHE_HEADERS
        )

    return Response(content=frame.image, media_type="image/png", headers=NO_CACHE_HEADERS)


@router.get("/generate-timer", response_model=None)
async def generate_timer(
    request: Request,
    type: Optional[str] = Query(None, description="'image' streams the PNG"),
    services: TimerServices = Depends(get_services),
) -> Response:
    """
    Render one countdown image on demand.

    Returns the PNG itself when ``type=image``, otherwise its public URL.
    A missing or malformed date counts down 24 hours from now.
    """
    config = one_shot_timer_config().merge(parse_timer_query(request.query_params))

    try:
        path = await services.one_shot.render_to_file(config)
    except (CountdownRenderingError, HTMLGenerationError, OSError) as e:
        logger.error("One-shot render failed", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to generate countdown image: {e}"},
        )

    if type == "image":
        return FileResponse(path, media_type="image/png")

    response = GenerateTimerResponse(image_url=f"/timers/{path.name}")
    return JSONResponse(content=response.model_dump(by_alias=True))
