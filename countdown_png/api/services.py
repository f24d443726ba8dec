"""
Application Services
====================

Container for the long-lived rendering components shared by the routes.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from countdown_png.config.settings import get_settings, Settings
from countdown_png.core.rendering.engine import EngineHandle
from countdown_png.core.rendering.frame_cache import ImageCacheSlot
from countdown_png.core.rendering.html_generator import TimerHTMLGenerator
from countdown_png.core.rendering.one_shot import OneShotRenderer
from countdown_png.core.scheduler import RenderScheduler
from countdown_png.core.sessions.store import SessionStore


@dataclass
class TimerServices:
    """Components owned by one application instance."""

    settings: Settings
    engine: EngineHandle
    store: SessionStore
    cache: ImageCacheSlot
    scheduler: RenderScheduler
    one_shot: OneShotRenderer


def build_services(settings: Optional[Settings] = None) -> TimerServices:
    """Wire the engine, session store, frame cache and scheduler together."""
    settings = settings or get_settings()
    html_generator = TimerHTMLGenerator()

    engine = EngineHandle(settings)
    store = SessionStore(ttl=settings.session_ttl, sweep_interval=settings.sweep_interval)
    cache = ImageCacheSlot(optimize_png=settings.optimize_png)
    scheduler = RenderScheduler(engine, store, cache, settings, html_generator)
    one_shot = OneShotRenderer(settings, html_generator)

    return TimerServices(
        settings=settings,
        engine=engine,
        store=store,
        cache=cache,
        scheduler=scheduler,
        one_shot=one_shot,
    )


def get_services(request: Request) -> TimerServices:
    """Dependency returning the services of the running application."""
    return request.app.state.services
