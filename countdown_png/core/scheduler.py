"""
Render Scheduler
================

Fixed-cadence loop that re-renders the live session's countdown frame.

Ticks never overlap: a tick requested while a render is in flight is dropped.
Render failures tear the engine down so the next tick relaunches it, and the
previously published frame keeps being served meanwhile.
"""

from typing import Callable, Optional, Any
import asyncio
import time

from countdown_png.config.logging import get_logger
from countdown_png.config.settings import get_settings, Settings
from countdown_png.core.rendering.engine import EngineHandle, EngineLaunchError
from countdown_png.core.rendering.frame_cache import ImageCacheSlot
from countdown_png.core.rendering.html_generator import TimerHTMLGenerator
from countdown_png.core.sessions.store import SessionStore
from countdown_png.models.schemas import SchedulerState

logger = get_logger(__name__)


class RenderScheduler:
    """Drives periodic live renders through an owned engine handle."""

    def __init__(
        self,
        engine: EngineHandle,
        store: SessionStore,
        cache: ImageCacheSlot,
        settings: Optional[Settings] = None,
        html_generator: Optional[TimerHTMLGenerator] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or get_settings()
        self.engine = engine
        self.store = store
        self.cache = cache
        self.html_generator = html_generator or TimerHTMLGenerator()
        self.session_id = self.settings.live_session_id
        self.logger: Any = logger.bind(component="scheduler")  # structlog.BoundLoggerBase

        self._clock = clock
        self._state = SchedulerState.IDLE
        self._loop_task: Optional[asyncio.Task[None]] = None
        self._render_task: Optional[asyncio.Task[bool]] = None

        self.last_success_at: Optional[float] = None
        self.retry_at: Optional[float] = None
        self.consecutive_failures = 0
        self.consecutive_launch_failures = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def is_due(self, now: Optional[float] = None) -> bool:
        """Whether a tick should fire at ``now``."""
        now = self._clock() if now is None else now
        if self._state is SchedulerState.RENDERING:
            return False
        if self.retry_at is not None and now < self.retry_at:
            return False
        if self.last_success_at is None:
            return True
        return now - self.last_success_at >= self.settings.render_interval

    def backoff_delay(self) -> float:
        """Seconds to wait after the current run of engine launch failures."""
        if self.settings.backoff_max <= 0 or self.consecutive_launch_failures == 0:
            return 0.0
        delay = self.settings.backoff_base * 2 ** (self.consecutive_launch_failures - 1)
        return min(delay, self.settings.backoff_max)

    async def tick(self) -> bool:
        """
        Attempt one live render.

        Returns:
            True if a new frame was published, False if the tick was dropped
            or the render failed
        """
        if self._state is SchedulerState.RENDERING:
            self.logger.debug("Render in progress, tick dropped")
            return False

        self._state = SchedulerState.RENDERING
        try:
            config = self.store.get(self.session_id)
            markup = await self.html_generator.generate(config)
            await self.engine.ensure_ready()
            image = await self.engine.render_to_image(markup)
        except EngineLaunchError as e:
            self.consecutive_launch_failures += 1
            await self._handle_failure(e)
            return False
        except Exception as e:
            self.consecutive_launch_failures = 0
            await self._handle_failure(e)
            return False
        else:
            frame = self.cache.publish(image, self.session_id)
            self.last_success_at = self._clock()
            self.retry_at = None
            self.consecutive_failures = 0
            self.consecutive_launch_failures = 0
            self.logger.debug("Live frame published", file_size=frame.file_size)
            return True
        finally:
            self._state = SchedulerState.IDLE

    async def _handle_failure(self, error: Exception) -> None:
        self.consecutive_failures += 1
        delay = self.backoff_delay()
        self.retry_at = self._clock() + delay if delay else None

        self.logger.error(
            "Live render failed, serving previous frame",
            error=str(error),
            error_type=type(error).__name__,
            consecutive_failures=self.consecutive_failures,
            retry_in=delay,
        )
        await self.engine.teardown()

    async def start(self) -> None:
        """Start the scheduling loop."""
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._run(), name="render-scheduler")
        self.logger.info(
            "Render scheduler started",
            session_id=self.session_id,
            interval=self.settings.render_interval,
        )

    async def stop(self) -> None:
        """Stop the loop and cancel any render still in flight."""
        for task in (self._loop_task, self._render_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._loop_task = None
        self._render_task = None
        self.logger.info("Render scheduler stopped")

    async def _run(self) -> None:
        while True:
            if self.is_due():
                self._render_task = asyncio.create_task(self.tick(), name="render-tick")
            await asyncio.sleep(self.settings.check_interval)
