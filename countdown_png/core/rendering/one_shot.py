"""
One-shot Renderer
=================

Render a single countdown frame on demand with a private, short-lived engine.
"""

from pathlib import Path
from typing import Callable, Optional, Any
import time
import uuid

from countdown_png.config.logging import get_logger
from countdown_png.config.settings import get_settings, Settings
from countdown_png.core.rendering.engine import EngineHandle
from countdown_png.core.rendering.html_generator import TimerHTMLGenerator
from countdown_png.models.schemas import TimerConfig

logger = get_logger(__name__)


class OneShotRenderer:
    """Launches an engine per request so the live page is never shared."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        html_generator: Optional[TimerHTMLGenerator] = None,
        engine_factory: Callable[[Settings], EngineHandle] = EngineHandle,
    ):
        self.settings = settings or get_settings()
        self.html_generator = html_generator or TimerHTMLGenerator()
        self.engine_factory = engine_factory
        self.logger: Any = logger.bind(component="one_shot")  # structlog.BoundLoggerBase

    async def render(self, config: TimerConfig) -> bytes:
        """
        Render one frame.

        Raises:
            EngineLaunchError: If the browser cannot be started
            RenderError: If the frame fails to load or capture
        """
        engine = self.engine_factory(self.settings)
        try:
            markup = await self.html_generator.generate(config)
            await engine.ensure_ready()
            return await engine.render_to_image(markup)
        finally:
            await engine.teardown()

    async def render_to_file(self, config: TimerConfig) -> Path:
        """Render one frame into the output directory and return its path."""
        image = await self.render(config)

        filename = f"timer-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.png"
        path = Path(self.settings.output_dir) / filename
        path.write_bytes(image)

        self.logger.info("One-shot timer rendered", filename=filename, file_size=len(image))
        return path
