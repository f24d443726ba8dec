"""
HTML Generator
==============

Build the countdown timer markup rendered by the browser engine.
The countdown is computed here so each frame is a static snapshot.
"""

from typing import List, NamedTuple, Optional, Any
from datetime import datetime, timedelta, timezone
from pathlib import Path
import jinja2

from countdown_png.config.logging import get_logger
from countdown_png.models.schemas import TimerConfig

logger = get_logger(__name__)

UNIT_NAMES = ("days", "hours", "minutes", "seconds")


class HTMLGenerationError(Exception):
    """Exception raised when HTML generation fails."""

    pass


class CountdownParts(NamedTuple):
    """Remaining time split into display units."""

    days: int
    hours: int
    minutes: int
    seconds: int

    def formatted(self) -> List[str]:
        """Zero-padded two digit strings for each unit."""
        return [f"{value:02d}" for value in self]


class TimerUnit(NamedTuple):
    name: str
    value: str


def compute_countdown(target: datetime, now: Optional[datetime] = None) -> CountdownParts:
    """
    Split the time remaining until ``target`` into days, hours, minutes and seconds.

    Args:
        target: Countdown target instant
        now: Current instant, defaults to the wall clock

    Returns:
        CountdownParts, all zero once the target has passed
    """
    now = now or datetime.now(timezone.utc)
    remaining = max(target - now, timedelta(0))
    total_seconds = remaining // timedelta(seconds=1)

    days, rest = divmod(total_seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return CountdownParts(days, hours, minutes, seconds)


class TimerHTMLGenerator:
    """Jinja2-based countdown timer markup generator."""

    template_name = "timer.html"

    def __init__(self) -> None:
        self.logger: Any = logger.bind(generator="jinja2")  # structlog.BoundLoggerBase
        self._setup_jinja2_environment()

    def _setup_jinja2_environment(self) -> None:
        """Setup Jinja2 template environment."""
        template_dir = Path(__file__).parent / "templates"
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
            enable_async=True,
        )

        def px(value: float) -> str:
            """Convert numeric value to CSS pixels."""
            return f"{value}px"

        self.env.filters["px"] = px

    async def generate(self, config: TimerConfig, now: Optional[datetime] = None) -> str:
        """
        Generate the timer page for a configuration.

        Args:
            config: Timer configuration
            now: Instant the countdown is computed at

        Returns:
            Complete HTML document

        Raises:
            HTMLGenerationError: If the template cannot be rendered
        """
        parts = compute_countdown(config.target_date, now)
        units = [TimerUnit(name, value) for name, value in zip(UNIT_NAMES, parts.formatted())]

        try:
            template = self.env.get_template(self.template_name)
            return await template.render_async(config=config, units=units)
        except jinja2.TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            self.logger.error("HTML generation error", error=error_msg)
            raise HTMLGenerationError(error_msg)
