"""
Frame Cache
===========

Single-slot cache holding the last successfully rendered live frame.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Any
import io

from PIL import Image  # type: ignore

from countdown_png.config.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RenderedFrame:
    """A published PNG frame."""

    image: bytes
    rendered_at: datetime
    session_id: str

    @property
    def file_size(self) -> int:
        return len(self.image)


class ImageCacheSlot:
    """
    Holds the most recent RenderedFrame.

    Publishing swaps a single reference, so readers see either the previous
    frame or the new one and never wait on a render in progress.
    """

    def __init__(self, optimize_png: bool = False):
        self.optimize_png = optimize_png
        self.logger: Any = logger.bind(component="frame_cache")  # structlog.BoundLoggerBase
        self._frame: Optional[RenderedFrame] = None

    @property
    def is_ready(self) -> bool:
        return self._frame is not None

    def current(self) -> Optional[RenderedFrame]:
        """Return the last published frame, or None before the first publish."""
        return self._frame

    def publish(self, image: bytes, session_id: str = "default") -> RenderedFrame:
        """Replace the cached frame with freshly rendered bytes."""
        if self.optimize_png:
            image = self._optimize_png(image)

        frame = RenderedFrame(
            image=image,
            rendered_at=datetime.now(timezone.utc),
            session_id=session_id,
        )
        self._frame = frame
        return frame

    def _optimize_png(self, png_bytes: bytes) -> bytes:
        """
        Recompress PNG bytes with PIL, keeping the alpha channel.

        Returns the original bytes if optimization fails.
        """
        try:
            image = Image.open(io.BytesIO(png_bytes))  # type: ignore[attr-defined]
            output = io.BytesIO()
            image.save(output, format="PNG", optimize=True, compress_level=9)  # type: ignore[attr-defined]
            optimized_bytes = output.getvalue()

            self.logger.debug(
                "PNG optimization completed",
                original_size=len(png_bytes),
                optimized_size=len(optimized_bytes),
            )
            return optimized_bytes

        except Exception as e:
            self.logger.warning("PNG optimization failed, using original", error=str(e))
            return png_bytes
