"""
Pydantic Models and Schemas
===========================

Timer configuration value objects, API response models and the merge rules
used by the session store. All models include validation and type hints.
"""

from typing import Optional, Dict, Any, Literal
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"
BACKGROUND_PATTERN = r"^(?:#(?:[0-9a-fA-F]{3}){1,2}|transparent)$"
SPACING_PATTERN = r"^(?:\d+(?:\.\d+)?(?:px|em|rem|%)?)?$"


# Enums
class SizeClass(str, Enum):
    """Timer box size classes."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    X_LARGE = "x-large"

    @property
    def pixels(self) -> int:
        """Edge length of one timer box in CSS pixels."""
        return _SIZE_PIXELS[self]


_SIZE_PIXELS = {
    SizeClass.SMALL: 48,
    SizeClass.MEDIUM: 64,
    SizeClass.LARGE: 80,
    SizeClass.X_LARGE: 96,
}


class Alignment(str, Enum):
    """Horizontal alignment of the timer boxes."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"

    @property
    def justify_content(self) -> str:
        """Flexbox justify-content value for this alignment."""
        return {"left": "flex-start", "center": "center", "right": "flex-end"}[self.value]


class SchedulerState(str, Enum):
    """Render scheduler states."""
    IDLE = "idle"
    RENDERING = "rendering"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError("date out of range") from e


# Timer Models
class TimerConfigUpdate(BaseModel):
    """Partial timer configuration; only fields that are set override."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    target_date: Optional[datetime] = Field(None, description="Countdown target instant")
    button_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN, description="Box color")
    text_color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN, description="Text color")
    preferred_size: Optional[SizeClass] = Field(None, description="Box size class")
    align: Optional[Alignment] = Field(None, description="Box alignment")
    padding: Optional[str] = Field(None, pattern=SPACING_PATTERN, description="Container padding")
    margin: Optional[str] = Field(None, pattern=SPACING_PATTERN, description="Container margin")
    gap: Optional[str] = Field(None, pattern=SPACING_PATTERN, description="Gap between boxes")
    background_color: Optional[str] = Field(
        None, pattern=BACKGROUND_PATTERN, description="Page background"
    )

    @field_validator("target_date")
    @classmethod
    def normalize_target_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive datetimes as UTC."""
        return _as_utc(v) if v is not None else None

    def is_empty(self) -> bool:
        """True when the update carries no fields."""
        return not self.model_dump(exclude_none=True)


class TimerConfig(BaseModel):
    """Complete, immutable timer configuration."""
    model_config = ConfigDict(frozen=True)

    target_date: datetime = Field(..., description="Countdown target instant")
    button_color: str = Field("#6cb2eb", pattern=HEX_COLOR_PATTERN)
    text_color: str = Field("#fbff00", pattern=HEX_COLOR_PATTERN)
    preferred_size: SizeClass = SizeClass.MEDIUM
    align: Alignment = Alignment.CENTER
    padding: str = Field("10px", pattern=SPACING_PATTERN)
    margin: str = Field("0px", pattern=SPACING_PATTERN)
    gap: str = Field("10px", pattern=SPACING_PATTERN)
    background_color: str = Field("transparent", pattern=BACKGROUND_PATTERN)

    @field_validator("target_date")
    @classmethod
    def normalize_target_date(cls, v: datetime) -> datetime:
        """Treat naive datetimes as UTC."""
        return _as_utc(v)

    def merge(self, update: TimerConfigUpdate) -> "TimerConfig":
        """Return a new config with the update's set fields applied."""
        if update.is_empty():
            return self
        return self.model_copy(update=update.model_dump(exclude_none=True))


def default_timer_config(now: Optional[datetime] = None) -> TimerConfig:
    """Default live timer configuration, counting down one hour from ``now``."""
    now = now or datetime.now(timezone.utc)
    return TimerConfig(target_date=now + timedelta(hours=1))


def one_shot_timer_config(now: Optional[datetime] = None) -> TimerConfig:
    """Defaults for one-shot renders, targeting 24 hours from ``now``."""
    now = now or datetime.now(timezone.utc)
    return TimerConfig(
        target_date=now + timedelta(hours=24),
        button_color="#F0F0F0",
        text_color="#444444",
        margin="",
    )


# API Response Models
class GenerateTimerResponse(BaseModel):
    """Response of the one-shot render endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl", description="Public path of the rendered image")


class HealthStatus(BaseModel):
    """Health check status."""
    status: Literal["healthy", "degraded"] = Field(..., description="Overall status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    version: str = Field(..., description="Application version")

    engine_ready: bool = Field(..., description="Rendering engine is launched")
    frame_ready: bool = Field(..., description="A live frame has been published")
    last_frame_at: Optional[datetime] = Field(None, description="Instant of the last frame")
    active_sessions: int = Field(0, ge=0, description="Number of stored sessions")
    scheduler_state: SchedulerState = Field(..., description="Render scheduler state")
    consecutive_failures: int = Field(0, ge=0, description="Failed renders since last success")


# Error Models
class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp"
    )
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
