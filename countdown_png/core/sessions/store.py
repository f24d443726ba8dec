"""
Session Store
=============

In-memory mapping from session id to timer configuration with TTL expiry.
Expired sessions are removed by a periodic sweep task owned by the store.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Any
import asyncio
import threading
import time

from countdown_png.config.logging import get_logger
from countdown_png.models.schemas import TimerConfig, TimerConfigUpdate, default_timer_config

logger = get_logger(__name__)

DEFAULT_SESSION_ID = "default"


@dataclass(frozen=True)
class Session:
    """A stored timer configuration and the last time it was touched."""

    session_id: str
    config: TimerConfig
    last_touched: float


class SessionStore:
    """Timer sessions with TTL semantics and background expiry."""

    def __init__(
        self,
        ttl: float = 3600.0,
        sweep_interval: float = 60.0,
        default_config: Optional[TimerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self.default_config = default_config or default_timer_config()
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}
        self._sweep_task: Optional[asyncio.Task[None]] = None
        self.logger: Any = logger.bind(component="session_store")  # structlog.BoundLoggerBase

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def _expired(self, session: Session, now: float) -> bool:
        return (now - session.last_touched) > self.ttl

    def upsert(self, session_id: str, update: TimerConfigUpdate) -> TimerConfig:
        """
        Merge an update over a session's config and mark it touched.

        Args:
            session_id: Session identifier
            update: Validated partial configuration

        Returns:
            The session's new configuration
        """
        with self._lock:
            now = self._clock()
            existing = self._sessions.get(session_id)
            if existing is not None and not self._expired(existing, now):
                base = existing.config
            else:
                base = self.default_config

            config = base.merge(update)
            self._sessions[session_id] = Session(session_id, config, now)

        self.logger.debug(
            "Session updated",
            session_id=session_id,
            fields=sorted(update.model_dump(exclude_none=True)),
        )
        return config

    def get(self, session_id: str = DEFAULT_SESSION_ID) -> TimerConfig:
        """Return a session's config, or the default config if absent or expired."""
        session = self._sessions.get(session_id)
        if session is None or self._expired(session, self._clock()):
            return self.default_config
        return session.config

    def session_ids(self) -> List[str]:
        """Identifiers currently held by the store, expired or not."""
        return list(self._sessions)

    def sweep_expired(self, now: Optional[float] = None) -> int:
        """
        Remove every session idle for longer than the TTL.

        Args:
            now: Clock reading to compare against, defaults to the store clock

        Returns:
            Number of sessions removed
        """
        with self._lock:
            now = self._clock() if now is None else now
            expired = [
                session_id
                for session_id, session in self._sessions.items()
                if self._expired(session, now)
            ]
            for session_id in expired:
                del self._sessions[session_id]

        if expired:
            self.logger.info("Expired sessions removed", count=len(expired))
        return len(expired)

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="session-sweep")
        self.logger.info("Session sweeper started", ttl=self.ttl, interval=self.sweep_interval)

    async def stop(self) -> None:
        """Stop the periodic sweep task."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.logger.info("Session sweeper stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep_expired()
