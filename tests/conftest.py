"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides test settings, fake rendering engines and wired services.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

# Settings are read on first import of the package; point them at a scratch area
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="countdown_png_test_"))
os.environ.setdefault("COUNTDOWN_PNG_ENVIRONMENT", "testing")
os.environ.setdefault("COUNTDOWN_PNG_STORAGE_PATH", str(_TEST_ROOT / "storage"))
os.environ.setdefault("COUNTDOWN_PNG_OUTPUT_DIR", str(_TEST_ROOT / "timers"))

import pytest
from fastapi.testclient import TestClient

from countdown_png.api.main import create_app
from countdown_png.api.services import TimerServices
from countdown_png.config.settings import Settings
from countdown_png.core.rendering.frame_cache import ImageCacheSlot
from countdown_png.core.rendering.html_generator import TimerHTMLGenerator
from countdown_png.core.rendering.one_shot import OneShotRenderer
from countdown_png.core.scheduler import RenderScheduler
from countdown_png.core.sessions.store import SessionStore

from tests.utils.mocks import FakeClock, FakeEngine


class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    log_level: str = "DEBUG"
    render_interval: float = 1.0
    check_interval: float = 0.01
    backoff_base: float = 1.0
    backoff_max: float = 30.0


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_root() -> Generator[None, None, None]:
    """Remove the scratch directory after the session."""
    yield
    shutil.rmtree(_TEST_ROOT, ignore_errors=True)


@pytest.fixture
def test_settings(tmp_path: Path) -> TestSettings:
    """Test settings fixture with a private output directory."""
    return TestSettings(storage_path=tmp_path / "storage", output_dir=tmp_path / "timers")


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Engine that renders instantly."""
    return FakeEngine()


@pytest.fixture
def session_store(clock: FakeClock) -> SessionStore:
    """Session store driven by the fake clock."""
    return SessionStore(ttl=3600.0, sweep_interval=60.0, clock=clock)


@pytest.fixture
def frame_cache() -> ImageCacheSlot:
    """Empty frame cache."""
    return ImageCacheSlot()


@pytest.fixture
def scheduler(
    fake_engine: FakeEngine,
    session_store: SessionStore,
    frame_cache: ImageCacheSlot,
    test_settings: TestSettings,
    clock: FakeClock,
) -> RenderScheduler:
    """Scheduler wired to the fake engine and clock."""
    return RenderScheduler(
        fake_engine,  # type: ignore[arg-type]
        session_store,
        frame_cache,
        test_settings,
        TimerHTMLGenerator(),
        clock=clock,
    )


def make_services(settings: Settings, engine: FakeEngine, one_shot_engine: FakeEngine) -> TimerServices:
    """Wire services around fake engines."""
    html_generator = TimerHTMLGenerator()
    store = SessionStore(ttl=settings.session_ttl, sweep_interval=settings.sweep_interval)
    cache = ImageCacheSlot()
    scheduler = RenderScheduler(engine, store, cache, settings, html_generator)  # type: ignore[arg-type]
    one_shot = OneShotRenderer(settings, html_generator, engine_factory=lambda s: one_shot_engine)  # type: ignore[arg-type,return-value]
    return TimerServices(
        settings=settings,
        engine=engine,  # type: ignore[arg-type]
        store=store,
        cache=cache,
        scheduler=scheduler,
        one_shot=one_shot,
    )


@pytest.fixture
def one_shot_engine() -> FakeEngine:
    """Engine handed out to one-shot renders."""
    return FakeEngine()


@pytest.fixture
def app_services(test_settings: TestSettings, one_shot_engine: FakeEngine) -> TimerServices:
    """
    Services whose live engine never launches.

    The scheduler therefore never publishes on its own and tests control the
    frame cache directly.
    """
    return make_services(test_settings, FakeEngine(fail_launch=True), one_shot_engine)


@pytest.fixture
def client(app_services: TimerServices) -> Generator[TestClient, None, None]:
    """FastAPI test client running the application lifespan."""
    app = create_app(services=app_services)
    with TestClient(app) as test_client:
        yield test_client


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.api)
