"""
Unit Tests for Render Scheduler
===============================

Tests for tick state handling, failure recovery, backoff and the run loop.
"""

import asyncio
from datetime import datetime, timedelta, timezone
import pytest

from countdown_png.core.scheduler import RenderScheduler
from countdown_png.models.schemas import Alignment, SchedulerState, TimerConfigUpdate

from tests.utils.mocks import FakeEngine, PNG_BYTES


class TestTick:
    """Test single render attempts."""

    @pytest.mark.asyncio
    async def test_successful_tick_publishes_frame(self, scheduler, fake_engine, frame_cache, clock):
        assert await scheduler.tick() is True

        frame = frame_cache.current()
        assert frame is not None
        assert frame.image == PNG_BYTES
        assert frame.session_id == "default"
        assert scheduler.last_success_at == clock()
        assert scheduler.state is SchedulerState.IDLE
        assert fake_engine.launch_count == 1

    @pytest.mark.asyncio
    async def test_engine_is_reused_across_ticks(self, scheduler, fake_engine):
        for _ in range(5):
            assert await scheduler.tick()
        assert fake_engine.launch_count == 1
        assert len(fake_engine.rendered_markup) == 5

    @pytest.mark.asyncio
    async def test_renders_live_session_config(self, scheduler, fake_engine, session_store):
        session_store.upsert("default", TimerConfigUpdate(button_color="#a1b2c3"))
        session_store.upsert("other", TimerConfigUpdate(button_color="#000000"))

        await scheduler.tick()

        assert "#a1b2c3" in fake_engine.last_markup
        assert "#000000" not in fake_engine.last_markup

    @pytest.mark.asyncio
    async def test_markup_contains_live_countdown(self, scheduler, fake_engine, session_store):
        target = datetime.now(timezone.utc) + timedelta(days=3, hours=5, seconds=30)
        session_store.upsert("default", TimerConfigUpdate(target_date=target))

        await scheduler.tick()

        assert '<div id="days" class="timer-value">03</div>' in fake_engine.last_markup
        assert '<div id="hours" class="timer-value">05</div>' in fake_engine.last_markup


class TestFailureRecovery:
    """Test that failures degrade to the previous frame."""

    @pytest.mark.asyncio
    async def test_failed_render_keeps_previous_frame(self, scheduler, fake_engine, frame_cache):
        await scheduler.tick()
        published = frame_cache.current()

        fake_engine.fail_renders = 1
        assert await scheduler.tick() is False

        assert frame_cache.current() is published
        assert fake_engine.teardown_count == 1
        assert not fake_engine.is_ready
        assert scheduler.consecutive_failures == 1
        assert scheduler.state is SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_next_tick_relaunches_exactly_once(self, scheduler, fake_engine, clock):
        await scheduler.tick()
        fake_engine.fail_renders = 1
        await scheduler.tick()
        launches_before = fake_engine.launch_attempts

        assert scheduler.is_due(clock() + 1.0)
        assert await scheduler.tick() is True

        assert fake_engine.launch_attempts == launches_before + 1
        assert fake_engine.launch_count == 2
        assert scheduler.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_render_failure_has_no_backoff(self, scheduler, fake_engine):
        await scheduler.tick()
        fake_engine.fail_renders = 1
        await scheduler.tick()

        assert scheduler.retry_at is None
        assert scheduler.backoff_delay() == 0.0

    @pytest.mark.asyncio
    async def test_no_frame_before_first_success(self, test_settings, session_store, frame_cache, clock):
        engine = FakeEngine(fail_launch=True)
        scheduler = RenderScheduler(engine, session_store, frame_cache, test_settings, clock=clock)

        assert await scheduler.tick() is False
        assert frame_cache.current() is None
        assert scheduler.state is SchedulerState.IDLE


class TestLaunchBackoff:
    """Test bounded exponential backoff on repeated launch failures."""

    @pytest.fixture
    def failing_scheduler(self, test_settings, session_store, frame_cache, clock):
        engine = FakeEngine(fail_launch=True)
        return RenderScheduler(engine, session_store, frame_cache, test_settings, clock=clock)

    @pytest.mark.asyncio
    async def test_delays_double_until_capped(self, failing_scheduler, clock):
        delays = []
        for _ in range(8):
            await failing_scheduler.tick()
            delays.append(failing_scheduler.backoff_delay())
            clock.advance(delays[-1])

        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0, 30.0]

    @pytest.mark.asyncio
    async def test_not_due_during_backoff(self, failing_scheduler, clock):
        await failing_scheduler.tick()
        await failing_scheduler.tick()
        start = clock()

        assert not failing_scheduler.is_due(start + 1.5)
        assert failing_scheduler.is_due(start + 2.0)

    @pytest.mark.asyncio
    async def test_success_resets_backoff(self, failing_scheduler, clock):
        await failing_scheduler.tick()
        await failing_scheduler.tick()
        failing_scheduler.engine.fail_launch = False
        clock.advance(10)

        assert await failing_scheduler.tick()
        assert failing_scheduler.consecutive_launch_failures == 0
        assert failing_scheduler.retry_at is None
        assert failing_scheduler.backoff_delay() == 0.0

    @pytest.mark.asyncio
    async def test_backoff_can_be_disabled(self, test_settings, session_store, frame_cache, clock):
        test_settings.backoff_max = 0
        scheduler = RenderScheduler(
            FakeEngine(fail_launch=True), session_store, frame_cache, test_settings, clock=clock
        )
        await scheduler.tick()
        await scheduler.tick()

        assert scheduler.retry_at is None
        assert scheduler.is_due(clock() + test_settings.render_interval)


class TestCadence:
    """Test due checks."""

    def test_due_before_first_attempt(self, scheduler):
        assert scheduler.is_due()

    @pytest.mark.asyncio
    async def test_due_after_render_interval(self, scheduler, clock):
        await scheduler.tick()

        assert not scheduler.is_due(clock() + 0.5)
        assert scheduler.is_due(clock() + 1.0)


class TestMutualExclusion:
    """Test that renders never overlap."""

    @pytest.mark.asyncio
    async def test_tick_while_rendering_is_dropped(self, test_settings, session_store, frame_cache, clock):
        engine = FakeEngine(render_delay=0.05)
        scheduler = RenderScheduler(engine, session_store, frame_cache, test_settings, clock=clock)

        results = await asyncio.gather(*(scheduler.tick() for _ in range(10)))

        assert results.count(True) == 1
        assert results.count(False) == 9
        assert engine.max_active_renders == 1
        assert len(engine.rendered_markup) == 1
        assert scheduler.state is SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_not_due_while_rendering(self, test_settings, session_store, frame_cache, clock):
        engine = FakeEngine(render_delay=0.05)
        scheduler = RenderScheduler(engine, session_store, frame_cache, test_settings, clock=clock)

        task = asyncio.create_task(scheduler.tick())
        await asyncio.sleep(0.01)
        assert scheduler.state is SchedulerState.RENDERING
        assert not scheduler.is_due(clock() + 100)
        await task


class TestRunLoop:
    """Test the background loop with the real clock."""

    @pytest.mark.asyncio
    async def test_loop_renders_and_stops(self, test_settings, session_store, frame_cache):
        test_settings.render_interval = 0.02
        test_settings.check_interval = 0.005
        engine = FakeEngine(render_delay=0.03)
        scheduler = RenderScheduler(engine, session_store, frame_cache, test_settings)

        await scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0.3)
        await scheduler.stop()

        assert not scheduler.is_running
        assert frame_cache.current() is not None
        assert len(engine.rendered_markup) >= 2
        assert engine.max_active_renders == 1
        assert scheduler.state is SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_loop_recovers_from_crash(self, test_settings, session_store, frame_cache):
        test_settings.render_interval = 0.01
        test_settings.check_interval = 0.005
        engine = FakeEngine()
        engine.fail_renders = 2
        scheduler = RenderScheduler(engine, session_store, frame_cache, test_settings)

        await scheduler.start()
        await asyncio.sleep(0.2)
        await scheduler.stop()

        assert frame_cache.current() is not None
        assert engine.launch_count >= 3
        assert scheduler.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_session_change_reaches_next_frame(self, test_settings, session_store, frame_cache):
        test_settings.render_interval = 0.01
        test_settings.check_interval = 0.005
        engine = FakeEngine()
        scheduler = RenderScheduler(engine, session_store, frame_cache, test_settings)

        await scheduler.start()
        await asyncio.sleep(0.05)
        session_store.upsert("default", TimerConfigUpdate(align=Alignment.RIGHT))
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert "justify-content: flex-end;" in engine.last_markup
