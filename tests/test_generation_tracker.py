"""Tests for GenerationTracker: idempotent supervision, cancel wiring, retry, shutdown."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from conftest import ScriptedStatusClient, found
from webdash.core.config import SupervisorConfig
from webdash.core.exceptions import UnknownJobError
from webdash.core.managers.generation_tracker import CANCEL_REASON, GenerationTracker
from webdash.core.models.outcome import Cancelled, Completed, Failed

SITE_URL = "https://crumbs.example.com"


@pytest.fixture
def slow_config():
    """Keeps supervisors parked between polls."""
    return SupervisorConfig(poll_interval=5.0)


class TestTrack:
    @pytest.mark.asyncio
    async def test_track_is_idempotent_for_active_job(self, slow_config, sink):
        client = ScriptedStatusClient(found("processing", 10))
        tracker = GenerationTracker(client, sink, slow_config)

        first = tracker.track("job_a")
        second = tracker.track("job_a")
        await asyncio.sleep(0.01)

        assert first is second
        assert client.calls == 1
        assert tracker.active_job_ids() == ["job_a"]
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_terminal_job_can_be_tracked_again(self, fast_config, sink):
        client = ScriptedStatusClient(found("complete", 100, siteUrl=SITE_URL))
        tracker = GenerationTracker(client, sink, fast_config)

        first = tracker.track("job_a")
        await asyncio.wait_for(first.wait(), timeout=1.0)
        second = tracker.track("job_a")

        assert second is not first
        await asyncio.wait_for(second.wait(), timeout=1.0)
        assert tracker.get("job_a") is second

    @pytest.mark.asyncio
    async def test_require_unknown_job(self, fast_config, sink):
        tracker = GenerationTracker(ScriptedStatusClient(found("pending")), sink, fast_config)
        with pytest.raises(UnknownJobError):
            tracker.require("missing")
        assert tracker.get("missing") is None

    @pytest.mark.asyncio
    async def test_finished_supervisors_are_released_beyond_retention(self, fast_config, sink):
        client = ScriptedStatusClient(found("complete", 100, siteUrl=SITE_URL))
        tracker = GenerationTracker(client, sink, fast_config, max_finished=3)

        for n in range(50):
            supervisor = tracker.track(f"job_{n}")
            await asyncio.wait_for(supervisor.wait(), timeout=1.0)

        # the newest finished jobs stay queryable, older ones are gone
        assert tracker.get("job_0") is None
        assert tracker.get("job_45") is None
        assert [tracker.get(f"job_{n}") is not None for n in range(46, 50)] == [True] * 4
        assert tracker.active_job_ids() == []

    @pytest.mark.asyncio
    async def test_active_supervisors_are_never_released(self, slow_config, sink):
        client = ScriptedStatusClient(found("processing", 10))
        tracker = GenerationTracker(client, sink, slow_config, max_finished=0)
        tracker.track("job_a")
        tracker.track("job_b")
        await asyncio.sleep(0.01)

        assert tracker.active_job_ids() == ["job_a", "job_b"]
        tracker.cancel("job_a")
        tracker.track("job_c")

        assert tracker.get("job_a") is None
        assert tracker.active_job_ids() == ["job_b", "job_c"]
        await tracker.shutdown()


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_with_server_notification(self, slow_config, sink):
        starter = AsyncMock()
        tracker = GenerationTracker(
            ScriptedStatusClient(found("processing", 10)), sink, slow_config, job_starter=starter
        )
        supervisor = tracker.track("job_a")
        await asyncio.sleep(0.01)

        assert tracker.cancel("job_a", notify_server=True) is True
        await asyncio.sleep(0.01)

        starter.request_cancel.assert_awaited_once_with("job_a", CANCEL_REASON)
        assert isinstance(supervisor.outcome, Cancelled)
        assert tracker.active_job_ids() == []

    @pytest.mark.asyncio
    async def test_cancel_is_local_by_default(self, slow_config, sink):
        starter = AsyncMock()
        tracker = GenerationTracker(
            ScriptedStatusClient(found("processing", 10)), sink, slow_config, job_starter=starter
        )
        tracker.track("job_a")
        await asyncio.sleep(0.01)

        tracker.cancel("job_a")
        await asyncio.sleep(0.01)

        starter.request_cancel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_unknown_job(self, fast_config, sink):
        tracker = GenerationTracker(ScriptedStatusClient(found("pending")), sink, fast_config)
        with pytest.raises(UnknownJobError):
            tracker.cancel("missing")


class TestRetry:
    @pytest.mark.asyncio
    async def test_retry_supervises_new_job_with_same_callbacks(self, fast_config, sink):
        # the first job fails; the relaunched one completes
        client = ScriptedStatusClient(
            found("processing", 10, prompt="A bakery"),
            found("failed", 10),
            found("complete", 100, siteUrl=SITE_URL),
        )
        starter = AsyncMock()
        on_complete, on_error = Mock(), Mock()
        tracker = GenerationTracker(client, sink, fast_config, job_starter=starter)

        original = tracker.track("job_a", on_complete=on_complete, on_error=on_error)
        assert isinstance(await asyncio.wait_for(original.wait(), timeout=1.0), Failed)

        relaunched = await tracker.retry("job_a")
        outcome = await asyncio.wait_for(relaunched.wait(), timeout=1.0)

        assert relaunched is not original
        assert relaunched.job_id != "job_a"
        assert isinstance(outcome, Completed)
        on_error.assert_called_once()
        on_complete.assert_called_once()
        assert on_complete.call_args.args[0].job_id == relaunched.job_id
        assert await sink.get(relaunched.job_id) is not None

    @pytest.mark.asyncio
    async def test_retry_without_params_resupervises_same_id(self, fast_config, sink):
        client = ScriptedStatusClient(
            found("failed", 0),
            found("complete", 100, siteUrl=SITE_URL),
        )
        tracker = GenerationTracker(client, sink, fast_config, job_starter=AsyncMock())
        original = tracker.track("job_a")
        await asyncio.wait_for(original.wait(), timeout=1.0)

        reloaded = await tracker.retry("job_a")

        assert reloaded is not original
        assert reloaded.job_id == "job_a"
        assert isinstance(await asyncio.wait_for(reloaded.wait(), timeout=1.0), Completed)


class TestShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_cancels_active_supervisors(self, slow_config, sink):
        tracker = GenerationTracker(ScriptedStatusClient(found("processing", 10)), sink, slow_config)
        supervisor_a = tracker.track("job_a")
        supervisor_b = tracker.track("job_b")
        await asyncio.sleep(0.01)

        await tracker.shutdown()

        assert isinstance(supervisor_a.outcome, Cancelled)
        assert isinstance(supervisor_b.outcome, Cancelled)
        assert supervisor_a.task.done() and supervisor_b.task.done()
        with pytest.raises(RuntimeError):
            tracker.track("job_c")
