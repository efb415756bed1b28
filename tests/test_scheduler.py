"""Tests for debounced re-render scheduling."""

import asyncio

import pytest

from vizblocks.scheduler import RenderScheduler


class Recorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, payload):
        self.calls.append(payload)


class TestRenderScheduler:
    @pytest.mark.asyncio
    async def test_burst_fires_once_with_last_payload(self):
        recorder = Recorder()
        scheduler = RenderScheduler(recorder, delay=0.02)

        scheduler.schedule("v1")
        scheduler.schedule("v2")
        scheduler.schedule("v3")
        await scheduler.wait()

        assert recorder.calls == ["v3"]
        assert scheduler.fired == 1

    @pytest.mark.asyncio
    async def test_separate_bursts_fire_separately(self):
        recorder = Recorder()
        scheduler = RenderScheduler(recorder, delay=0.01)

        scheduler.schedule("a")
        await scheduler.wait()
        scheduler.schedule("b")
        await scheduler.wait()

        assert recorder.calls == ["a", "b"]

    @pytest.mark.asyncio
    async def test_cancel(self):
        recorder = Recorder()
        scheduler = RenderScheduler(recorder, delay=0.01)

        scheduler.schedule("a")
        scheduler.cancel()
        await asyncio.sleep(0.03)

        assert recorder.calls == []
        assert not scheduler.pending

    @pytest.mark.asyncio
    async def test_flush(self):
        recorder = Recorder()
        scheduler = RenderScheduler(recorder, delay=10)

        scheduler.schedule("now")
        await scheduler.flush()

        assert recorder.calls == ["now"]
        assert not scheduler.pending

    @pytest.mark.asyncio
    async def test_wait_tracks_newest_callback(self):
        done = []

        async def sleeper(payload):
            name, delay = payload
            await asyncio.sleep(delay)
            done.append(name)

        scheduler = RenderScheduler(sleeper, delay=0.01)
        scheduler.schedule(("a", 0.05))
        await asyncio.sleep(0.02)
        scheduler.schedule(("b", 0.2))
        # "a" finishes while "b" is still running
        await asyncio.sleep(0.08)
        await scheduler.wait()

        assert done == ["a", "b"]

    @pytest.mark.asyncio
    async def test_failing_callback_is_logged(self, caplog):
        async def broken(payload):
            raise RuntimeError("render failed")

        scheduler = RenderScheduler(broken, delay=0.01)
        scheduler.schedule()
        await scheduler.wait()

        assert "Scheduled render failed" in caplog.text

    def test_negative_delay(self):
        with pytest.raises(ValueError):
            RenderScheduler(Recorder(), delay=-1)

    def test_schedule_requires_running_loop(self):
        scheduler = RenderScheduler(Recorder())

        with pytest.raises(RuntimeError):
            scheduler.schedule("x")
