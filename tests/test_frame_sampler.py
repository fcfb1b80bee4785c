import asyncio
import threading
import time

from PIL import Image

from core.camera import StillFrameSource
from core.detection import DetectionMode, DetectionPoint, PointsResult
from core.er_client import FrameResult
from core.frame_sampler import FrameSampler


class FakeClient:
    def __init__(self, gate=None, error=None, latency_ms=12):
        self.gate = gate
        self.error = error
        self.latency_ms = latency_ms
        self.calls = []
        self.entered = asyncio.Event()
        self.cancelled = False

    async def detect(self, image_base64, mode=DetectionMode.POINTS, queries=None, thinking_budget=0):
        self.calls.append({"mode": mode, "queries": queries, "thinking_budget": thinking_budget})
        self.entered.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        result = PointsResult(items=[DetectionPoint(point=(500, 500), label="cup")])
        return FrameResult(result=result, latency_ms=self.latency_ms)


class ThreadRecordingSource(StillFrameSource):
    def __init__(self, image):
        super().__init__(image)
        self.read_threads = []

    def read(self):
        self.read_threads.append(threading.get_ident())
        return super().read()


def make_sampler(client, **kwargs):
    return FrameSampler(StillFrameSource(Image.new("RGB", (320, 240))), client, **kwargs)


def test_tick_is_skipped_while_request_in_flight():
    async def scenario():
        gate = asyncio.Event()
        client = FakeClient(gate=gate)
        sampler = make_sampler(client, queries=["cup"])

        assert sampler.tick() is True
        assert sampler.in_flight
        await asyncio.wait_for(client.entered.wait(), 5)
        assert sampler.tick() is False
        assert sampler.tick() is False
        assert sampler.skipped_ticks == 2
        assert len(client.calls) == 1

        gate.set()
        await sampler._request_task
        assert not sampler.in_flight
        assert sampler.tick() is True
        await sampler._request_task
        return client, sampler

    client, sampler = asyncio.run(scenario())
    assert len(client.calls) == 2
    assert client.calls[0]["queries"] == ["cup"]
    assert sampler.latency_ms == 12
    assert sampler.last_result.items[0].label == "cup"


def test_capture_and_encode_run_off_the_loop_thread():
    async def scenario():
        source = ThreadRecordingSource(Image.new("RGB", (64, 48)))
        sampler = FrameSampler(source, FakeClient())
        sampler.tick()
        await sampler._request_task
        return source, threading.get_ident()

    source, loop_thread = asyncio.run(scenario())
    assert len(source.read_threads) == 1
    assert source.read_threads[0] != loop_thread


def test_settings_changed_between_ticks_apply_to_next_request():
    async def scenario():
        client = FakeClient()
        sampler = make_sampler(client)
        sampler.tick()
        await sampler._request_task
        sampler.mode = DetectionMode.TRAJECTORY
        sampler.thinking_budget = 4
        sampler.tick()
        await sampler._request_task
        return client

    client = asyncio.run(scenario())
    assert client.calls[0]["mode"] == DetectionMode.POINTS
    assert client.calls[1]["mode"] == DetectionMode.TRAJECTORY
    assert client.calls[1]["thinking_budget"] == 4


def test_error_clears_in_flight_and_reports():
    errors = []

    async def scenario():
        client = FakeClient(error=RuntimeError("proxy down"))
        sampler = make_sampler(client, on_error=errors.append)
        sampler.tick()
        await sampler._request_task
        return sampler

    sampler = asyncio.run(scenario())
    assert not sampler.in_flight
    assert str(sampler.last_error) == "proxy down"
    assert len(errors) == 1
    assert sampler.last_result is None


def test_loop_keeps_ticking_after_errors_and_stop_ends_it():
    async def scenario():
        client = FakeClient(error=RuntimeError("boom"))
        sampler = make_sampler(client, interval=0.01)
        sampler.start()
        assert sampler.running
        await asyncio.sleep(0.3)
        await sampler.stop()
        return client, sampler

    client, sampler = asyncio.run(scenario())
    assert len(client.calls) >= 2
    assert not sampler.running


def test_stop_cancels_outstanding_request():
    async def scenario():
        client = FakeClient(gate=asyncio.Event())
        sampler = make_sampler(client, interval=0.01)
        sampler.start()
        await asyncio.wait_for(client.entered.wait(), 5)
        await asyncio.sleep(0.03)
        assert sampler.in_flight
        await sampler.stop()
        return client, sampler

    client, sampler = asyncio.run(scenario())
    assert client.cancelled
    assert not sampler.in_flight
    assert len(client.calls) == 1


def test_fps_is_computed_over_window():
    async def scenario():
        sampler = make_sampler(FakeClient(), fps_window=1.0)
        sampler._window_start = time.monotonic() - 1.0
        sampler.tick()
        await sampler._request_task
        return sampler

    sampler = asyncio.run(scenario())
    assert 0 < sampler.fps <= 1.0


def test_no_frame_means_no_request():
    async def scenario():
        client = FakeClient()
        source = StillFrameSource(Image.new("RGB", (8, 8)))
        source.release()
        sampler = FrameSampler(source, client)
        sampler.tick()
        await sampler._request_task
        return sampler, client

    sampler, client = asyncio.run(scenario())
    assert client.calls == []
    assert not sampler.in_flight
    assert sampler.last_error is None
