"""
Frame Sampler - fixed-cadence capture loop with a single-flight guard.

Every tick grabs a frame and posts it to the proxy unless the previous
request is still outstanding, in which case the tick is dropped (no queue).
Requests run in their own task so the tick loop never waits on the network.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .camera import FrameSource
from .detection import DetectionMode, DetectionResult
from .er_client import ERProxyClient, FrameResult
from .frame_encoder import JPEG_QUALITY, TARGET_WIDTH, encode_frame

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.5  # ~2 requests/second
FPS_WINDOW_SECONDS = 1.0


class FrameSampler:
    """
    Capture loop for one session. Owns its in-flight flag and metrics.

    mode, queries and thinking_budget may be changed between ticks; each
    request takes a snapshot of them.
    """

    def __init__(
        self,
        source: FrameSource,
        client: ERProxyClient,
        interval: float = DEFAULT_INTERVAL,
        mode: DetectionMode = DetectionMode.POINTS,
        queries: Optional[List[str]] = None,
        thinking_budget: int = 0,
        target_width: int = TARGET_WIDTH,
        jpeg_quality: int = JPEG_QUALITY,
        on_result: Optional[Callable[[FrameResult], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        fps_window: float = FPS_WINDOW_SECONDS
    ):
        self.source = source
        self.client = client
        self.interval = interval
        self.mode = DetectionMode(mode)
        self.queries = list(queries or [])
        self.thinking_budget = thinking_budget
        self.target_width = target_width
        self.jpeg_quality = jpeg_quality
        self.on_result = on_result
        self.on_error = on_error
        self.fps_window = fps_window

        # Metrics
        self.in_flight = False
        self.skipped_ticks = 0
        self.latency_ms = 0
        self.fps = 0.0
        self.last_result: Optional[DetectionResult] = None
        self.last_error: Optional[Exception] = None
        self._frame_count = 0
        self._window_start = time.monotonic()

        self._loop_task: Optional[asyncio.Task] = None
        self._request_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self):
        """Start ticking. Must be called from inside a running event loop."""
        if self.running:
            return
        self._window_start = time.monotonic()
        self._loop_task = asyncio.create_task(self._run())
        logger.info(f"Frame sampler started (interval={self.interval}s, mode={self.mode.value})")

    async def stop(self):
        """Cancel the tick loop and any outstanding request."""
        tasks = [t for t in (self._loop_task, self._request_task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._request_task = None
        self.in_flight = False
        logger.info("Frame sampler stopped")

    async def _run(self):
        while True:
            self.tick()
            await asyncio.sleep(self.interval)

    def tick(self) -> bool:
        """
        One capture step.

        Returns:
            True if a capture was started, False if the tick was skipped
        """
        if self.in_flight:
            self.skipped_ticks += 1
            return False

        self.in_flight = True
        self._request_task = asyncio.create_task(self._process())
        return True

    async def _process(self):
        # blocking capture and encode run off the loop thread
        try:
            frame = await asyncio.to_thread(self.source.read)
            if frame is None:
                return
            image_base64 = await asyncio.to_thread(encode_frame, frame, self.target_width, self.jpeg_quality)
            response = await self.client.detect(
                image_base64,
                mode=self.mode,
                queries=list(self.queries),
                thinking_budget=self.thinking_budget
            )
        except Exception as e:
            self.last_error = e
            logger.error(f"Frame processing error: {e}")
            if self.on_error:
                self.on_error(e)
        else:
            self.latency_ms = response.latency_ms
            self.last_result = response.result
            self._record_frame()
            if self.on_result:
                self.on_result(response)
        finally:
            self.in_flight = False

    def _record_frame(self):
        self._frame_count += 1
        now = time.monotonic()
        elapsed = now - self._window_start
        if elapsed >= self.fps_window:
            self.fps = self._frame_count / elapsed
            self._frame_count = 0
            self._window_start = now
