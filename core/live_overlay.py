"""
Live camera overlay.

Shows the webcam in an OpenCV window with ER results drawn on top. The
window loop owns the camera; a FrameSampler posts the newest frame to the
proxy at its own cadence, all inside one LiveSession so quitting tears down
the sampler, the token refresh and the camera together.

Keys:
    q / Esc   quit
    m         cycle mode (points -> boxes -> trajectory)
    [ / ]     lower / raise the thinking budget
"""

import asyncio
import logging
from typing import List, Optional

import cv2
import numpy as np
from PIL import Image

from .camera import CameraFrameSource, FrameSource, LatestFrameSource
from .detection import DetectionMode
from .er_client import DEFAULT_SERVER_URL, ERProxyClient, FrameResult
from .frame_sampler import DEFAULT_INTERVAL, FrameSampler
from .live_session import LiveSession
from .overlay import OverlayCanvas, compose, draw_status

logger = logging.getLogger(__name__)

WINDOW_NAME = "ER Live (q to quit)"
MODE_ORDER = [DetectionMode.POINTS, DetectionMode.BOXES, DetectionMode.TRAJECTORY]
BUDGET_STEP = 128
ESC_KEY = 27


class LiveOverlay:
    """Display loop plus the session that feeds it."""

    def __init__(
        self,
        camera: FrameSource,
        client: ERProxyClient,
        mode: DetectionMode = DetectionMode.POINTS,
        queries: Optional[List[str]] = None,
        thinking_budget: int = 0,
        interval: float = DEFAULT_INTERVAL,
        model: Optional[str] = None,
        window_name: str = WINDOW_NAME
    ):
        self.camera = camera
        self.frames = LatestFrameSource(camera)
        self.canvas: Optional[OverlayCanvas] = None
        self.window_name = window_name

        self.sampler = FrameSampler(
            self.frames,
            client,
            interval=interval,
            mode=mode,
            queries=queries,
            thinking_budget=thinking_budget,
            on_result=self._on_result
        )
        self.session = LiveSession(client, model=model, sampler=self.sampler)

    def _on_result(self, response: FrameResult):
        if self.canvas is not None:
            self.canvas.redraw(response.result)

    def status_lines(self) -> List[str]:
        sampler = self.sampler
        lines = [f"mode: {sampler.mode.value}  budget: {sampler.thinking_budget}"]
        if sampler.queries:
            lines.append("queries: " + ", ".join(sampler.queries))
        lines.append(f"latency: {sampler.latency_ms} ms  fps: {sampler.fps:.1f}")
        if sampler.last_error is not None:
            lines.append(f"error: {sampler.last_error}")
        return lines

    def render(self, frame: Image.Image) -> Image.Image:
        """Composite the current overlay and status text onto one frame."""
        if self.canvas is None:
            self.canvas = OverlayCanvas(*frame.size)
            self.canvas.redraw(self.sampler.last_result)
        elif self.canvas.image.size != frame.size:
            self.canvas.resize(*frame.size)
            self.canvas.redraw(self.sampler.last_result)

        shown = compose(frame, self.canvas.image)
        return draw_status(shown, self.status_lines(), font=self.canvas.font)

    def handle_key(self, key: int) -> bool:
        """Apply one key press. Returns False when the user asked to quit."""
        if key in (ord("q"), ESC_KEY):
            return False

        sampler = self.sampler
        if key == ord("m"):
            sampler.mode = MODE_ORDER[(MODE_ORDER.index(sampler.mode) + 1) % len(MODE_ORDER)]
            sampler.last_result = None
            if self.canvas is not None:
                self.canvas.redraw(None)
            logger.info(f"Mode switched to {sampler.mode.value}")
        elif key == ord("]"):
            sampler.thinking_budget += BUDGET_STEP
        elif key == ord("["):
            sampler.thinking_budget = max(0, sampler.thinking_budget - BUDGET_STEP)
        return True

    async def run(self):
        await self.session.start()
        try:
            while True:
                frame = await asyncio.to_thread(self.camera.read)
                if frame is None:
                    logger.warning("Camera returned no frame, stopping")
                    break

                self.frames.update(frame)
                shown = self.render(frame)
                cv2.imshow(self.window_name, cv2.cvtColor(np.asarray(shown), cv2.COLOR_RGB2BGR))
                if not self.handle_key(cv2.waitKey(1) & 0xFF):
                    break
                await asyncio.sleep(0)
        finally:
            await self.session.stop()
            cv2.destroyWindow(self.window_name)


async def run_live_overlay(
    server_url: str = DEFAULT_SERVER_URL,
    camera_index: int = 0,
    mode: DetectionMode = DetectionMode.POINTS,
    queries: Optional[List[str]] = None,
    thinking_budget: int = 0,
    interval: float = DEFAULT_INTERVAL,
    model: Optional[str] = None
) -> None:
    """Open the webcam and run the overlay window against a running proxy."""
    client = ERProxyClient(base_url=server_url)
    try:
        camera = CameraFrameSource(camera_index)
        overlay = LiveOverlay(
            camera,
            client,
            mode=mode,
            queries=queries,
            thinking_budget=thinking_budget,
            interval=interval,
            model=model
        )
        await overlay.run()
    finally:
        await client.aclose()
