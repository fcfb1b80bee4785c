"""
Frame sources for the capture loop.
"""

import logging
import threading
from typing import Optional, Protocol

import cv2
from PIL import Image

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """A device handle that yields RGB frames and must be released on stop."""

    def read(self) -> Optional[Image.Image]:
        ...

    def release(self) -> None:
        ...


class CameraFrameSource:
    """OpenCV webcam capture. Frames come back as RGB Pillow images."""

    def __init__(self, camera_index: int = 0):
        self.camera_index = camera_index
        self.cap = cv2.VideoCapture(camera_index)
        if not self.cap.isOpened():
            self.cap.release()
            raise RuntimeError(f"Could not open camera index {camera_index}")
        logger.info(f"Camera {camera_index} opened")

    def read(self) -> Optional[Image.Image]:
        if self.cap is None:
            return None
        ok, frame = self.cap.read()
        if not ok or frame is None:
            return None
        return Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info(f"Camera {self.camera_index} released")


class StillFrameSource:
    """Replays one image on every read. Handy for demos without a camera."""

    def __init__(self, image: Image.Image):
        self.image: Optional[Image.Image] = image.convert("RGB")

    def read(self) -> Optional[Image.Image]:
        return self.image.copy() if self.image is not None else None

    def release(self) -> None:
        self.image = None


class LatestFrameSource:
    """
    Shares one camera between the display loop and the sampler.

    The display loop owns the camera and pushes every frame it shows with
    update(); read() hands the sampler a copy of the newest one.
    """

    def __init__(self, camera: FrameSource):
        self.camera = camera
        self._frame: Optional[Image.Image] = None
        self._lock = threading.Lock()

    def update(self, frame: Image.Image) -> None:
        with self._lock:
            self._frame = frame

    def read(self) -> Optional[Image.Image]:
        with self._lock:
            return self._frame.copy() if self._frame is not None else None

    def release(self) -> None:
        with self._lock:
            self._frame = None
        self.camera.release()
