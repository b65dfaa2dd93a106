"""Webcam capture using OpenCV."""

import logging
from typing import Optional

import cv2
import numpy as np

import config

logger = logging.getLogger(__name__)


class CameraCapture:
    """
    Thin wrapper around cv2.VideoCapture.

    Frames come back mirrored when flip is set, so the preview reads like
    a mirror.
    """

    def __init__(
        self,
        camera_index: Optional[int] = None,
        width: int = config.FRAME_WIDTH,
        height: int = config.FRAME_HEIGHT,
        flip: bool = config.CAMERA_FLIP
    ):
        """
        Args:
            camera_index: Device index (defaults to config.CAMERA_INDEX)
            width: Requested capture width
            height: Requested capture height
            flip: Mirror frames horizontally (selfie view)
        """
        self.camera_index = config.CAMERA_INDEX if camera_index is None else camera_index
        self.width = width
        self.height = height
        self.flip = flip
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def is_opened(self) -> bool:
        """Whether the device is open and delivering frames."""
        return self._cap is not None and self._cap.isOpened()

    def open(self) -> bool:
        """
        Open the camera device.

        Returns:
            True if the camera opened, False otherwise
        """
        if self.is_opened:
            return True

        self._cap = cv2.VideoCapture(self.camera_index)

        if not self._cap.isOpened():
            logger.error(f"Cannot open camera {self.camera_index}")
            self._cap.release()
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        # Keep only the newest frame so classification never lags behind
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        logger.info(f"Camera {self.camera_index} opened")
        return True

    def read(self) -> Optional[np.ndarray]:
        """
        Read one frame.

        Returns:
            BGR frame, or None if the read failed
        """
        if not self.is_opened:
            return None

        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None

        if self.flip:
            frame = cv2.flip(frame, 1)
        return frame

    def release(self):
        """Release the camera device."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info(f"Camera {self.camera_index} released")

