"""Camera-backed classification feed."""

import logging
import threading
from typing import Callable, List, Optional

import cv2
import numpy as np

import config
from camera.base_classifier import ClassificationSample, FrameClassifier
from camera.capture import CameraCapture
from errors import FeedUnavailableError

logger = logging.getLogger(__name__)


class CameraFeed:
    """
    Pulls frames from the webcam and runs them through a frame classifier.

    The classifier model is loaded on the first start() and kept until
    close(), so consecutive sessions do not reload it. start()/stop() only
    open and release the camera.

    classify() runs on the engine's worker thread; the camera handle is
    guarded by a lock so stop() from the UI thread can release it safely,
    and close() waits for a running classification before freeing the model.
    The annotated preview of the last classified frame is available through
    latest_preview() for the GUI.
    """

    def __init__(
        self,
        classifier_factory: Callable[[], FrameClassifier],
        capture: Optional[CameraCapture] = None
    ):
        """
        Args:
            classifier_factory: Callable building the frame classifier
            capture: Camera wrapper (defaults to a CameraCapture on config.CAMERA_INDEX)
        """
        self.classifier_factory = classifier_factory
        self.capture = capture or CameraCapture()
        self._classifier: Optional[FrameClassifier] = None
        self._lock = threading.Lock()
        # Held while the model is in use so close() never frees it mid-inference
        self._classifier_lock = threading.Lock()
        self._preview: Optional[np.ndarray] = None

    def start(self) -> None:
        """
        Load the classifier (first time only) and open the camera.

        Raises:
            FeedUnavailableError: model failed to load or camera did not open
        """
        with self._classifier_lock:
            if self._classifier is None:
                try:
                    self._classifier = self.classifier_factory()
                except Exception as e:
                    logger.error(f"Failed to load classifier: {e}")
                    raise FeedUnavailableError(f"Classifier unavailable: {e}") from e

        with self._lock:
            opened = self.capture.open()

        if not opened:
            raise FeedUnavailableError("Camera not working")

    def stop(self) -> None:
        """Release the camera. Safe to call while classify() is running."""
        with self._lock:
            self.capture.release()
            self._preview = None

    def classify(self) -> Optional[List[ClassificationSample]]:
        """
        Read the current frame and classify it.

        Returns:
            Samples for this frame, or None if the classifier found nothing

        Raises:
            FeedUnavailableError: camera closed, read failed or model missing
        """
        with self._lock:
            if not self.capture.is_opened:
                raise FeedUnavailableError("Camera not open")
            frame = self.capture.read()

        if frame is None:
            raise FeedUnavailableError("Camera read failed")

        with self._classifier_lock:
            classifier = self._classifier
            if classifier is None:
                raise FeedUnavailableError("Classifier not loaded")
            samples = classifier.classify_frame(frame)
            preview = classifier.draw(frame)

        preview = cv2.resize(preview, (config.PREVIEW_SIZE, config.PREVIEW_SIZE))
        preview = cv2.cvtColor(preview, cv2.COLOR_BGR2RGB)

        with self._lock:
            # Stopped while the classifier was running: keep the preview cleared
            if self.capture.is_opened:
                self._preview = preview

        return samples

    def latest_preview(self) -> Optional[np.ndarray]:
        """
        Get the last annotated frame.

        Returns:
            RGB image of config.PREVIEW_SIZE square, or None
        """
        with self._lock:
            return None if self._preview is None else self._preview.copy()

    def close(self) -> None:
        """Release the camera and the classifier model."""
        self.stop()
        # Waits for an in-flight classify() to finish with the model
        with self._classifier_lock:
            if self._classifier is not None:
                self._classifier.close()
                self._classifier = None
