"""Base types and protocols for classification feeds."""

from dataclasses import dataclass
from typing import List, Optional, Protocol

import numpy as np


@dataclass(frozen=True)
class ClassificationSample:
    """One class probability for a single frame."""

    label: str
    probability: float


class FrameClassifier(Protocol):
    """
    Protocol for anything that turns a camera frame into class probabilities.

    Both the MediaPipe pose classifier and the OpenAI vision classifier
    implement this so the camera feed can use either.
    """

    def classify_frame(self, frame: np.ndarray) -> Optional[List[ClassificationSample]]:
        """
        Classify a camera frame.

        Args:
            frame: BGR image from camera (numpy array)

        Returns:
            One sample per class in model order, or None when the frame
            produced no usable result (e.g. nobody in view).
        """
        ...

    def draw(self, frame: np.ndarray) -> np.ndarray:
        """
        Draw the classifier's overlay (keypoints, skeleton) for preview.

        Args:
            frame: BGR image the last classification ran on

        Returns:
            Annotated copy of the frame
        """
        ...

    def close(self) -> None:
        """Release model resources."""
        ...


class ClassificationFeed(Protocol):
    """
    Protocol for the per-frame classification source the engine consumes.

    classify() may block (model inference or a network call); the engine
    only ever has one call in flight.
    """

    def start(self) -> None:
        """Begin producing samples. Raises FeedUnavailableError if it cannot."""
        ...

    def stop(self) -> None:
        """Stop producing samples and release the camera."""
        ...

    def classify(self) -> Optional[List[ClassificationSample]]:
        """
        Classify the current frame.

        Returns:
            Samples for this frame, or None for "no result this frame".

        Raises:
            FeedUnavailableError: camera or model not available
        """
        ...
