"""Focused / unfocused pose classification using MediaPipe Pose."""

import logging
import math
from typing import List, Optional, Sequence

import cv2
import mediapipe as mp
import numpy as np

import config
from camera.base_classifier import ClassificationSample

logger = logging.getLogger(__name__)

# MediaPipe Pose landmark indices used by the heuristic
NOSE = 0
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12


class PoseClassifier:
    """
    Estimates how likely the subject is to be unfocused from body pose.

    MediaPipe Pose gives upper-body keypoints; two cues are combined:
    - Head drop: the nose sinking towards the shoulder line (looking down
      at a phone or lap).
    - Turn away: the nose drifting sideways from the shoulder midpoint, or
      the shoulders tilting (twisted towards something else).

    The larger cue wins. A frame with no person counts as fully unfocused,
    since nobody is at the desk.
    """

    def __init__(self):
        """Initialize MediaPipe Pose."""
        self.mp_pose = mp.solutions.pose
        self.pose = self.mp_pose.Pose(
            model_complexity=0,  # Lite model, fast enough for every frame
            min_detection_confidence=config.POSE_DETECTION_CONFIDENCE,
            min_tracking_confidence=config.POSE_DETECTION_CONFIDENCE
        )
        self._last_landmarks = None
        logger.info("Pose classifier initialized")

    def close(self) -> None:
        """Release MediaPipe resources."""
        self.pose.close()

    def classify_frame(self, frame: np.ndarray) -> Optional[List[ClassificationSample]]:
        """
        Classify a frame as focused / unfocused.

        Args:
            frame: BGR image from camera

        Returns:
            Samples in config.CLASS_LABELS order
        """
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self.pose.process(rgb_frame)

        if not results.pose_landmarks:
            self._last_landmarks = None
            return _samples(1.0)

        landmarks = results.pose_landmarks.landmark
        self._last_landmarks = landmarks

        return _samples(unfocus_score(landmarks))

    def draw(self, frame: np.ndarray) -> np.ndarray:
        """
        Draw keypoints and skeleton of the last classified pose.

        Parts below config.MIN_PART_CONFIDENCE visibility are skipped.

        Args:
            frame: BGR image the last classification ran on

        Returns:
            Annotated copy of the frame
        """
        frame_copy = frame.copy()
        landmarks = self._last_landmarks
        if landmarks is None:
            return frame_copy

        h, w = frame_copy.shape[:2]
        min_confidence = config.MIN_PART_CONFIDENCE

        def visible(idx: int) -> bool:
            return landmarks[idx].visibility >= min_confidence

        def point(idx: int):
            return int(landmarks[idx].x * w), int(landmarks[idx].y * h)

        for start, end in self.mp_pose.POSE_CONNECTIONS:
            if visible(start) and visible(end):
                cv2.line(frame_copy, point(start), point(end), (255, 255, 255), 2)

        for idx in range(len(landmarks)):
            if visible(idx):
                cv2.circle(frame_copy, point(idx), 4, (0, 165, 255), -1)

        return frame_copy


def unfocus_score(landmarks: Sequence) -> float:
    """
    Combine head-drop and turn-away cues into an unfocused probability.

    Args:
        landmarks: MediaPipe pose landmarks (normalized x, y, visibility)

    Returns:
        Probability in [0, 1]
    """
    nose = landmarks[NOSE]
    left = landmarks[LEFT_SHOULDER]
    right = landmarks[RIGHT_SHOULDER]

    shoulder_width = math.hypot(left.x - right.x, left.y - right.y)
    if shoulder_width < 1e-6:
        # Shoulders collapsed onto each other: side-on to the camera
        return 1.0

    mid_x = (left.x + right.x) / 2
    mid_y = (left.y + right.y) / 2

    # Image y grows downwards, so a raised head gives a positive height
    head_height = (mid_y - nose.y) / shoulder_width
    drop = 1.0 / (1.0 + math.exp(-config.HEAD_DROP_STEEPNESS * (config.HEAD_DROP_NEUTRAL - head_height)))

    offset = abs(nose.x - mid_x) / shoulder_width
    slope = abs(left.y - right.y) / max(abs(left.x - right.x), 1e-6)
    turn = max(
        min(1.0, max(0.0, (offset - 0.25) / 0.25)),
        min(1.0, slope / config.SHOULDER_TILT_LIMIT) if slope > config.SHOULDER_TILT_LIMIT / 2 else 0.0
    )

    return max(drop, turn)


def _samples(unfocused: float) -> List[ClassificationSample]:
    probabilities = {
        config.FOCUSED_LABEL: 1.0 - unfocused,
        config.UNFOCUSED_LABEL: unfocused,
    }
    return [ClassificationSample(label, probabilities.get(label, 0.0)) for label in config.CLASS_LABELS]
