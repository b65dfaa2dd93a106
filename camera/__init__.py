"""
Classification feed helpers and factory.
"""

import logging
from typing import List, Optional, Sequence

import config
from camera.base_classifier import ClassificationFeed, ClassificationSample
from errors import MissingClassError

logger = logging.getLogger(__name__)


def unfocused_probability(
    samples: Optional[Sequence[ClassificationSample]],
    label: Optional[str] = None,
    index: Optional[int] = None,
) -> Optional[float]:
    """
    Extract the unfocused-class probability from one frame's samples.

    The class is looked up by label. The positional index is only used
    when the model exported no labels at all (every label is empty),
    as with image models exported without metadata.

    Args:
        samples: Samples for one frame, or None when the feed had no result
        label: Unfocused class label (defaults to config.UNFOCUSED_LABEL)
        index: Fallback class index (defaults to config.UNFOCUSED_CLASS_INDEX)

    Returns:
        Probability in [0, 1], or None if the feed produced nothing

    Raises:
        MissingClassError: samples exist but the unfocused class is absent
    """
    if samples is None:
        return None

    label = label if label is not None else config.UNFOCUSED_LABEL
    index = index if index is not None else config.UNFOCUSED_CLASS_INDEX

    for sample in samples:
        if sample.label == label:
            return _clamp(sample.probability)

    if samples and not any(sample.label for sample in samples) and 0 <= index < len(samples):
        return _clamp(samples[index].probability)

    raise MissingClassError(label, [sample.label for sample in samples])


def _clamp(probability: float) -> float:
    return min(1.0, max(0.0, float(probability)))


def create_classification_feed(provider: Optional[str] = None) -> ClassificationFeed:
    """
    Build the camera feed with the configured frame classifier.

    Args:
        provider: "pose" (MediaPipe, runs locally) or "openai" (vision API).
            Defaults to config.CLASSIFIER_PROVIDER.

    Returns:
        A CameraFeed ready to be started by the engine. The classifier
        model is loaded when the feed starts, not here.
    """
    # Imported here so the engine and tests never load OpenCV/MediaPipe
    from camera.feed import CameraFeed

    provider = (provider or config.CLASSIFIER_PROVIDER).lower()

    if provider == "openai":
        from camera.vision_classifier import VisionClassifier
        classifier_factory = VisionClassifier
    else:
        if provider != "pose":
            logger.warning(f"Unknown classifier provider '{provider}', using pose")
        from camera.pose_classifier import PoseClassifier
        classifier_factory = PoseClassifier

    logger.info(f"Classification feed created with {classifier_factory.__name__}")
    return CameraFeed(classifier_factory)


__all__ = [
    "ClassificationFeed",
    "ClassificationSample",
    "create_classification_feed",
    "unfocused_probability",
]
