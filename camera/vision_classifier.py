"""Focused / unfocused classification using the OpenAI Vision API."""

import base64
import json
import logging
import time
from typing import Dict, List, Optional

import cv2
import numpy as np
from openai import OpenAI

import config
from camera.base_classifier import ClassificationSample
from errors import FeedUnavailableError

logger = logging.getLogger(__name__)


class VisionClassifier:
    """
    Uses an OpenAI vision model (gpt-4o-mini by default) to score a webcam
    frame against the configured classes.

    The model answers with a JSON object mapping each class label to a
    probability. Slower and costlier than the pose classifier, but it also
    understands context the pose cannot (a phone in hand, a TV, etc.).
    """

    def __init__(self, api_key: Optional[str] = None, vision_model: Optional[str] = None, client=None):
        """
        Initialize vision classifier.

        Args:
            api_key: OpenAI API key (defaults to config.OPENAI_API_KEY)
            vision_model: Vision model to use (defaults to config.OPENAI_VISION_MODEL)
            client: Pre-built OpenAI client (mainly for tests)
        """
        self.api_key = api_key or config.OPENAI_API_KEY
        self.vision_model = vision_model or config.OPENAI_VISION_MODEL

        if client is None:
            if not self.api_key:
                raise ValueError("OpenAI API key required for vision classification!")
            client = OpenAI(api_key=self.api_key)
        self.client = client

        # Cache for reducing API calls
        self.last_classification_time = 0.0
        self.last_classification_result: Optional[List[ClassificationSample]] = None

        logger.info(f"Vision classifier initialized with {self.vision_model}")

    def close(self) -> None:
        """Nothing to release; the HTTP client is closed with the process."""

    def _encode_frame(self, frame: np.ndarray) -> str:
        """
        Encode frame to base64 JPEG for the API.

        Args:
            frame: BGR image from camera

        Returns:
            Base64 encoded JPEG string
        """
        # Resize to reduce token usage (smaller = cheaper)
        resized = cv2.resize(frame, (640, 480))
        _, buffer = cv2.imencode('.jpg', resized, [cv2.IMWRITE_JPEG_QUALITY, 80])
        return base64.b64encode(buffer).decode('utf-8')

    def _build_prompt(self) -> str:
        labels = ", ".join(f'"{label}"' for label in config.CLASS_LABELS)
        example = ", ".join(f'"{label}": 0.0 to 1.0' for label in config.CLASS_LABELS)
        return f"""You are classifying a webcam frame for a focus tracking app.

You MUST respond with ONLY a valid JSON object (no other text before or after):
{{{example}}}

Give a probability for each of these classes: {labels}. They must sum to 1.

"{config.FOCUSED_LABEL}" means the person is at the desk, facing their work,
upright or leaning in as if reading or typing.

"{config.UNFOCUSED_LABEL}" means the person is looking down at a phone or lap,
turned away, slumped with head down, talking to someone off-screen,
or not in the frame at all.

If unsure, keep probabilities close to 0.5."""

    def classify_frame(self, frame: np.ndarray, use_cache: bool = True) -> Optional[List[ClassificationSample]]:
        """
        Classify a frame with the vision model.

        Args:
            frame: BGR image from camera
            use_cache: Reuse the previous answer within config.VISION_CACHE_SECONDS

        Returns:
            Samples in config.CLASS_LABELS order, or None if the answer
            could not be understood

        Raises:
            FeedUnavailableError: the API call itself failed (network, auth, quota)
        """
        current_time = time.time()
        if use_cache and self.last_classification_result and \
           (current_time - self.last_classification_time) < config.VISION_CACHE_SECONDS:
            return self.last_classification_result

        try:
            response = self.client.chat.completions.create(
                model=self.vision_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": self._build_prompt()},
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": f"data:image/jpeg;base64,{self._encode_frame(frame)}",
                                    "detail": "low"
                                }
                            }
                        ]
                    }
                ],
                max_tokens=60,
                temperature=0.2
            )

            content = response.choices[0].message.content
        except Exception as e:
            logger.error(f"Vision API error: {e}")
            raise FeedUnavailableError(f"Vision API unavailable: {e}") from e

        logger.debug(f"Vision API raw response: {content[:200] if content else 'EMPTY'}")

        try:
            probabilities = parse_class_probabilities(content)
            samples = [
                ClassificationSample(label, probabilities.get(label, 0.0))
                for label in config.CLASS_LABELS
            ]

            self.last_classification_result = samples
            self.last_classification_time = current_time
            return samples

        except (ValueError, TypeError) as e:
            logger.error(f"Unusable vision answer: {e}")
            return None

    def draw(self, frame: np.ndarray) -> np.ndarray:
        """No overlay for the vision model; returns a copy of the frame."""
        return frame.copy()


def parse_class_probabilities(content: Optional[str]) -> Dict[str, float]:
    """
    Pull the class -> probability mapping out of a model answer.

    Tolerates markdown code fences and text around the JSON object.

    Args:
        content: Raw message content from the API

    Returns:
        Mapping of label to probability clamped to [0, 1]

    Raises:
        ValueError: empty answer or no JSON object
        json.JSONDecodeError: malformed JSON
    """
    if not content or content.strip() == "":
        raise ValueError("Empty response from OpenAI Vision API")

    content = content.strip()

    # Sometimes the response has backticks or extra text
    if '```json' in content:
        content = content.split('```json')[1].split('```')[0].strip()
    elif '```' in content:
        content = content.split('```')[1].split('```')[0].strip()
    elif '{' in content and '}' in content:
        start = content.index('{')
        end = content.rindex('}') + 1
        content = content[start:end]

    try:
        result = json.loads(content)
    except json.JSONDecodeError:
        logger.error(f"Failed to parse JSON. Content: {content[:500]}")
        raise

    if not isinstance(result, dict):
        raise ValueError(f"Expected a JSON object, got {type(result).__name__}")

    return {
        str(label): min(1.0, max(0.0, float(value)))
        for label, value in result.items()
        if isinstance(value, (int, float))
    }
