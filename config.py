"""Configuration settings for the Focus Session tracker."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).parent

# Classifier Configuration
CLASSIFIER_PROVIDER = os.getenv("CLASSIFIER_PROVIDER", "pose")  # "pose" or "openai"
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_VISION_MODEL = os.getenv("OPENAI_VISION_MODEL", "gpt-4o-mini")
VISION_CACHE_SECONDS = 1.0  # Reuse the last vision result within this window

# Class labels (model order)
FOCUSED_LABEL = os.getenv("FOCUSED_LABEL", "focused")
UNFOCUSED_LABEL = os.getenv("UNFOCUSED_LABEL", "unfocused")
UNFOCUSED_CLASS_INDEX = int(os.getenv("UNFOCUSED_CLASS_INDEX", "1"))
CLASS_LABELS = [FOCUSED_LABEL, UNFOCUSED_LABEL]

# Session thresholds
UNFOCUS_PROBABILITY_THRESHOLD = float(os.getenv("UNFOCUS_PROBABILITY_THRESHOLD", "0.7"))
WARNING_THRESHOLD_SECONDS = int(os.getenv("WARNING_THRESHOLD_SECONDS", "20"))
TERMINATE_THRESHOLD_SECONDS = int(os.getenv("TERMINATE_THRESHOLD_SECONDS", "30"))

# Scheduling
SESSION_TICK_MS = 1000  # Elapsed-time stopwatch interval
FRAME_INTERVAL_MS = 100  # Classification cadence (frames are dropped while one is in flight)

# Camera Configuration
CAMERA_INDEX = int(os.getenv("CAMERA_INDEX", "0"))
FRAME_WIDTH = 640
FRAME_HEIGHT = 480
PREVIEW_SIZE = 200  # Square preview shown in the GUI
CAMERA_FLIP = True  # Mirror the webcam image

# Pose classifier
POSE_DETECTION_CONFIDENCE = 0.5
MIN_PART_CONFIDENCE = 0.5  # Keypoints below this visibility are not drawn
HEAD_DROP_NEUTRAL = 0.35  # Nose-to-shoulder height ratio at which focus is a coin flip
HEAD_DROP_STEEPNESS = 12.0
SHOULDER_TILT_LIMIT = 0.25  # Shoulder slope (dy/dx) treated as fully turned away

# Paths
DATA_DIR = BASE_DIR / "data"
LEDGER_FILE = DATA_DIR / "focus_scores.json"
REPORTS_DIR = BASE_DIR / "reports"

# Stop reasons
STOP_MANUAL = "manual"
STOP_AUTO = "auto"

# Error types reported through the engine's on_error callback
ERROR_FEED_UNAVAILABLE = "feed_unavailable"
ERROR_MISSING_CLASS = "missing_class"
ERROR_LEDGER_PERSISTENCE = "ledger_persistence"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
