import threading
from types import SimpleNamespace

import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("cv2")

import config
from camera.base_classifier import ClassificationSample
from camera.feed import CameraFeed
from errors import FeedUnavailableError

from conftest import samples


class FakeCapture:

    def __init__(self, opens=True, frame=True):
        self.opens = opens
        self.frame = np.full((480, 640, 3), 80, dtype=np.uint8) if frame else None
        self.is_opened = False
        self.releases = 0

    def open(self):
        self.is_opened = self.opens
        return self.opens

    def read(self):
        return self.frame

    def release(self):
        self.releases += 1
        self.is_opened = False


class FakeClassifier:

    def __init__(self, result=None):
        self.result = result if result is not None else samples(0.3)
        self.closed = False

    def classify_frame(self, frame):
        return self.result

    def draw(self, frame):
        return frame.copy()

    def close(self):
        self.closed = True


def test_classify_returns_samples_and_preview():
    classifier = FakeClassifier()
    feed = CameraFeed(lambda: classifier, capture=FakeCapture())
    feed.start()

    assert feed.classify() == classifier.result
    preview = feed.latest_preview()
    assert preview.shape == (config.PREVIEW_SIZE, config.PREVIEW_SIZE, 3)


def test_camera_that_will_not_open():
    feed = CameraFeed(FakeClassifier, capture=FakeCapture(opens=False))
    with pytest.raises(FeedUnavailableError, match="Camera not working"):
        feed.start()
    with pytest.raises(FeedUnavailableError):
        feed.classify()


def test_model_load_failure():
    def broken():
        raise RuntimeError("model file missing")

    feed = CameraFeed(broken, capture=FakeCapture())
    with pytest.raises(FeedUnavailableError, match="model file missing"):
        feed.start()


def test_failed_read():
    feed = CameraFeed(FakeClassifier, capture=FakeCapture(frame=False))
    feed.start()
    with pytest.raises(FeedUnavailableError):
        feed.classify()


def test_model_loaded_once_across_sessions():
    built = []

    def factory():
        built.append(1)
        return FakeClassifier()

    feed = CameraFeed(factory, capture=FakeCapture())
    feed.start()
    feed.stop()
    feed.start()

    assert len(built) == 1


def test_stop_clears_preview_and_close_releases_model():
    classifier = FakeClassifier([ClassificationSample(config.UNFOCUSED_LABEL, 0.9)])
    capture = FakeCapture()
    feed = CameraFeed(lambda: classifier, capture=capture)
    feed.start()
    feed.classify()

    feed.stop()
    assert feed.latest_preview() is None
    with pytest.raises(FeedUnavailableError):
        feed.classify()

    feed.close()
    assert classifier.closed
    assert capture.releases == 2


class BlockingClassifier(FakeClassifier):
    """Stays inside classify_frame until released."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.closed_during_call = False

    def classify_frame(self, frame):
        self.entered.set()
        self.release.wait(timeout=5)
        self.closed_during_call = self.closed
        return self.result


def test_close_waits_for_running_classification():
    classifier = BlockingClassifier()
    feed = CameraFeed(lambda: classifier, capture=FakeCapture())
    feed.start()

    worker = threading.Thread(target=feed.classify)
    worker.start()
    assert classifier.entered.wait(timeout=5)

    closer = threading.Thread(target=feed.close)
    closer.start()
    closer.join(timeout=0.2)

    # Model still in use: close() must not have freed it yet
    assert closer.is_alive()
    assert not classifier.closed

    classifier.release.set()
    worker.join(timeout=5)
    closer.join(timeout=5)

    assert not classifier.closed_during_call
    assert classifier.closed


def test_classify_after_close():
    feed = CameraFeed(FakeClassifier, capture=FakeCapture())
    feed.start()
    feed.close()
    feed.capture.open()

    with pytest.raises(FeedUnavailableError, match="Classifier not loaded"):
        feed.classify()


class TestUnfocusScore:
    """Pose heuristic on hand-made landmarks (normalized image coords)."""

    @pytest.fixture(autouse=True)
    def _pose_module(self):
        pytest.importorskip("mediapipe")
        from camera import pose_classifier
        self.module = pose_classifier

    def landmarks(self, nose, left=(0.65, 0.6), right=(0.35, 0.6)):
        points = [SimpleNamespace(x=0.5, y=0.5, visibility=0.0) for _ in range(33)]
        points[self.module.NOSE] = SimpleNamespace(x=nose[0], y=nose[1], visibility=1.0)
        points[self.module.LEFT_SHOULDER] = SimpleNamespace(x=left[0], y=left[1], visibility=1.0)
        points[self.module.RIGHT_SHOULDER] = SimpleNamespace(x=right[0], y=right[1], visibility=1.0)
        return points

    def test_upright_and_facing_camera(self):
        assert self.module.unfocus_score(self.landmarks(nose=(0.5, 0.3))) < 0.1

    def test_head_dropped(self):
        assert self.module.unfocus_score(self.landmarks(nose=(0.5, 0.58))) > config.UNFOCUS_PROBABILITY_THRESHOLD

    def test_turned_away(self):
        assert self.module.unfocus_score(self.landmarks(nose=(0.7, 0.3))) == 1.0

    def test_side_on(self):
        score = self.module.unfocus_score(self.landmarks(nose=(0.5, 0.3), left=(0.5, 0.6), right=(0.5, 0.6)))
        assert score == 1.0
