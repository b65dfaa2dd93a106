"""Unfocused dwell-time accounting."""

import logging
import math
import time
from enum import Enum
from typing import Callable, Optional, Sequence

import config
from camera import unfocused_probability
from camera.base_classifier import ClassificationSample
from errors import MissingClassError
from tracking.session import SessionState

logger = logging.getLogger(__name__)


class DwellVerdict(str, Enum):
    """Outcome of one observation."""
    FOCUSED = "focused"
    UNFOCUSED = "unfocused"
    WARNING = "warning"
    TERMINATE = "terminate"


class UnfocusAccumulator:
    """
    Tracks how long the subject has continuously been classified as unfocused.

    Dwell is measured from the first unfocused observation (duration based,
    so missed frames do not slow it down). Any single focused observation
    resets it to zero immediately; there is no smoothing.

    Missing data (feed returned None) counts as focused. A result without
    the unfocused class raises MissingClassError from observe(); callers
    treat that as focused too.
    """

    def __init__(
        self,
        probability_threshold: float = config.UNFOCUS_PROBABILITY_THRESHOLD,
        warning_seconds: int = config.WARNING_THRESHOLD_SECONDS,
        terminate_seconds: int = config.TERMINATE_THRESHOLD_SECONDS,
        unfocused_label: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            probability_threshold: Unfocused probability at or above which a frame is unfocused
            warning_seconds: Dwell at which the warning turns on
            terminate_seconds: Dwell at which the session is auto-stopped
            unfocused_label: Label of the unfocused class (defaults to config.UNFOCUSED_LABEL)
            clock: Monotonic time source in seconds
        """
        if terminate_seconds <= warning_seconds:
            raise ValueError("terminate_seconds must be greater than warning_seconds")

        self.probability_threshold = probability_threshold
        self.warning_seconds = warning_seconds
        self.terminate_seconds = terminate_seconds
        self.unfocused_label = unfocused_label or config.UNFOCUSED_LABEL
        self.clock = clock

        self._dwell_start: Optional[float] = None

    @property
    def dwell_start(self) -> Optional[float]:
        return self._dwell_start

    def reset(self) -> None:
        """Forget any dwell in progress."""
        self._dwell_start = None

    def observe(
        self,
        samples: Optional[Sequence[ClassificationSample]],
        state: SessionState
    ) -> DwellVerdict:
        """
        Apply one frame's samples to the session state.

        Updates state.unfocused_seconds and state.warning.

        Args:
            samples: Samples for the frame, or None if the feed had no result
            state: The running session's state

        Returns:
            The resulting verdict; TERMINATE means the session must be auto-stopped

        Raises:
            MissingClassError: the unfocused class is absent. The dwell has
                already been reset as for a focused frame when this is raised.
        """
        try:
            probability = unfocused_probability(samples, self.unfocused_label)
        except MissingClassError:
            self._mark_focused(state)
            raise

        if probability is None or probability < self.probability_threshold:
            return self._mark_focused(state)

        now = self.clock()
        if self._dwell_start is None:
            self._dwell_start = now
            logger.debug("Started tracking unfocused time")

        state.unfocused_seconds = max(0, math.floor(now - self._dwell_start))
        return self._apply_thresholds(state)

    def _mark_focused(self, state: SessionState) -> DwellVerdict:
        if self._dwell_start is not None:
            logger.debug("Subject refocused - resetting unfocused time")
        self._dwell_start = None
        state.unfocused_seconds = 0
        state.warning = False
        return DwellVerdict.FOCUSED

    def _apply_thresholds(self, state: SessionState) -> DwellVerdict:
        dwell = state.unfocused_seconds

        if dwell >= self.terminate_seconds:
            state.warning = False
            logger.info(f"Unfocused for {dwell} seconds - ending session")
            return DwellVerdict.TERMINATE

        if dwell >= self.warning_seconds:
            if not state.warning:
                logger.info(f"Warning: unfocused for {dwell} seconds")
            state.warning = True
            return DwellVerdict.WARNING

        state.warning = False
        return DwellVerdict.UNFOCUSED
