"""Focus session state."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from camera.base_classifier import ClassificationSample


class SessionPhase(str, Enum):
    """
    Lifecycle of a focus session.

    WARNING is a sub-state of RUNNING: the session is still active but the
    subject has been unfocused long enough to be warned.
    """
    IDLE = "idle"
    RUNNING = "running"
    WARNING = "warning"


@dataclass
class SessionState:
    """
    Mutable state of the single running session.

    elapsed_seconds only advances while active; warning is only set while
    active and the unfocused dwell is between the warning and termination
    thresholds.
    """
    active: bool = False
    elapsed_seconds: int = 0
    unfocused_seconds: int = 0
    warning: bool = False

    @property
    def phase(self) -> SessionPhase:
        if not self.active:
            return SessionPhase.IDLE
        if self.warning:
            return SessionPhase.WARNING
        return SessionPhase.RUNNING

    def begin(self) -> None:
        """Zero the counters and mark the session active."""
        self.reset()
        self.active = True

    def reset(self) -> None:
        """Return to the zeroed Idle form."""
        self.active = False
        self.elapsed_seconds = 0
        self.unfocused_seconds = 0
        self.warning = False


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the engine handed to the UI."""
    active: bool
    elapsed_seconds: int
    unfocused_seconds: int
    warning: bool
    feed_error: bool = False
    persistence_error: bool = False
    last_samples: Tuple[ClassificationSample, ...] = field(default_factory=tuple)

    @property
    def phase(self) -> SessionPhase:
        if not self.active:
            return SessionPhase.IDLE
        return SessionPhase.WARNING if self.warning else SessionPhase.RUNNING

    @classmethod
    def of(
        cls,
        state: SessionState,
        feed_error: bool = False,
        persistence_error: bool = False,
        last_samples: Optional[List[ClassificationSample]] = None
    ) -> "SessionSnapshot":
        return cls(
            active=state.active,
            elapsed_seconds=state.elapsed_seconds,
            unfocused_seconds=state.unfocused_seconds,
            warning=state.warning,
            feed_error=feed_error,
            persistence_error=persistence_error,
            last_samples=tuple(last_samples or ()),
        )
