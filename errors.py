"""Exceptions raised by the focus tracker's collaborators."""


class FocusTrackerError(Exception):
    """Base class for focus tracker errors."""


class FeedUnavailableError(FocusTrackerError):
    """Camera or classification model is not ready to produce samples."""


class MissingClassError(FeedUnavailableError):
    """
    A classification result did not contain the unfocused class.

    Handled exactly like an unavailable feed: the frame counts as focused.
    """

    def __init__(self, label: str, labels=None):
        self.label = label
        self.labels = list(labels or [])
        super().__init__(f"Class '{label}' missing from classification result {self.labels}")


class LedgerPersistenceError(FocusTrackerError):
    """Reading or writing the score ledger failed."""
