"""Progress reporting for long-running recognition work."""

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class RecognitionProgress:
    """A processing stage label and the completed fraction (0.0 to 1.0)."""

    stage: str
    fraction: float


ProgressCallback = Callable[[RecognitionProgress], None]


class ProgressReporter:
    """Forwards progress to an optional callback, never letting the fraction drop.

    Args:
        callback: Receiver of progress updates, or ``None`` to discard them.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self._fraction = 0.0

    @property
    def fraction(self) -> float:
        return self._fraction

    def report(self, stage: str, fraction: float) -> None:
        fraction = min(1.0, max(self._fraction, fraction))
        self._fraction = fraction
        if self._callback is not None:
            self._callback(RecognitionProgress(stage=stage, fraction=fraction))
