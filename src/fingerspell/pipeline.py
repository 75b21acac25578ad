"""Per-frame transcription pipeline: hands → letter → debounced transcript."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np

from fingerspell.classifier import GestureClassifier, Symbol
from fingerspell.detector import HandDetector
from fingerspell.tracker import ClassifierState, StabilityTracker, TrackerStatus

logger = logging.getLogger("fingerspell.pipeline")


@dataclass
class FrameResult:
    """What the presentation layer needs for one frame.

    ``status`` is the tracker's status, which is ``NO_HAND`` whenever the
    letter is UNKNOWN, including frames with a hand that matched no rule.
    ``display_status`` tells the two apart for clients.
    """
    symbol: Symbol
    status: TrackerStatus
    committed: Optional[Symbol]
    transcript: str
    hands_detected: int
    run_length: int
    commit_threshold: int
    timestamp: float

    @property
    def status_text(self) -> str:
        """Human-readable status line for the current frame."""
        if self.hands_detected == 0:
            return "No Hand Detected. Please show your hand."
        if self.hands_detected > 1:
            return f"Warning: Detected {self.hands_detected} hands. Focusing on the first one."
        if self.status is TrackerStatus.COMMITTED:
            return f"Sign Committed: '{self.symbol.value}'"
        if self.status is TrackerStatus.CHANGED:
            return f"Sign changed to: {self.symbol.value}. Holding..."
        if self.status is TrackerStatus.HOLDING:
            return f"Holding {self.symbol.value} ({self.run_length}/{self.commit_threshold})"
        return "Sign not recognized."

    @property
    def display_status(self) -> str:
        if self.status is TrackerStatus.NO_HAND and self.hands_detected:
            return "unrecognized"
        return self.status.value

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol.value,
            "status": self.display_status,
            "status_text": self.status_text,
            "committed": self.committed.value if self.committed else None,
            "transcript": self.transcript,
            "hands_detected": self.hands_detected,
            "run_length": self.run_length,
            "commit_threshold": self.commit_threshold,
            "timestamp": self.timestamp,
        }


class TranscriptionPipeline:
    """Frame → detection → classification → debounce.

    Only the first detected hand is classified; extra hands are reported
    through ``FrameResult.hands_detected`` and otherwise ignored.

    Usage:
        pipeline = TranscriptionPipeline(detector=HandDetector())
        pipeline.on_commit(lambda r: print(r.committed))
        result = pipeline.process_frame(frame_rgb)
    """

    def __init__(
        self,
        classifier: Optional[GestureClassifier] = None,
        tracker: Optional[StabilityTracker] = None,
        detector: Optional[HandDetector] = None,
    ):
        self.classifier = classifier or GestureClassifier()
        self.tracker = tracker or StabilityTracker()
        self.detector = detector
        self._callbacks: list[Callable[[FrameResult], None]] = []
        self._total_frames = 0
        self._total_commits = 0

    def on_commit(self, callback: Callable[[FrameResult], None]):
        """Register a callback fired whenever a letter is typed."""
        self._callbacks.append(callback)

    def process_frame(self, frame_rgb: np.ndarray) -> FrameResult:
        """Detect hands in an RGB frame and process them."""
        if self.detector is None:
            raise RuntimeError("process_frame requires a HandDetector; use process_landmarks instead")
        hands = self.detector.detect(frame_rgb)
        return self.process_landmarks(hands)

    def process_landmarks(
        self,
        hands: Optional[list[Any]],
        timestamp: Optional[float] = None,
    ) -> FrameResult:
        """Process the hands detected in one frame.

        Args:
            hands: Landmark sets for this frame in detection order, or
                None / empty when no hand was seen.
            timestamp: Frame time; defaults to ``time.monotonic()``.
        """
        now = timestamp if timestamp is not None else time.monotonic()
        hands = list(hands) if hands is not None else []
        self._total_frames += 1

        if len(hands) > 1:
            logger.debug("%d hands detected, using the first", len(hands))

        symbol = self.classifier.classify(hands[0]) if hands else Symbol.UNKNOWN
        update = self.tracker.update(symbol)

        result = FrameResult(
            symbol=symbol,
            status=update.status,
            committed=update.committed,
            transcript=update.transcript,
            hands_detected=len(hands),
            run_length=update.run_length,
            commit_threshold=self.tracker.threshold,
            timestamp=now,
        )

        if update.committed is not None:
            self._total_commits += 1
            for cb in self._callbacks:
                cb(result)

        return result

    @property
    def transcript(self) -> str:
        return self.tracker.transcript

    @property
    def state(self) -> ClassifierState:
        return self.tracker.state

    @property
    def total_frames(self) -> int:
        return self._total_frames

    @property
    def total_commits(self) -> int:
        return self._total_commits

    def reset(self) -> ClassifierState:
        """Clear the transcript and debounce state."""
        return self.tracker.reset()

    def close(self):
        """Release the detector, if any."""
        if self.detector is not None:
            self.detector.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
