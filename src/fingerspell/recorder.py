"""Transcription session logs.

A session log keeps, for every processed frame, the landmarks that went
into the pipeline and what came out: the letter, the debounce status and
any commit. Logs can be replayed through a fresh pipeline to reproduce a
transcript without a camera, and audited against a classifier to find
the frames whose letter changes under new thresholds.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

import numpy as np

from fingerspell.classifier import GestureClassifier, Symbol
from fingerspell.geometry import LANDMARK_DIM, NUM_LANDMARKS
from fingerspell.pipeline import FrameResult, TranscriptionPipeline
from fingerspell.tracker import STABILITY_THRESHOLD, TrackerStatus

logger = logging.getLogger("fingerspell.recorder")

FORMAT_VERSION = 2


@dataclass(frozen=True)
class LoggedFrame:
    """One processed frame: its input hands and the pipeline's verdict."""
    timestamp: float  # seconds since the first logged frame
    hands: tuple  # (21, 3) float arrays in detection order
    symbol: Symbol
    status: TrackerStatus
    committed: Optional[Symbol] = None

    def to_json(self) -> dict:
        return {
            "t": round(self.timestamp, 4),
            "hands": [np.asarray(h).tolist() for h in self.hands],
            "symbol": self.symbol.value,
            "status": self.status.value,
            "committed": self.committed.value if self.committed else None,
        }

    @classmethod
    def from_json(cls, data: dict) -> LoggedFrame:
        committed = data.get("committed")
        return cls(
            timestamp=float(data["t"]),
            hands=tuple(np.asarray(h, dtype=np.float64) for h in data["hands"]),
            symbol=Symbol(data["symbol"]),
            status=TrackerStatus(data["status"]),
            committed=Symbol(committed) if committed else None,
        )


@dataclass(frozen=True)
class Mismatch:
    """A logged frame whose first hand now classifies differently."""
    index: int
    timestamp: float
    logged: Symbol
    reclassified: Symbol


class SessionLog:
    """Per-frame record of a transcription session.

    Usage:
        log = SessionLog(commit_threshold=pipeline.tracker.threshold)
        for hands in frames:
            log.log(pipeline.process_landmarks(hands), hands)
        log.save("session.json")

        # Later, offline:
        log = SessionLog.load("session.json")
        for frame, result in log.replay(TranscriptionPipeline()):
            ...
    """

    def __init__(
        self,
        frames: Sequence[LoggedFrame] = (),
        commit_threshold: int = STABILITY_THRESHOLD,
    ):
        self._frames = list(frames)
        self.commit_threshold = commit_threshold
        self._origin: Optional[float] = None

    def log(self, result: FrameResult, hands: Optional[list[Any]]) -> LoggedFrame:
        """Append the outcome of one ``process_landmarks`` call."""
        if self._origin is None:
            self._origin = result.timestamp - self.duration

        frame = LoggedFrame(
            timestamp=result.timestamp - self._origin,
            hands=tuple(np.array(h, dtype=np.float64) for h in (hands or [])),
            symbol=result.symbol,
            status=result.status,
            committed=result.committed,
        )
        self._frames.append(frame)
        return frame

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[LoggedFrame]:
        return iter(self._frames)

    def __getitem__(self, index: int) -> LoggedFrame:
        return self._frames[index]

    @property
    def duration(self) -> float:
        return self._frames[-1].timestamp if self._frames else 0.0

    @property
    def commits(self) -> list[LoggedFrame]:
        return [f for f in self._frames if f.committed is not None]

    @property
    def transcript(self) -> str:
        """Letters committed while the session was logged."""
        return "".join(f.committed.value for f in self.commits)

    def replay(
        self,
        pipeline: TranscriptionPipeline,
        speed: Optional[float] = None,
    ) -> Iterator[tuple[LoggedFrame, FrameResult]]:
        """Feed every logged frame to ``pipeline``.

        With ``speed`` set, frames are paced at their logged timing scaled
        by ``speed``; otherwise they are delivered as fast as possible.
        """
        if speed is not None and speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        return self._replay(pipeline, speed)

    def _replay(self, pipeline: TranscriptionPipeline, speed: Optional[float]):
        start = time.monotonic()
        for frame in self._frames:
            if speed is not None:
                wait = frame.timestamp / speed - (time.monotonic() - start)
                if wait > 0:
                    time.sleep(wait)
            yield frame, pipeline.process_landmarks(list(frame.hands), timestamp=frame.timestamp)

    def audit(self, classifier: GestureClassifier) -> list[Mismatch]:
        """Frames whose first hand ``classifier`` labels differently than logged."""
        mismatches = []
        for i, frame in enumerate(self._frames):
            current = classifier.classify(frame.hands[0]) if frame.hands else Symbol.UNKNOWN
            if current is not frame.symbol:
                mismatches.append(Mismatch(i, frame.timestamp, frame.symbol, current))
        return mismatches

    # --- persistence ---

    def save(self, path: str | Path) -> Path:
        """Write the log as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "commit_threshold": self.commit_threshold,
            "transcript": self.transcript,
            "duration": self.duration,
            "frames": [f.to_json() for f in self._frames],
        }
        with open(path, "w") as f:
            json.dump(data, f)

        logger.info("Saved %d frames (%d commits) to %s", len(self), len(self.commits), path)
        return path

    def save_compact(self, path: str | Path) -> Path:
        """Write the log as a compressed ``.npz``; hands are zero-padded per frame."""
        path = Path(path).with_suffix(".npz")
        path.parent.mkdir(parents=True, exist_ok=True)

        n = len(self._frames)
        width = max([len(f.hands) for f in self._frames] + [1])
        hands = np.zeros((n, width, NUM_LANDMARKS, LANDMARK_DIM), dtype=np.float32)
        for i, frame in enumerate(self._frames):
            for j, hand in enumerate(frame.hands):
                hands[i, j] = hand

        np.savez_compressed(
            path,
            version=np.int32(FORMAT_VERSION),
            commit_threshold=np.int32(self.commit_threshold),
            timestamps=np.array([f.timestamp for f in self._frames], dtype=np.float64),
            hands=hands,
            hand_counts=np.array([len(f.hands) for f in self._frames], dtype=np.int32),
            symbols=np.array([f.symbol.value for f in self._frames], dtype="<U1"),
            statuses=np.array([f.status.value for f in self._frames], dtype="<U9"),
            committed=np.array([f.committed.value if f.committed else "" for f in self._frames], dtype="<U1"),
        )

        logger.info("Saved %d frames (%d commits) to %s", n, len(self.commits), path)
        return path

    @classmethod
    def load(cls, path: str | Path) -> SessionLog:
        """Read a log written by ``save`` or ``save_compact``."""
        path = Path(path)
        if path.suffix == ".npz":
            return cls._load_compact(path)

        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path} is not a session log")

        _check_version(data.get("version"), path)
        frames = [LoggedFrame.from_json(f) for f in data["frames"]]
        return cls(frames, commit_threshold=int(data.get("commit_threshold", STABILITY_THRESHOLD)))

    @classmethod
    def _load_compact(cls, path: Path) -> SessionLog:
        with np.load(path, allow_pickle=False) as npz:
            data = {key: npz[key] for key in npz.files}

        _check_version(int(data["version"]), path)
        hands, counts = data["hands"], data["hand_counts"]
        frames = [
            LoggedFrame(
                timestamp=float(t),
                hands=tuple(hands[i, j].astype(np.float64) for j in range(int(counts[i]))),
                symbol=Symbol(str(data["symbols"][i])),
                status=TrackerStatus(str(data["statuses"][i])),
                committed=Symbol(str(data["committed"][i])) if data["committed"][i] else None,
            )
            for i, t in enumerate(data["timestamps"])
        ]
        return cls(frames, commit_threshold=int(data["commit_threshold"]))


def _check_version(version, path: Path):
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported session log version {version!r} in {path}")
