"""Landmark geometry: indices, finger chains and extension tests."""

from __future__ import annotations

import logging
from enum import Enum, IntEnum
from typing import Any, Optional

import numpy as np

logger = logging.getLogger("fingerspell.geometry")

NUM_LANDMARKS = 21
LANDMARK_DIM = 3  # x, y, z


class HandLandmark(IntEnum):
    """MediaPipe hand landmark indices."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class Finger(Enum):
    """A finger as its chain of four landmarks, base to tip.

    The thumb chain is (CMC, MCP, IP, TIP); every other finger is
    (MCP, PIP, DIP, TIP).
    """
    THUMB = (1, 2, 3, 4)
    INDEX = (5, 6, 7, 8)
    MIDDLE = (9, 10, 11, 12)
    RING = (13, 14, 15, 16)
    PINKY = (17, 18, 19, 20)

    @property
    def base(self) -> int:
        return self.value[0]

    @property
    def second(self) -> int:
        return self.value[1]

    @property
    def tip(self) -> int:
        return self.value[3]


NON_THUMB_FINGERS = (Finger.INDEX, Finger.MIDDLE, Finger.RING, Finger.PINKY)


def distance(p1, p2) -> float:
    """Euclidean distance between two 3D points."""
    a = np.asarray(p1, dtype=np.float64)
    b = np.asarray(p2, dtype=np.float64)
    return float(np.linalg.norm(a - b))


def _point(item: Any) -> list[float]:
    if hasattr(item, "x") and hasattr(item, "y"):
        return [item.x, item.y, getattr(item, "z", 0.0)]
    return item


def to_hand(landmarks: Any) -> Optional[np.ndarray]:
    """Coerce detector output into a (21, 3) float array.

    Accepts numpy arrays, nested sequences, sequences of objects with
    ``x/y/z`` attributes and MediaPipe landmark lists. Returns None for
    anything that is not exactly 21 finite 3D points.
    """
    if landmarks is None:
        return None

    if hasattr(landmarks, "landmark"):
        landmarks = landmarks.landmark

    try:
        if isinstance(landmarks, np.ndarray):
            hand = landmarks.astype(np.float64)
        else:
            hand = np.array([_point(p) for p in landmarks], dtype=np.float64)
    except (TypeError, ValueError, OverflowError) as e:
        logger.debug("Rejected landmarks: %s", e)
        return None

    if hand.shape != (NUM_LANDMARKS, LANDMARK_DIM):
        logger.debug("Rejected landmarks with shape %s", hand.shape)
        return None

    if not np.all(np.isfinite(hand)):
        logger.debug("Rejected landmarks with non-finite coordinates")
        return None

    return hand


def is_extended(hand: np.ndarray, finger: Finger, thumb_ratio: float = 1.5) -> bool:
    """Check whether a finger is straightened.

    Thumb: the tip must be nearer the camera than the thumb MCP (smaller z)
    and the CMC-to-tip distance must exceed ``thumb_ratio`` times the
    CMC-to-MCP distance.

    Other fingers: the tip must sit above both the PIP and MCP joints in
    image space (y grows downward). x and z are ignored, so this is only
    an approximation for an upright hand facing the camera.
    """
    if finger is Finger.THUMB:
        cmc = hand[HandLandmark.THUMB_CMC]
        mcp = hand[HandLandmark.THUMB_MCP]
        tip = hand[HandLandmark.THUMB_TIP]
        tip_forward = tip[2] < mcp[2]
        return bool(distance(cmc, tip) > distance(cmc, mcp) * thumb_ratio and tip_forward)

    mcp = hand[finger.base]
    pip = hand[finger.second]
    tip = hand[finger.tip]
    return bool(tip[1] < pip[1] and tip[1] < mcp[1])


def finger_states(hand: np.ndarray, thumb_ratio: float = 1.5) -> dict[Finger, bool]:
    """Extension state of every finger."""
    return {finger: is_extended(hand, finger, thumb_ratio) for finger in Finger}
