"""Draw hand skeletons and transcription status onto video frames."""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from fingerspell.pipeline import FrameResult

# Bone pairs of the 21-point hand model
HAND_CONNECTIONS = (
    (0, 1), (1, 2), (2, 3), (3, 4),
    (0, 5), (5, 6), (6, 7), (7, 8),
    (5, 9), (9, 10), (10, 11), (11, 12),
    (9, 13), (13, 14), (14, 15), (15, 16),
    (13, 17), (17, 18), (18, 19), (19, 20),
    (0, 17),
)

CONNECTOR_COLOR = (0, 255, 0)  # BGR
POINT_COLOR = (0, 0, 255)
TEXT_COLOR = (255, 255, 255)
SIGN_COLOR = (0, 255, 255)


def mirror(frame: np.ndarray) -> np.ndarray:
    """Flip horizontally so the view behaves like a mirror."""
    return cv2.flip(frame, 1)


def _to_pixels(hand: np.ndarray, width: int, height: int, mirrored: bool) -> list[tuple[int, int]]:
    points = []
    for x, y, _z in hand:
        if mirrored:
            x = 1.0 - x
        points.append((int(x * width), int(y * height)))
    return points


def draw_hand(frame: np.ndarray, hand: np.ndarray, mirrored: bool = False) -> np.ndarray:
    """Draw the landmark skeleton of one hand in place.

    Set ``mirrored`` when the frame was flipped with ``mirror`` after the
    landmarks were detected.
    """
    h, w = frame.shape[:2]
    points = _to_pixels(hand, w, h, mirrored)

    for a, b in HAND_CONNECTIONS:
        cv2.line(frame, points[a], points[b], CONNECTOR_COLOR, 5)
    for p in points:
        cv2.circle(frame, p, 4, POINT_COLOR, -1)

    return frame


def draw_result(
    frame: np.ndarray,
    result: Optional[FrameResult],
    hands: Optional[list[np.ndarray]] = None,
    mirrored: bool = False,
) -> np.ndarray:
    """Draw every detected hand plus the sign, status and transcript."""
    for hand in hands or []:
        draw_hand(frame, hand, mirrored=mirrored)

    if result is None:
        return frame

    h = frame.shape[0]
    cv2.putText(
        frame, result.symbol.value, (20, 80),
        cv2.FONT_HERSHEY_SIMPLEX, 2.5, SIGN_COLOR, 4,
    )
    cv2.putText(
        frame, result.status_text, (20, h - 60),
        cv2.FONT_HERSHEY_SIMPLEX, 0.7, TEXT_COLOR, 2,
    )
    cv2.putText(
        frame, f"Text: {result.transcript}", (20, h - 25),
        cv2.FONT_HERSHEY_SIMPLEX, 0.9, SIGN_COLOR, 2,
    )
    return frame
