"""Hand landmark extraction using MediaPipe."""

from __future__ import annotations

from typing import Optional

import numpy as np

try:
    import mediapipe as mp
except ImportError:
    mp = None

from fingerspell.config import DetectorConfig
from fingerspell.geometry import to_hand


class HandDetector:
    """Extracts 21 3D hand landmarks per hand using MediaPipe Hands.

    Landmarks are returned exactly as MediaPipe reports them: x and y
    normalized to the image size, z relative depth. They are not
    re-centred or rescaled because the letter rules are tuned on
    image-normalized coordinates.
    """

    def __init__(self, config: Optional[DetectorConfig] = None, static_image_mode: bool = False):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install mediapipe"
            )

        self.config = config or DetectorConfig()
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=static_image_mode,
            max_num_hands=self.config.max_hands,
            model_complexity=self.config.model_complexity,
            min_detection_confidence=self.config.min_detection_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )

    def detect(self, frame_rgb: np.ndarray) -> list[np.ndarray]:
        """Detect hands in an RGB frame.

        Args:
            frame_rgb: RGB image as numpy array (H, W, 3), uint8.

        Returns:
            List of landmark arrays, each shape (21, 3), in detection order.
            Empty list if no hands detected.
        """
        results = self._hands.process(frame_rgb)

        if not results.multi_hand_landmarks:
            return []

        hands = []
        for hand_landmarks in results.multi_hand_landmarks:
            hand = to_hand(hand_landmarks)
            if hand is not None:
                hands.append(hand)

        return hands

    def close(self):
        """Release MediaPipe resources."""
        self._hands.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
