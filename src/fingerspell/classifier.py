"""Letter classification from hand landmark geometry.

Each frame is measured once, then an ordered list of rules is evaluated
and the first rule that matches names the letter. Order matters: later
rules assume every earlier rule failed (A is only reached once C's
stricter geometry has been ruled out).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import numpy as np

from fingerspell.geometry import HandLandmark, Finger, distance, finger_states, to_hand


class Symbol(Enum):
    """Closed alphabet of recognizable signs."""
    A = "A"
    B = "B"
    C = "C"
    F = "F"
    L = "L"
    UNKNOWN = "?"  # no confident match, not "no hand"

    @property
    def is_letter(self) -> bool:
        return self is not Symbol.UNKNOWN


@dataclass(frozen=True)
class ClassifierThresholds:
    """Empirically tuned constants. Change only when recalibrating."""
    thumb_extension_ratio: float = 1.5
    # Absolute distance, unlike every other threshold here which scales
    # with hand size.
    pinch_max: float = 0.08
    b_thumb_tuck_max: float = 0.25
    c_tip_spread_min: float = 0.5
    c_thumb_tuck_min: float = 0.15


@dataclass(frozen=True)
class HandMeasurements:
    """Everything the rules look at, computed once per frame."""
    thumb: bool
    index: bool
    middle: bool
    ring: bool
    pinky: bool
    hand_size: float       # wrist → pinky MCP, the per-frame unit length
    tip_spread: float      # index tip → pinky tip
    pinch_distance: float  # thumb tip → index tip
    thumb_tuck: float      # thumb tip → index MCP

    @property
    def four_extended(self) -> bool:
        return self.index and self.middle and self.ring and self.pinky

    @property
    def all_curled(self) -> bool:
        return not (self.index or self.middle or self.ring or self.pinky)

    @classmethod
    def from_hand(cls, hand: np.ndarray, thumb_ratio: float = 1.5) -> HandMeasurements:
        states = finger_states(hand, thumb_ratio)
        return cls(
            thumb=states[Finger.THUMB],
            index=states[Finger.INDEX],
            middle=states[Finger.MIDDLE],
            ring=states[Finger.RING],
            pinky=states[Finger.PINKY],
            hand_size=distance(hand[HandLandmark.WRIST], hand[HandLandmark.PINKY_MCP]),
            tip_spread=distance(hand[HandLandmark.INDEX_TIP], hand[HandLandmark.PINKY_TIP]),
            pinch_distance=distance(hand[HandLandmark.THUMB_TIP], hand[HandLandmark.INDEX_TIP]),
            thumb_tuck=distance(hand[HandLandmark.THUMB_TIP], hand[HandLandmark.INDEX_MCP]),
        )


Predicate = Callable[[HandMeasurements, ClassifierThresholds], bool]


@dataclass(frozen=True)
class LetterRule:
    """A guarded rule: ``symbol`` is produced when ``predicate`` holds."""
    symbol: Symbol
    predicate: Predicate
    description: str = ""

    def matches(self, m: HandMeasurements, t: ClassifierThresholds) -> bool:
        return self.predicate(m, t)


def _is_l(m: HandMeasurements, t: ClassifierThresholds) -> bool:
    return m.thumb and m.index and not (m.middle or m.ring or m.pinky)


def _is_f(m: HandMeasurements, t: ClassifierThresholds) -> bool:
    return m.pinch_distance < t.pinch_max and m.middle and m.ring and m.pinky


def _is_b(m: HandMeasurements, t: ClassifierThresholds) -> bool:
    return m.four_extended and m.thumb_tuck < m.hand_size * t.b_thumb_tuck_max


def _is_c(m: HandMeasurements, t: ClassifierThresholds) -> bool:
    return (
        m.all_curled
        and m.tip_spread > m.hand_size * t.c_tip_spread_min
        and m.thumb_tuck > m.hand_size * t.c_thumb_tuck_min
    )


def _is_a(m: HandMeasurements, t: ClassifierThresholds) -> bool:
    return m.all_curled


LETTER_RULES: tuple[LetterRule, ...] = (
    LetterRule(Symbol.L, _is_l, "thumb and index extended, others curled"),
    LetterRule(Symbol.F, _is_f, "thumb-index pinch, middle/ring/pinky extended"),
    LetterRule(Symbol.B, _is_b, "flat hand, thumb tucked against index base"),
    LetterRule(Symbol.C, _is_c, "curled arc with wide tips and open thumb"),
    LetterRule(Symbol.A, _is_a, "closed fist"),
)


class GestureClassifier:
    """Maps one frame's hand landmarks to a letter.

    ``classify`` never raises: no hand or malformed landmarks classify as
    ``Symbol.UNKNOWN``.
    """

    def __init__(
        self,
        thresholds: Optional[ClassifierThresholds] = None,
        rules: tuple[LetterRule, ...] = LETTER_RULES,
    ):
        self.thresholds = thresholds or ClassifierThresholds()
        self.rules = rules

    def measure(self, landmarks: Any) -> Optional[HandMeasurements]:
        """Measure a hand, or None if the landmarks are unusable."""
        hand = to_hand(landmarks)
        if hand is None:
            return None
        return HandMeasurements.from_hand(hand, self.thresholds.thumb_extension_ratio)

    def classify_with_rule(self, landmarks: Any) -> tuple[Symbol, Optional[LetterRule]]:
        """Classify and also return the rule that fired (None for UNKNOWN)."""
        m = self.measure(landmarks)
        if m is None:
            return Symbol.UNKNOWN, None

        for rule in self.rules:
            if rule.matches(m, self.thresholds):
                return rule.symbol, rule
        return Symbol.UNKNOWN, None

    def classify(self, landmarks: Any) -> Symbol:
        """Classify one hand. First matching rule wins."""
        return self.classify_with_rule(landmarks)[0]

    def matching_rules(self, landmarks: Any) -> list[LetterRule]:
        """Every rule whose guard holds, in evaluation order.

        Useful when tuning thresholds: more than one entry means the
        earlier rule shadows the later ones for this pose.
        """
        m = self.measure(landmarks)
        if m is None:
            return []
        return [rule for rule in self.rules if rule.matches(m, self.thresholds)]
