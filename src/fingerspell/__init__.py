"""Fingerspell - debounced fingerspelling transcription from hand landmarks."""

__version__ = "0.1.0"

from fingerspell.geometry import Finger, HandLandmark, distance, is_extended, to_hand
from fingerspell.classifier import GestureClassifier, Symbol, ClassifierThresholds, LetterRule
from fingerspell.tracker import StabilityTracker, ClassifierState, TrackerStatus, TrackerUpdate
from fingerspell.pipeline import TranscriptionPipeline, FrameResult
from fingerspell.recorder import SessionLog, LoggedFrame
from fingerspell.config import FingerspellConfig, load_config
