"""Fingerspell configuration.

Settings are plain dataclasses with defaults matching the tuned values.
A YAML file may override any subset of them:

    classifier:
      pinch_max: 0.08
    tracker:
      commit_threshold: 20
    camera:
      index: 1
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Optional

import yaml

from fingerspell.classifier import ClassifierThresholds
from fingerspell.tracker import STABILITY_THRESHOLD

logger = logging.getLogger("fingerspell.config")


@dataclass
class TrackerConfig:
    commit_threshold: int = STABILITY_THRESHOLD


@dataclass
class DetectorConfig:
    max_hands: int = 2
    model_complexity: int = 1
    min_detection_confidence: float = 0.7
    min_tracking_confidence: float = 0.7


@dataclass
class CameraConfig:
    index: int = 0
    width: int = 1280
    height: int = 720
    mirror: bool = True


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8765


@dataclass
class FingerspellConfig:
    classifier: ClassifierThresholds = field(default_factory=ClassifierThresholds)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def validate(self):
        """Raise ValueError for settings the pipeline cannot run with."""
        if self.tracker.commit_threshold < 1:
            raise ValueError("tracker.commit_threshold must be >= 1")
        if self.detector.max_hands < 1:
            raise ValueError("detector.max_hands must be >= 1")
        for name in ("min_detection_confidence", "min_tracking_confidence"):
            value = getattr(self.detector, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"detector.{name} must be within [0, 1], got {value}")
        for f in fields(self.classifier):
            if getattr(self.classifier, f.name) <= 0:
                raise ValueError(f"classifier.{f.name} must be positive")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> FingerspellConfig:
        config = cls()
        for section in fields(cls):
            values = data.get(section.name)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ValueError(f"Config section '{section.name}' must be a mapping")
            current = getattr(config, section.name)
            setattr(config, section.name, _build(type(current), values, section.name))

        unknown = set(data) - {f.name for f in fields(cls)}
        for key in sorted(unknown):
            logger.warning("Ignoring unknown config section '%s'", key)

        config.validate()
        return config


def _build(section_cls: type, values: dict[str, Any], section: str):
    known = {f.name for f in fields(section_cls)}
    for key in sorted(set(values) - known):
        logger.warning("Ignoring unknown config key '%s.%s'", section, key)

    defaults = section_cls()
    for key in known & set(values):
        _check_type(f"{section}.{key}", getattr(defaults, key), values[key])
    return section_cls(**{k: v for k, v in values.items() if k in known})


def _check_type(name: str, default: Any, value: Any):
    """Raise ValueError when ``value`` cannot stand in for ``default``."""
    if isinstance(default, bool):
        ok = isinstance(value, bool)
    elif isinstance(default, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif isinstance(default, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    else:
        ok = isinstance(value, type(default))
    if not ok:
        raise ValueError(f"{name} must be {type(default).__name__}, got {value!r}")


def load_config(path: Optional[str | Path] = None) -> FingerspellConfig:
    """Load configuration from a YAML file, or defaults when path is None."""
    if path is None:
        return FingerspellConfig()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    logger.info("Loaded config from %s", path)
    return FingerspellConfig.from_dict(data)


def save_config(config: FingerspellConfig, path: str | Path):
    """Write configuration to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
