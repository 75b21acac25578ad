"""Tests for the command line entry points that need no camera."""

import json

import pytest
import yaml
from typer.testing import CliRunner

from fingerspell.classifier import ClassifierThresholds, GestureClassifier
from fingerspell.cli import app
from fingerspell.pipeline import TranscriptionPipeline
from fingerspell.recorder import SessionLog
from fingerspell.tracker import STABILITY_THRESHOLD, StabilityTracker
from handshapes import make_b, make_c, make_f, make_l

runner = CliRunner()


def write_session(path, hand_frames, threshold=STABILITY_THRESHOLD, classifier=None):
    pipeline = TranscriptionPipeline(classifier=classifier, tracker=StabilityTracker(threshold))
    log = SessionLog(commit_threshold=threshold)
    for i, hands in enumerate(hand_frames):
        log.log(pipeline.process_landmarks(hands, timestamp=i / 30), hands)
    return log.save(path)


class TestClassify:
    def test_bare_array(self, tmp_path):
        path = tmp_path / "l.json"
        path.write_text(json.dumps(make_l().tolist()))
        result = runner.invoke(app, ["classify", str(path)])
        assert result.exit_code == 0
        assert result.output.strip() == "L"

    def test_hands_object(self, tmp_path):
        path = tmp_path / "hands.json"
        path.write_text(json.dumps({"hands": [make_c().tolist(), make_l().tolist()]}))
        result = runner.invoke(app, ["classify", str(path)])
        assert result.output.strip() == "C"

    def test_empty_hands(self, tmp_path):
        path = tmp_path / "none.json"
        path.write_text(json.dumps({"hands": []}))
        result = runner.invoke(app, ["classify", str(path)])
        assert result.exit_code == 0
        assert result.output.strip() == "?"

    def test_explain(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps(make_c().tolist()))
        result = runner.invoke(app, ["classify", "--explain", str(path)])
        assert "matching rules: C, A" in result.output
        assert "hand_size" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["classify", str(tmp_path / "nope.json")])
        assert result.exit_code == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops")
        result = runner.invoke(app, ["classify", str(path)])
        assert result.exit_code == 1


class TestReplay:
    def test_replay_types_transcript(self, tmp_path):
        path = write_session(tmp_path / "session.json", [[make_c()]] * 21 + [[]] + [[make_b()]] * 21)
        result = runner.invoke(app, ["replay", str(path)])
        assert result.exit_code == 0
        assert "Transcript: CB" in result.output
        assert "2 letters typed" in result.output
        assert "Logged transcript" not in result.output
        assert "classify differently" not in result.output

    def test_replay_with_config_threshold(self, tmp_path):
        config = tmp_path / "config.yml"
        config.write_text(yaml.safe_dump({"tracker": {"commit_threshold": 5}}))
        path = write_session(tmp_path / "session.json", [[make_l()]] * 6)
        result = runner.invoke(app, ["--config", str(config), "replay", str(path)])
        assert result.exit_code == 0
        assert "Logged transcript: \n" in result.output
        assert "Transcript: L" in result.output

    def test_replay_reports_mismatches(self, tmp_path):
        strict = GestureClassifier(ClassifierThresholds(pinch_max=0.005))
        path = write_session(tmp_path / "session.json", [[make_f()]] * 4, classifier=strict)
        result = runner.invoke(app, ["replay", "-v", str(path)])
        assert result.exit_code == 0
        assert "4 frames classify differently" in result.output
        assert "frame 0 at 0.00s" in result.output

    def test_replay_compact(self, tmp_path):
        log = SessionLog.load(write_session(tmp_path / "session.json", [[make_b()]] * 21))
        path = log.save_compact(tmp_path / "session.npz")
        result = runner.invoke(app, ["replay", str(path)])
        assert result.exit_code == 0
        assert "Transcript: B" in result.output

    @pytest.mark.parametrize("speed", ["0", "-2"])
    def test_replay_rejects_non_positive_speed(self, tmp_path, speed):
        path = write_session(tmp_path / "session.json", [[make_l()]] * 3)
        result = runner.invoke(app, ["replay", "--realtime", "--speed", speed, str(path)])
        assert result.exit_code == 1
        assert "--speed must be positive" in result.output

    def test_replay_missing(self, tmp_path):
        result = runner.invoke(app, ["replay", str(tmp_path / "missing.json")])
        assert result.exit_code == 1

    @pytest.mark.parametrize("content", [
        json.dumps({"version": 2}),
        json.dumps({"version": 1, "frames": []}),
        "{oops",
    ])
    def test_replay_corrupt(self, tmp_path, content):
        path = tmp_path / "corrupt.json"
        path.write_text(content)
        result = runner.invoke(app, ["replay", str(path)])
        assert result.exit_code == 1


class TestConfigOption:
    def test_missing_config(self, tmp_path):
        path = tmp_path / "l.json"
        path.write_text(json.dumps(make_l().tolist()))
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.yml"), "classify", str(path)])
        assert result.exit_code == 1

    def test_invalid_config(self, tmp_path):
        config = tmp_path / "config.yml"
        config.write_text(yaml.safe_dump({"tracker": {"commit_threshold": 0}}))
        path = tmp_path / "l.json"
        path.write_text(json.dumps(make_l().tolist()))
        result = runner.invoke(app, ["--config", str(config), "classify", str(path)])
        assert result.exit_code == 1

    def test_non_numeric_config_value(self, tmp_path):
        config = tmp_path / "config.yml"
        config.write_text("tracker:\n  commit_threshold: fast\n")
        path = write_session(tmp_path / "session.json", [[make_l()]] * 3)
        result = runner.invoke(app, ["--config", str(config), "replay", str(path)])
        assert result.exit_code == 1
        assert "Invalid config" in result.output
