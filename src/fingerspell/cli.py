"""Fingerspell CLI — the main entry point for all operations.

Usage:
    fingerspell live       — Transcribe signs from the webcam with an overlay
    fingerspell record     — Transcribe from the camera and save a session log
    fingerspell replay     — Re-run a session log through the pipeline
    fingerspell classify   — Classify landmarks stored in a JSON file
    fingerspell serve      — Start the WebSocket server
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional

try:
    import typer
except ImportError:
    raise ImportError("typer is required for CLI. Install with: pip install typer")

from fingerspell.classifier import GestureClassifier
from fingerspell.config import FingerspellConfig, load_config
from fingerspell.pipeline import FrameResult, TranscriptionPipeline
from fingerspell.tracker import StabilityTracker

app = typer.Typer(
    name="fingerspell",
    help="Fingerspelling transcription from hand landmarks.",
    add_completion=False,
)


def _config(ctx: typer.Context) -> FingerspellConfig:
    return ctx.obj if isinstance(ctx.obj, FingerspellConfig) else FingerspellConfig()


def _build_pipeline(config: FingerspellConfig, detector=None) -> TranscriptionPipeline:
    return TranscriptionPipeline(
        classifier=GestureClassifier(config.classifier),
        tracker=StabilityTracker(config.tracker.commit_threshold),
        detector=detector,
    )


def _open_camera(config: FingerspellConfig):
    import cv2

    cap = cv2.VideoCapture(config.camera.index)
    if not cap.isOpened():
        typer.echo(f"❌ Could not open camera {config.camera.index}", err=True)
        raise typer.Exit(1)
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, config.camera.width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, config.camera.height)
    return cap


@app.callback()
def main_options(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Fingerspelling transcription from hand landmarks."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if config is not None and not config.exists():
        typer.echo(f"❌ Config file not found: {config}", err=True)
        raise typer.Exit(1)

    try:
        ctx.obj = load_config(config)
    except ValueError as e:
        typer.echo(f"❌ Invalid config: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def live(ctx: typer.Context):
    """Transcribe signs from the webcam. Press 'c' to clear, 'q' to quit."""
    import cv2
    from fingerspell.detector import HandDetector
    from fingerspell.overlay import draw_result, mirror

    config = _config(ctx)
    cap = _open_camera(config)

    def on_commit(result: FrameResult):
        typer.echo(f"   ✍️  {result.committed.value} → {result.transcript}")

    typer.echo("🎥 Show a sign to the camera. Press 'c' to clear, 'q' to quit.")

    try:
        with _build_pipeline(config, HandDetector(config.detector)) as pipeline:
            pipeline.on_commit(on_commit)

            while True:
                ret, frame = cap.read()
                if not ret:
                    break

                frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                hands = pipeline.detector.detect(frame_rgb)
                result = pipeline.process_landmarks(hands)

                if config.camera.mirror:
                    frame = mirror(frame)
                draw_result(frame, result, hands, mirrored=config.camera.mirror)
                cv2.imshow("Fingerspell", frame)

                key = cv2.waitKey(1) & 0xFF
                if key == ord("q"):
                    break
                if key == ord("c"):
                    pipeline.reset()
                    typer.echo("🧹 Translation cleared.")

            transcript = pipeline.transcript
    finally:
        cap.release()
        cv2.destroyAllWindows()

    typer.echo(f"\n📝 Transcript: {transcript}")


@app.command()
def record(
    ctx: typer.Context,
    output: str = typer.Option("session.json", "-o", help="Output file path"),
    duration: float = typer.Option(0, help="Recording duration in seconds (0 = until Ctrl+C)"),
    compact: bool = typer.Option(False, help="Save in compact .npz format"),
):
    """Transcribe from the camera and log every frame for later replay."""
    import cv2
    from fingerspell.detector import HandDetector
    from fingerspell.recorder import SessionLog

    config = _config(ctx)
    cap = _open_camera(config)
    pipeline = _build_pipeline(config, HandDetector(config.detector))
    log = SessionLog(commit_threshold=pipeline.tracker.threshold)

    def on_commit(result: FrameResult):
        typer.echo(f"\n   ✍️  {result.committed.value} → {result.transcript}")

    pipeline.on_commit(on_commit)

    typer.echo(f"🎥 Logging from camera {config.camera.index}...")
    typer.echo("   Press Ctrl+C to stop")

    start = time.monotonic()
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                continue

            hands = pipeline.detector.detect(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
            result = pipeline.process_landmarks(hands)
            log.log(result, hands)

            if len(log) % 30 == 0:
                typer.echo(f"\r   Frames: {len(log)} | {result.status_text}", nl=False)

            if duration > 0 and (time.monotonic() - start) >= duration:
                break
    except KeyboardInterrupt:
        pass
    finally:
        cap.release()
        pipeline.close()

    typer.echo(f"\n\n📼 Logged {len(log)} frames ({log.duration:.1f}s), transcript: {log.transcript!r}")
    path = log.save_compact(output) if compact else log.save(output)
    typer.echo(f"💾 Saved to: {path}")


@app.command()
def replay(
    ctx: typer.Context,
    recording: str = typer.Argument(..., help="Path to a session log"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier for --realtime"),
    realtime: bool = typer.Option(False, help="Pace frames at their logged timing"),
    verbose: bool = typer.Option(False, "-v", help="Print every sign change and classification mismatch"),
):
    """Run a session log through the transcription pipeline."""
    from fingerspell.recorder import SessionLog
    from fingerspell.tracker import TrackerStatus

    if speed <= 0:
        typer.echo(f"❌ --speed must be positive, got {speed}", err=True)
        raise typer.Exit(1)

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Session log not found: {recording}", err=True)
        raise typer.Exit(1)

    try:
        log = SessionLog.load(path)
    except (ValueError, KeyError, json.JSONDecodeError) as e:
        typer.echo(f"❌ Could not read session log: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"▶️  Replaying {path.name} ({len(log)} frames, {log.duration:.1f}s)")

    config = _config(ctx)
    pipeline = _build_pipeline(config)

    def on_commit(result: FrameResult):
        typer.echo(f"   ✍️  {result.committed.value} at {result.timestamp:.2f}s → {result.transcript}")

    pipeline.on_commit(on_commit)

    for _, result in log.replay(pipeline, speed=speed if realtime else None):
        if verbose and result.status is TrackerStatus.CHANGED:
            typer.echo(f"   → {result.status_text}")

    mismatches = log.audit(pipeline.classifier)
    if mismatches:
        typer.echo(f"\n⚠️  {len(mismatches)} frames classify differently than when logged")
        if verbose:
            for m in mismatches:
                typer.echo(f"   frame {m.index} at {m.timestamp:.2f}s: {m.logged.value} → {m.reclassified.value}")

    typer.echo(f"\n✅ Replay complete. {pipeline.total_commits} letters typed.")
    if pipeline.transcript != log.transcript:
        typer.echo(f"📼 Logged transcript: {log.transcript}")
    typer.echo(f"📝 Transcript: {pipeline.transcript}")


@app.command()
def classify(
    ctx: typer.Context,
    landmarks_file: str = typer.Argument(..., help="JSON file with a 21x3 landmark array or {'hands': [...]}"),
    explain: bool = typer.Option(False, help="Show measurements and every matching rule"),
):
    """Classify the first hand stored in a JSON landmark file."""
    path = Path(landmarks_file)
    if not path.exists():
        typer.echo(f"❌ File not found: {landmarks_file}", err=True)
        raise typer.Exit(1)

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        typer.echo(f"❌ Invalid JSON: {e}", err=True)
        raise typer.Exit(1)

    if isinstance(data, dict):
        hands = data.get("hands") or []
        landmarks = hands[0] if hands else None
    else:
        landmarks = data

    classifier = GestureClassifier(_config(ctx).classifier)
    symbol, rule = classifier.classify_with_rule(landmarks)
    typer.echo(symbol.value)

    if explain:
        measurements = classifier.measure(landmarks)
        if measurements is None:
            typer.echo("   (no usable hand)")
            return
        for name, value in vars(measurements).items():
            typer.echo(f"   {name:15s} {value}")
        matching = [r.symbol.value for r in classifier.matching_rules(landmarks)]
        typer.echo(f"   matching rules: {', '.join(matching) or 'none'}")
        if rule is not None:
            typer.echo(f"   winner: {rule.symbol.value} ({rule.description})")


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, help="Bind address (default from config)"),
    port: Optional[int] = typer.Option(None, help="Port (default from config)"),
    log_level: str = typer.Option("info", "--server-log-level", help="Uvicorn log level"),
):
    """Start the WebSocket transcription server."""
    import uvicorn
    from fingerspell.server import app as fastapi_app, state

    config = _config(ctx)
    state.configure(config)

    host = host or config.server.host
    port = port or config.server.port
    typer.echo(f"🚀 Starting Fingerspell server on {host}:{port}")
    uvicorn.run(fastapi_app, host=host, port=port, log_level=log_level)


def main():
    app()


if __name__ == "__main__":
    main()
