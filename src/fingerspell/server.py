"""WebSocket/REST service for landmark-to-letter transcription.

A browser (or any client running its own hand detector) streams one
message per video frame with the detected landmarks and gets the
classified letter, status and transcript back. Commits are broadcast to
every connected client. All clients share one transcription session.

Usage:
    python -m fingerspell.server
    # or
    uvicorn fingerspell.server:app --host 0.0.0.0 --port 8765

Client messages:
    {"type": "frame", "hands": [[[x, y, z], ... 21 points], ...]}
    {"type": "reset"}
    {"type": "ping"}
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Optional

try:
    from fastapi import FastAPI, WebSocket, WebSocketDisconnect
    _HAS_FASTAPI = True
except ImportError:
    _HAS_FASTAPI = False

if not _HAS_FASTAPI:
    raise ImportError("FastAPI required. Install with: pip install fastapi uvicorn")

from fingerspell import __version__
from fingerspell.classifier import GestureClassifier, Symbol
from fingerspell.config import FingerspellConfig
from fingerspell.pipeline import FrameResult, TranscriptionPipeline
from fingerspell.tracker import StabilityTracker

logger = logging.getLogger("fingerspell.server")

app = FastAPI(title="Fingerspell", version=__version__)


class ServerState:
    def __init__(self, config: Optional[FingerspellConfig] = None):
        self.clients: set[WebSocket] = set()
        self.lock = asyncio.Lock()
        self.configure(config or FingerspellConfig())

    def configure(self, config: FingerspellConfig):
        """Replace the session with a fresh one built from ``config``."""
        self.config = config
        self.pipeline = TranscriptionPipeline(
            classifier=GestureClassifier(config.classifier),
            tracker=StabilityTracker(config.tracker.commit_threshold),
        )
        self.last_result: Optional[FrameResult] = None


state = ServerState()


def _summary() -> dict:
    pipeline = state.pipeline
    return {
        "transcript": pipeline.transcript,
        "last_symbol": pipeline.state.last_symbol.value,
        "run_length": pipeline.state.run_length,
        "commit_threshold": pipeline.tracker.threshold,
        "frames": pipeline.total_frames,
        "commits": pipeline.total_commits,
        "clients": len(state.clients),
        "last_result": state.last_result.to_dict() if state.last_result else None,
    }


async def _reset() -> dict:
    async with state.lock:
        state.pipeline.reset()
        state.last_result = None
    return {"status": "cleared", "transcript": ""}


# --- API endpoints ---

@app.get("/api/status")
async def api_status():
    return _summary()


@app.get("/api/transcript")
async def api_transcript():
    return {"transcript": state.pipeline.transcript}


@app.get("/api/symbols")
async def api_symbols():
    return {
        "symbols": [rule.symbol.value for rule in state.pipeline.classifier.rules],
        "unknown": Symbol.UNKNOWN.value,
    }


@app.post("/api/reset")
async def api_reset():
    result = await _reset()
    await broadcast({"type": "reset", "transcript": ""})
    return result


# --- WebSocket ---

async def _handle_message(data: dict) -> Optional[dict]:
    kind = data.get("type")

    if kind == "frame":
        hands = data.get("hands") or []
        if not isinstance(hands, list):
            return {"type": "error", "message": "'hands' must be a list"}
        async with state.lock:
            result = state.pipeline.process_landmarks(hands, timestamp=data.get("timestamp"))
            state.last_result = result
        if result.committed is not None:
            await broadcast({
                "type": "commit",
                "symbol": result.committed.value,
                "transcript": result.transcript,
            })
        return {"type": "result", **result.to_dict()}

    if kind == "reset":
        await _reset()
        return {"type": "reset", "transcript": ""}

    if kind == "ping":
        return {"type": "pong", "server_time": time.time()}

    return {"type": "error", "message": f"Unknown message type: {kind!r}"}


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    state.clients.add(ws)
    logger.info("Client connected (%d total)", len(state.clients))

    try:
        await ws.send_json({
            "type": "connected",
            "symbols": [rule.symbol.value for rule in state.pipeline.classifier.rules],
            "commit_threshold": state.pipeline.tracker.threshold,
            "transcript": state.pipeline.transcript,
        })

        while True:
            try:
                msg = await asyncio.wait_for(ws.receive_text(), timeout=30)
            except asyncio.TimeoutError:
                await ws.send_json({"type": "ping"})
                continue

            try:
                data = json.loads(msg)
            except json.JSONDecodeError as e:
                await ws.send_json({"type": "error", "message": f"Invalid JSON: {e}"})
                continue

            if not isinstance(data, dict):
                await ws.send_json({"type": "error", "message": "Message must be a JSON object"})
                continue

            reply = await _handle_message(data)
            if reply is not None:
                await ws.send_json(reply)
    except WebSocketDisconnect:
        pass
    finally:
        state.clients.discard(ws)
        logger.info("Client disconnected (%d total)", len(state.clients))


async def broadcast(message: dict):
    """Send message to all connected clients."""
    if not state.clients:
        return
    dead = set()
    payload = json.dumps(message)
    for ws in list(state.clients):
        try:
            await ws.send_text(payload)
        except Exception as e:
            logger.debug("Dropping client after send failure: %s", e)
            dead.add(ws)
    state.clients -= dead


def main():
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Fingerspell WebSocket Server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8765, help="Port")
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
