"""
eyetalk/ui/web_app.py — FastAPI bridge between the dwell engine and the outside world.

Serves the board dashboard at http://localhost:<port>/, streams dwell
events to browsers over /ws, and accepts raw gaze samples from a tracker
backend over /gaze.

REST endpoints
--------------
GET  /                HTML dashboard
GET  /health          JSON health check
GET  /state           Session snapshot (targets, active id, progress, lock)
GET  /phrases         Current phrase set
PUT  /phrases         Replace the phrase set  [{"id": .., "label": ..}, ...]
POST /session/start   Start a session
POST /session/stop    Stop the session
POST /sample          Push one sample  {"x": .., "y": .., "t": optional,
                                         "space": optional "percent"|"pixels"}

WebSocket
---------
ws://<host>:<port>/ws     outbound events; accepts {"action": "start"|"stop"}
ws://<host>:<port>/gaze   inbound samples in any tracker wire format
                          (``?ack=true`` to receive one reply per message)

Messages pushed on /ws (JSON):
  {"type": "snapshot", ...}                          ← on connect
  {"type": "active_target", "target_id": "pain"}
  {"type": "progress", "target_id": "pain", "progress": 42.5}
  {"type": "selection", "target_id": "pain", "label": "...", ...}
  {"type": "lock", "locked": true, "timestamp": ...}
  {"type": "session", "running": true}
  {"type": "tick", "timestamp_ms": ...}              ← heartbeat every second
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, ValidationError

from eyetalk.board.phrases import PhraseRecord
from eyetalk.core.errors import SessionStateError
from eyetalk.core.events import (
    ON_ACTIVE_TARGET_CHANGED,
    ON_LOCK_STATE_CHANGED,
    ON_PROGRESS_UPDATED,
    ON_SELECTION_CONFIRMED,
    ON_SESSION_STARTED,
    ON_SESSION_STOPPED,
)
from eyetalk.core.logger import get_logger
from eyetalk.core.session import SessionController

# ── Static file path ──────────────────────────────────────────────────────────
_STATIC_DIR = Path(__file__).parent / "static"

# ── FastAPI app ───────────────────────────────────────────────────────────────
app = FastAPI(title="EyeTalk", version="1.0")

# ── Shared state ──────────────────────────────────────────────────────────────
_controller: Optional[SessionController] = None
_connected_clients: Set[WebSocket] = set()
_clients_lock = threading.Lock()

# Last outward events, merged into /state and the on-connect snapshot
_snapshot: Dict[str, Any] = {
    "last_selection": None,
}

# asyncio event loop running in the uvicorn thread
_loop: Optional[asyncio.AbstractEventLoop] = None


class SampleIn(BaseModel):
    """
    Body of ``POST /sample``.

    ``space`` names the units of x/y; ``input.coordinate_space`` if omitted.
    The dashboard always sends percent.
    """

    x: float
    y: float
    t: Optional[float] = None
    space: Optional[Literal["percent", "pixels"]] = None


# ── WebSocket helpers ─────────────────────────────────────────────────────────

def _push(msg: Dict[str, Any]) -> None:
    """Thread-safe push of a JSON message to every connected WebSocket client."""
    if _loop is None or _loop.is_closed():
        return
    asyncio.run_coroutine_threadsafe(_broadcast(msg), _loop)


async def _broadcast(msg: Dict[str, Any]) -> None:
    text = json.dumps(msg)
    with _clients_lock:
        clients = list(_connected_clients)
    dead: List[WebSocket] = []
    for ws in clients:
        try:
            await ws.send_text(text)
        except Exception:  # noqa: BLE001
            dead.append(ws)
    if dead:
        with _clients_lock:
            for ws in dead:
                _connected_clients.discard(ws)


def _current_state() -> Dict[str, Any]:
    if _controller is None:
        return {"running": False, **_snapshot}
    return {**_controller.state(), **_snapshot}


# ── EventBus → WebSocket bridge ───────────────────────────────────────────────

def wire_controller(ctrl: SessionController) -> None:
    """Register EventBus callbacks so the controller feeds the WS stream."""
    global _controller
    _controller = ctrl
    _snapshot["last_selection"] = None

    ctrl.subscribe(ON_ACTIVE_TARGET_CHANGED, _on_active_target)
    ctrl.subscribe(ON_PROGRESS_UPDATED, _on_progress)
    ctrl.subscribe(ON_SELECTION_CONFIRMED, _on_selection)
    ctrl.subscribe(ON_LOCK_STATE_CHANGED, _on_lock)
    ctrl.subscribe(ON_SESSION_STARTED, _on_session_started)
    ctrl.subscribe(ON_SESSION_STOPPED, _on_session_stopped)

    get_logger().info("web_app", "controller_wired", {})


def _on_active_target(data: Dict[str, Any]) -> None:
    _push({"type": "active_target", **data})


def _on_progress(data: Dict[str, Any]) -> None:
    _push({"type": "progress", **data})


def _on_selection(data: Dict[str, Any]) -> None:
    _snapshot["last_selection"] = data
    _push({"type": "selection", **data})


def _on_lock(data: Dict[str, Any]) -> None:
    # Target set changes with the lock; clients redraw from the snapshot
    _push({"type": "lock", **data})
    if _controller is not None:
        _push({"type": "snapshot", **_current_state()})


def _on_session_started(data: Dict[str, Any]) -> None:
    _push({"type": "session", "running": True, **data})


def _on_session_stopped(data: Dict[str, Any]) -> None:
    _push({"type": "session", "running": False, **data})


# ── Heartbeat ─────────────────────────────────────────────────────────────────

async def _heartbeat() -> None:
    """Push a tick message every second so the client can detect disconnects."""
    while True:
        await asyncio.sleep(1.0)
        _push({"type": "tick", "timestamp_ms": round(time.time() * 1000),
               "running": _controller.running if _controller else False})


# ── App lifecycle ─────────────────────────────────────────────────────────────

@app.on_event("startup")
async def _on_startup() -> None:
    global _loop
    _loop = asyncio.get_running_loop()
    asyncio.create_task(_heartbeat())
    get_logger().info("web_app", "startup", {})


# ── Routes ────────────────────────────────────────────────────────────────────

@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the single-page dashboard."""
    html_path = _STATIC_DIR / "index.html"
    return HTMLResponse(html_path.read_text(encoding="utf-8"))


@app.get("/health")
async def health() -> JSONResponse:
    ctrl_ok = _controller is not None
    return JSONResponse({
        "status": "ok" if ctrl_ok else "controller_not_ready",
        "running": _controller.running if ctrl_ok else False,
        "clients": len(_connected_clients),
    })


@app.get("/state")
async def state() -> JSONResponse:
    return JSONResponse(_current_state())


@app.get("/phrases")
async def list_phrases() -> JSONResponse:
    if _controller is None:
        return JSONResponse({"error": "controller not ready"}, status_code=503)
    return JSONResponse([p.model_dump() for p in _controller.phrase_book.phrases])


@app.put("/phrases")
async def replace_phrases(body: List[Dict[str, Any]]) -> JSONResponse:
    if _controller is None:
        return JSONResponse({"error": "controller not ready"}, status_code=503)
    try:
        records = [PhraseRecord(**entry) for entry in body]
        _controller.set_phrases(records)
    except (ValidationError, ValueError) as exc:
        return JSONResponse({"error": str(exc)}, status_code=422)
    _push({"type": "snapshot", **_current_state()})
    return JSONResponse({"ok": True, "count": len(records)})


@app.post("/session/start")
async def session_start() -> JSONResponse:
    if _controller is None:
        return JSONResponse({"error": "controller not ready"}, status_code=503)
    try:
        _controller.start()
    except SessionStateError as exc:
        return JSONResponse({"error": str(exc)}, status_code=409)
    return JSONResponse({"ok": True, "running": True})


@app.post("/session/stop")
async def session_stop() -> JSONResponse:
    if _controller is None:
        return JSONResponse({"error": "controller not ready"}, status_code=503)
    # stop() joins the tick thread; keep it off the event loop
    await asyncio.to_thread(_controller.stop)
    return JSONResponse({"ok": True, "running": False})


@app.post("/sample")
async def sample(body: SampleIn) -> JSONResponse:
    if _controller is None:
        return JSONResponse({"error": "controller not ready"}, status_code=503)
    point = _controller.push_sample(body.x, body.y, body.t, coordinate_space=body.space)
    if point is None:
        return JSONResponse({"ok": False, "accepted": False})
    return JSONResponse({"ok": True, "accepted": True,
                         "smoothed": {"x": point.x, "y": point.y}})


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket) -> None:
    await ws.accept()
    with _clients_lock:
        _connected_clients.add(ws)

    # Send current snapshot on connect
    await ws.send_text(json.dumps({
        "type": "snapshot",
        **_current_state(),
    }))
    get_logger().info("web_app", "ws_connected", {"total": len(_connected_clients)})

    try:
        while True:
            msg = await ws.receive_text()
            try:
                data = json.loads(msg)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                await _handle_client_msg(data, ws)
    except WebSocketDisconnect:
        pass
    finally:
        with _clients_lock:
            _connected_clients.discard(ws)
        get_logger().info("web_app", "ws_disconnected", {"total": len(_connected_clients)})


async def _handle_client_msg(data: Dict[str, Any], ws: WebSocket) -> None:
    """Handle incoming WS messages from the dashboard (start/stop)."""
    action = data.get("action")
    if _controller is None:
        return
    if action == "start":
        try:
            _controller.start()
        except SessionStateError as exc:
            await ws.send_text(json.dumps({"type": "error", "error": str(exc)}))
    elif action == "stop":
        await asyncio.to_thread(_controller.stop)


@app.websocket("/gaze")
async def gaze_endpoint(ws: WebSocket, ack: bool = False) -> None:
    """Inbound sample stream from a tracker backend."""
    await ws.accept()
    get_logger().info("web_app", "gaze_source_connected", {})
    try:
        while True:
            message = await ws.receive()
            if message.get("type") == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            point = _controller.push_wire_message(raw) if _controller else None
            if ack:
                await ws.send_text(json.dumps({"type": "ack", "accepted": point is not None}))
    except WebSocketDisconnect:
        pass
    finally:
        get_logger().info("web_app", "gaze_source_disconnected", {})


# ── Public launcher ───────────────────────────────────────────────────────────

def start_web_server(
    controller: SessionController,
    host: str = "0.0.0.0",
    port: int = 7860,
) -> None:
    """
    Wire *controller* to the WS bridge and start uvicorn in the current thread.

    Blocking — call from a dedicated thread if anything else must keep running.

    Args:
        controller: Fully initialised :class:`~eyetalk.core.session.SessionController`.
        host:       Bind address (default ``0.0.0.0`` — all interfaces).
        port:       TCP port (default ``7860``).
    """
    wire_controller(controller)

    import uvicorn  # type: ignore
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    get_logger().info("web_app", "server_start", {"host": host, "port": port})
    server.run()
