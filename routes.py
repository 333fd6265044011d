"""
Flask routes for the gesture API.

Game clients create a session, set a target, then stream metric frames and
pointer moves; every response carries the events produced by that request.
Scoring and progression stay with the client-side orchestrator.

All bodies are JSON with camelCase keys. Invalid input -> 400 {"error": ...},
unknown session -> 404.
"""

import logging
import math
import time
from typing import Any, Dict, Optional, Tuple, Union

from flask import Blueprint, jsonify, request

import config
from gestures.session import GestureSession
from gestures.tuning import GestureTuning
from gestures.types import FacialMetricFrame, target_from_dict
from services.session_store import (
    close_session,
    create_session,
    get_session,
    list_sessions,
    purge_idle_sessions,
)

logger = logging.getLogger(__name__)

# Create a blueprint for better organization
api = Blueprint('api', __name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _json_body() -> Tuple[Optional[Dict[str, Any]], Optional[Tuple[Any, int]]]:
    """Return (body, None) or (None, error response)."""
    if not request.is_json:
        return None, (jsonify({"error": "Request must be JSON"}), 400)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, (jsonify({"error": "Request body must be a JSON object"}), 400)
    return data, None


def _lookup(session_id: str) -> Tuple[Optional[GestureSession], Optional[Tuple[Any, int]]]:
    session = get_session(session_id)
    if session is None:
        return None, (jsonify({"error": f"Unknown session: {session_id}"}), 404)
    return session, None


def _number(value: Any, key: str) -> Union[int, float]:
    # Python's json parses NaN and Infinity.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"'{key}' must be finite")
    return value


def _timestamp(data: Dict[str, Any], key: str = "timestampMs") -> int:
    value = data.get(key)
    if value is None:
        return _now_ms()
    return int(_number(value, key))


def _coordinate(data: Dict[str, Any], key: str, required: bool = True) -> Optional[float]:
    value = data.get(key)
    if value is None:
        if required:
            raise ValueError(f"Missing '{key}'")
        return None
    return float(_number(value, key))


@api.route("/health", methods=["GET"])
def health():
    """Liveness check. Also purges idle sessions."""
    purge_idle_sessions()
    return jsonify({"status": "ok", "sessions": len(list_sessions())})


@api.route("/config/gestures", methods=["GET"])
def get_gesture_config():
    """
    Default tuning and thresholds.

    Returns:
        JSON: {"stabilityMs": ..., "cooldownMs": ..., ..., "thresholds": {...}}
    """
    return jsonify(config.get_gesture_defaults())


@api.route("/sessions", methods=["POST"])
def create_session_route():
    """
    Create a gesture session.

    Request Body (all optional):
        {
            "tuning": {"stabilityMs": 300, "cooldownMs": 2500, ...},
            "target": {"kind": "single_movement", "movement": "open"},
            "timestampMs": 12345
        }

    Returns:
        JSON: session summary, 201
    """
    data: Dict[str, Any] = {}
    if request.get_data():
        data, error = _json_body()
        if error:
            return error
    try:
        tuning = GestureTuning.from_dict(data.get("tuning"))
        target = target_from_dict(data["target"]) if data.get("target") is not None else None
        now = _timestamp(data)
    except ValueError as e:
        logger.warning("Rejected session create: %s", e)
        return jsonify({"error": str(e)}), 400
    session = create_session(tuning)
    if target is not None:
        session.set_target(target, now)
    return jsonify(session.summary()), 201


@api.route("/sessions/<session_id>", methods=["GET"])
def get_session_route(session_id):
    session, error = _lookup(session_id)
    if error:
        return error
    return jsonify(session.summary())


@api.route("/sessions/<session_id>", methods=["DELETE"])
def delete_session_route(session_id):
    """Close the session. Returns its final summary."""
    session, error = _lookup(session_id)
    if error:
        return error
    summary = session.summary()
    close_session(session_id)
    summary["closed"] = True
    return jsonify(summary)


@api.route("/sessions/<session_id>/target", methods=["POST"])
def set_target_route(session_id):
    """
    Replace the current target; all progress on the previous one is discarded.

    Request Body:
        {"target": {...}, "timestampMs": 12345} or the target object itself
    """
    session, error = _lookup(session_id)
    if error:
        return error
    data, error = _json_body()
    if error:
        return error
    try:
        target_data = data.get("target", data)
        target = target_from_dict(target_data)
        now = _timestamp(data)
    except ValueError as e:
        logger.warning("Rejected target for %s: %s", session_id, e)
        return jsonify({"error": str(e)}), 400
    session.set_target(target, now)
    return jsonify(session.summary())


@api.route("/sessions/<session_id>/frames", methods=["POST"])
def process_frames_route(session_id):
    """
    Feed one metric frame, or a batch as {"frames": [...]} in timestamp order.

    Frame:
        {"timestampMs": 1000, "mouthOpenRatio": 0.05, "isOpen": true,
         "smileAmount": 0.1, "protrusion": 0.2, "status": "tracking"}

    Returns:
        JSON: {"stableState": {...}, "blow": {...}, "events": [...]} for the last
        frame, with events from the whole batch
    """
    session, error = _lookup(session_id)
    if error:
        return error
    data, error = _json_body()
    if error:
        return error
    raw_frames = data.get("frames", [data])
    if not isinstance(raw_frames, list) or not raw_frames:
        return jsonify({"error": "'frames' must be a non-empty list"}), 400
    try:
        frames = [FacialMetricFrame.from_dict(f) for f in raw_frames]
    except ValueError as e:
        logger.warning("Rejected frame(s) for %s: %s", session_id, e)
        return jsonify({"error": str(e)}), 400

    updates = session.process_frames(frames)
    out = updates[-1].to_dict()
    out["events"] = [e.to_dict() for u in updates for e in u.events]
    return jsonify(out)


@api.route("/sessions/<session_id>/pointer", methods=["POST"])
def pointer_move_route(session_id):
    """
    Pointer move for tracing targets.

    Request Body:
        {"x": 12.5, "y": 40.0, "timestampMs": 1000}
    """
    session, error = _lookup(session_id)
    if error:
        return error
    data, error = _json_body()
    if error:
        return error
    try:
        x = _coordinate(data, "x")
        y = _coordinate(data, "y")
        now = _timestamp(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    update = session.process_pointer(x, y, now)
    if update is None:
        return jsonify({"error": "Session has no continuous_track target"}), 400
    return jsonify(update.to_dict())


@api.route("/sessions/<session_id>/pointer/release", methods=["POST"])
def pointer_release_route(session_id):
    """
    Pointer lifted. x/y are optional (last move is used when absent).

    Returns:
        JSON: {"events": [...], "result": {"success": ..., "reason": ...}}
    """
    session, error = _lookup(session_id)
    if error:
        return error
    data: Dict[str, Any] = {}
    if request.get_data():
        data, error = _json_body()
        if error:
            return error
    try:
        x = _coordinate(data, "x", required=False)
        y = _coordinate(data, "y", required=False)
        now = _timestamp(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    events, result = session.release_pointer(x, y, now)
    if result is None:
        return jsonify({"error": "Session has no continuous_track target"}), 400
    return jsonify({
        "events": [e.to_dict() for e in events],
        "result": result.to_dict(),
    })


@api.route("/sessions/<session_id>/reset", methods=["POST"])
def reset_session_route(session_id):
    """Round boundary: clears target, confirmed state, blow meter and tally."""
    session, error = _lookup(session_id)
    if error:
        return error
    session.reset()
    return jsonify(session.summary())


def register_routes(app):
    """
    Register all routes with the Flask application.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(api)
