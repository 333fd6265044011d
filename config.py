"""
=============================================================================
CONFIGURATION FOR THE ORAL-MOTOR GESTURE CORE (config.py)
=============================================================================

WHAT THIS FILE DOES (in plain language):
----------------------------------------
This file holds ALL default tuning values for gesture detection in one place.
Each game can still override them per session (see gestures/tuning.py); the
values here are what a game gets when it does not say otherwise. Everything is
read from the environment (e.g. your .env file or system variables) so a
therapist build and a test build can use different thresholds without code
changes.

MAIN GROUPS OF SETTINGS:
------------------------
  1. Timing          - How long a gesture must be held, cooldowns, windows.
  2. Classification  - Thresholds that turn face metrics into movements.
  3. Blow            - Weights and smoothing for the breath-intensity meter.
  4. Tracing         - Tolerance for drag/trace games.
  5. Server          - Host, port, debug mode and logging for the web server.

HOW VALUES ARE CHOSEN:
---------------------
  - Environment variables (e.g. STABILITY_MS) override everything.
  - If an env var is not set, we use the value the games were tuned with.
=============================================================================
"""

import os
import sys
from typing import Any, Dict


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"Config warning: {name}={raw!r} is not a number, using {default}", file=sys.stderr)
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


# ============================================================================
# TIMING (debounce, cooldown, windows)
# ============================================================================
# A raw classification must persist this long before it is trusted. Games use
# 200-500 ms; 300 ms is what the tongue and rhythm games ship with.
STABILITY_MS: int = _env_int("STABILITY_MS", 300)
# Minimum time between two credited events of the same kind (800-2000 ms).
COOLDOWN_MS: int = _env_int("COOLDOWN_MS", 2000)
# Window after a demonstration cue in which an imitation counts. 0 = no window.
MATCH_WINDOW_MS: int = _env_int("MATCH_WINDOW_MS", 0)
# Rhythm games: how far off the beat a gesture may land and still count.
TIMING_TOLERANCE_MS: int = _env_int("TIMING_TOLERANCE_MS", 400)
# Default spacing between beats when a rhythm is built from a plain movement list.
BEAT_SPACING_MS: int = _env_int("BEAT_SPACING_MS", 600)
# A gap between frames longer than about one frame interval is a detection
# dropout and dwell restarts. Sources sample every 33-80 ms.
MAX_FRAME_GAP_MS: int = _env_int("MAX_FRAME_GAP_MS", 100)

# ============================================================================
# CLASSIFICATION THRESHOLDS (face metrics -> movement)
# ============================================================================
# Mouth open/close hysteresis on the lip-gap ratio. Closed mouths sit around
# 0.022-0.030 and open ones at 0.038+, so the close threshold sits in between.
OPEN_THRESHOLD: float = _env_float("OPEN_THRESHOLD", 0.038)
CLOSE_THRESHOLD: float = _env_float("CLOSE_THRESHOLD", 0.028)
# "close" only counts when the mouth is also clearly shut, not just below open.
CLOSED_RATIO_MAX: float = _env_float("CLOSED_RATIO_MAX", 0.03)
SMILE_THRESHOLD: float = _env_float("SMILE_THRESHOLD", 0.3)
PUCKER_THRESHOLD: float = _env_float("PUCKER_THRESHOLD", 0.4)
# Tongue x (0 = left edge of mouth box, 1 = right edge).
TONGUE_LEFT_THRESHOLD: float = _env_float("TONGUE_LEFT_THRESHOLD", 0.4)
TONGUE_RIGHT_THRESHOLD: float = _env_float("TONGUE_RIGHT_THRESHOLD", 0.6)
TONGUE_UP_THRESHOLD: float = _env_float("TONGUE_UP_THRESHOLD", 0.6)
# Jaw lateral amount (-1 left .. 1 right): enter at 0.12, release back to center at 0.08.
LATERAL_THRESHOLD: float = _env_float("LATERAL_THRESHOLD", 0.12)
LATERAL_RELEASE: float = _env_float("LATERAL_RELEASE", 0.08)
# EMA applied to raw landmark metrics (0.25 = 25% new frame, 75% history).
METRIC_EMA_ALPHA: float = _env_float("METRIC_EMA_ALPHA", 0.25)
# Frames used to learn the resting mouth width before smile amount is reported.
SMILE_CALIBRATION_FRAMES: int = _env_int("SMILE_CALIBRATION_FRAMES", 30)
# Minimum confidence for the face mesh (lower = more permissive in poor lighting).
MIN_FACE_CONFIDENCE: float = _env_float("MIN_FACE_CONFIDENCE", 0.3)

# ============================================================================
# BLOW (breath intensity meter)
# ============================================================================
SUSTAIN_THRESHOLD: float = _env_float("SUSTAIN_THRESHOLD", 0.4)
SUSTAIN_DURATION_MS: int = _env_int("SUSTAIN_DURATION_MS", 800)
BLOW_PROTRUSION_WEIGHT: float = _env_float("BLOW_PROTRUSION_WEIGHT", 0.6)
BLOW_OPENING_WEIGHT: float = _env_float("BLOW_OPENING_WEIGHT", 0.4)
# Protrusion with closed lips is a pucker, not a blow: it only counts this much.
BLOW_CLOSED_FACTOR: float = _env_float("BLOW_CLOSED_FACTOR", 0.5)
# Meter smoothing time constants (ms). Short attack, slower decay.
BLOW_ATTACK_MS: float = _env_float("BLOW_ATTACK_MS", 80)
BLOW_DECAY_MS: float = _env_float("BLOW_DECAY_MS", 300)

# ============================================================================
# TRACING (drag / trace games, 0-100 normalized coordinates)
# ============================================================================
LINE_TOLERANCE: float = _env_float("LINE_TOLERANCE", 25.0)
# Progress needed (together with reaching the end point) for a successful trace.
TRACK_COMPLETE_PROGRESS: float = _env_float("TRACK_COMPLETE_PROGRESS", 0.99)

# ============================================================================
# Application Configuration
# ============================================================================
FLASK_PORT: int = _env_int("FLASK_PORT", 5000)
FLASK_DEBUG: bool = os.getenv("FLASK_DEBUG", "false").lower() == "true"
FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")
LOG_LEVEL: str = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
# Sessions with no frames for this long are dropped by the session store.
SESSION_IDLE_TIMEOUT_SEC: float = _env_float("SESSION_IDLE_TIMEOUT_SEC", 600)

# ============================================================================
# Helper Functions
# ============================================================================

def warn_invalid_config() -> None:
    """
    Print a warning when thresholds contradict each other. Call from app startup.
    Does not raise; per-session tuning still validates its own values.
    """
    problems = []
    if CLOSE_THRESHOLD >= OPEN_THRESHOLD:
        problems.append("CLOSE_THRESHOLD must be below OPEN_THRESHOLD (hysteresis)")
    if LATERAL_RELEASE > LATERAL_THRESHOLD:
        problems.append("LATERAL_RELEASE must not exceed LATERAL_THRESHOLD")
    if TONGUE_LEFT_THRESHOLD > TONGUE_RIGHT_THRESHOLD:
        problems.append("TONGUE_LEFT_THRESHOLD must not exceed TONGUE_RIGHT_THRESHOLD")
    if not 0.0 <= SUSTAIN_THRESHOLD <= 1.0:
        problems.append("SUSTAIN_THRESHOLD must be within 0-1")
    if problems:
        print("Config warning: " + "; ".join(problems), file=sys.stderr)


def get_gesture_defaults() -> Dict[str, Any]:
    """
    Get the default per-game tuning as a dictionary (camelCase keys, as games send them).

    Returns:
        dict: Default tuning values
    """
    return {
        "stabilityMs": STABILITY_MS,
        "cooldownMs": COOLDOWN_MS,
        "matchWindowMs": MATCH_WINDOW_MS,
        "timingToleranceMs": TIMING_TOLERANCE_MS,
        "lineTolerance": LINE_TOLERANCE,
        "sustainThreshold": SUSTAIN_THRESHOLD,
        "sustainDurationMs": SUSTAIN_DURATION_MS,
        "maxFrameGapMs": MAX_FRAME_GAP_MS,
        "thresholds": {
            "closedRatioMax": CLOSED_RATIO_MAX,
            "smile": SMILE_THRESHOLD,
            "pucker": PUCKER_THRESHOLD,
            "tongueLeft": TONGUE_LEFT_THRESHOLD,
            "tongueRight": TONGUE_RIGHT_THRESHOLD,
            "tongueUp": TONGUE_UP_THRESHOLD,
            "lateral": LATERAL_THRESHOLD,
        },
    }
