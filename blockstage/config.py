"""Runtime configuration — environment-driven CONFIG dict and block defaults."""

import os
import sys
from typing import Any, Dict


def _log(msg: str):
    print(msg, file=sys.stderr)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        _log(f"[Config] invalid {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        _log(f"[Config] invalid {name}={raw!r}, using {default}")
        return default


CONFIG: Dict[str, Any] = {
    "pacing_seconds": _env_float("BLOCKSTAGE_PACING_SECONDS", 0.1),
    "collision_tick_seconds": _env_float("BLOCKSTAGE_COLLISION_TICK_SECONDS", 0.1),
    "home_direction": _env_float("BLOCKSTAGE_HOME_DIRECTION", 90.0),
    "stage_width": _env_int("BLOCKSTAGE_STAGE_WIDTH", 480),
    "stage_height": _env_int("BLOCKSTAGE_STAGE_HEIGHT", 360),
    "history_limit": _env_int("BLOCKSTAGE_HISTORY_LIMIT", 200),
    "host": os.getenv("BLOCKSTAGE_HOST", "127.0.0.1"),
    "port": _env_int("BLOCKSTAGE_PORT", 8080),
}

# Parameters a freshly created block starts with, per kind
BLOCK_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "move": {"steps": 10},
    "turn": {"degrees": 15},
    "goto": {"x": 0, "y": 0},
    "repeat": {"times": 10},
    "say": {"text": "Hello!", "seconds": 2},
    "think": {"text": "Hmm...", "seconds": 2},
}

BLOCK_KINDS = tuple(BLOCK_DEFAULTS.keys())
