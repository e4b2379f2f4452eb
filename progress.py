from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from config import CFG

# ------------------------------
# Thread-safe global progress state
# ------------------------------

PROGRESS_LOCK = threading.Lock()


def _init_logger() -> logging.Logger:
    logger = logging.getLogger("dlx.run_log")
    if logger.handlers:
        return logger

    log_path = Path(CFG.LOG_DIR) / "solver_runs.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    except Exception:
        # Without a writable log directory the solver still runs, unlogged.
        logger.handlers.clear()
    return logger


RUN_LOGGER = _init_logger()


def _log_enabled() -> bool:
    return bool(RUN_LOGGER.handlers)


def _fmt_seconds(seconds: Optional[float]) -> Optional[str]:
    if seconds is None:
        return None
    try:
        return f"{float(seconds):.3f}s"
    except Exception:
        return None


def _emit_log(event: str, level: int = logging.INFO, **fields: Any) -> None:
    if not _log_enabled():
        return
    extras = [
        f"{key}={value}"
        for key, value in fields.items()
        if value is not None and value != ""
    ]
    try:
        if extras:
            RUN_LOGGER.log(level, "%s | %s", event, " ".join(extras))
        else:
            RUN_LOGGER.log(level, "%s", event)
    except Exception:
        # Logging failures must never bubble back to callers.
        pass


# Snapshot of the most recent solve
PROGRESS: Dict[str, Any] = {
    "status": "Idle",          # Idle | Solving | Solved | Error
    "columns": 0,              # column headers in the matrix
    "elements": 0,             # headers + row items
    "solutions": 0,            # covers found
    "nodes": 0,                # branch rows tried
    "limit_hit": False,        # a solution/node cap stopped the search
    "elapsed_start": None,     # t0 (float) when solving started
    "elapsed": 0.0,            # seconds
    "message": "",
    "done": False,
    "ok": None,
    "run_id": 0,
}

# ------------------------------
# Helpers
# ------------------------------

def _now() -> float:
    return time.time()

def _fmt_elapsed(seconds: float) -> str:
    seconds = max(0.0, float(seconds))
    if seconds < 60:
        return f"{seconds:.2f}s"
    m, s = divmod(int(seconds), 60)
    if m < 60:
        return f"{m}m {s}s"
    h, m = divmod(m, 60)
    return f"{h}h {m}m"

def _touch_elapsed_locked() -> None:
    t0 = PROGRESS.get("elapsed_start")
    if t0 is not None and not PROGRESS.get("done"):
        PROGRESS["elapsed"] = _now() - float(t0)

def reset() -> None:
    with PROGRESS_LOCK:
        try:
            current_run_id = int(PROGRESS.get("run_id", 0))
        except Exception:
            current_run_id = 0
        PROGRESS.update({
            "status": "Idle",
            "columns": 0,
            "elements": 0,
            "solutions": 0,
            "nodes": 0,
            "limit_hit": False,
            "elapsed_start": None,
            "elapsed": 0.0,
            "message": "",
            "done": False,
            "ok": None,
            "run_id": current_run_id + 1,
        })
        _emit_log("Progress reset", run_id=PROGRESS["run_id"])

# ------------------------------
# Run transitions
# ------------------------------

def solve_started(columns: Any, elements: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["status"] = "Solving"
        PROGRESS["columns"] = int(columns)
        PROGRESS["elements"] = int(elements)
        PROGRESS["elapsed_start"] = _now()
        PROGRESS["elapsed"] = 0.0
        PROGRESS["done"] = False
        PROGRESS["ok"] = None
        _emit_log(
            "Solve started",
            run_id=PROGRESS["run_id"],
            columns=PROGRESS["columns"],
            elements=PROGRESS["elements"],
        )

def solve_finished(stats: Dict[str, Any]) -> None:
    with PROGRESS_LOCK:
        PROGRESS["status"] = "Solved"
        PROGRESS["solutions"] = int(stats.get("solutions") or 0)
        PROGRESS["nodes"] = int(stats.get("nodes") or 0)
        PROGRESS["limit_hit"] = bool(stats.get("limit_hit"))
        PROGRESS["elapsed"] = float(stats.get("elapsed") or 0.0)
        PROGRESS["message"] = (
            f"stopped early: {stats.get('stop_reason')}" if PROGRESS["limit_hit"] else ""
        )
        PROGRESS["done"] = True
        PROGRESS["ok"] = True
        _emit_log(
            "Solve finished",
            run_id=PROGRESS["run_id"],
            solutions=PROGRESS["solutions"],
            nodes=PROGRESS["nodes"],
            max_depth=stats.get("max_depth"),
            limit_hit=PROGRESS["limit_hit"],
            stop_reason=stats.get("stop_reason"),
            duration=_fmt_seconds(stats.get("elapsed")),
        )

def set_error(message: Any) -> None:
    with PROGRESS_LOCK:
        _touch_elapsed_locked()
        PROGRESS["status"] = "Error"
        PROGRESS["message"] = "" if message is None else str(message)
        PROGRESS["done"] = True
        PROGRESS["ok"] = False
        _emit_log(
            "Solve failed",
            logging.WARNING,
            run_id=PROGRESS["run_id"],
            message=PROGRESS["message"],
        )

# ------------------------------
# Snapshots for the HTTP surface
# ------------------------------

def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _touch_elapsed_locked()
        return {
            "status": PROGRESS["status"],
            "columns": PROGRESS["columns"],
            "elements": PROGRESS["elements"],
            "solutions": PROGRESS["solutions"],
            "nodes": PROGRESS["nodes"],
            "limit_hit": PROGRESS["limit_hit"],
            "elapsed": PROGRESS["elapsed"],
            "elapsed_str": _fmt_elapsed(PROGRESS["elapsed"]),
            "message": PROGRESS["message"],
            "done": PROGRESS["done"],
            "ok": PROGRESS["ok"],
            "run_id": PROGRESS["run_id"],
        }
