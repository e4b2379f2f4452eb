# app.py — HTTP surface for the exact-cover solver
from __future__ import annotations
import os
from typing import Any, Dict, Optional

from flask import Flask, request, send_from_directory, jsonify

from solver.orchestrator import solve_orchestrator
from config import BASE_DIR
from io_files import solutions_path, write_solutions
from progress import snapshot as progress_snapshot


app = Flask(__name__)


@app.after_request
def _no_cache_progress(resp):
    if request.path == "/progress":
        resp.headers["Cache-Control"] = "no-store, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
    return resp


def _to_int(x: Any) -> Optional[int]:
    if x is None or x == "":
        return None
    try:
        return int(float(x))
    except (TypeError, ValueError, OverflowError):
        return None


@app.route("/solve", methods=["POST"])
def solve():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"ok": False, "error": "expected a JSON object"}), 400

    ok, solutions, stats, reason = solve_orchestrator(
        payload,
        max_solutions=_to_int(payload.get("max_solutions")),
        node_limit=_to_int(payload.get("node_limit")),
    )
    if not ok:
        return jsonify({"ok": False, "error": reason}), 400

    path = write_solutions(solutions, BASE_DIR)
    body: Dict[str, Any] = {
        "ok": True,
        "count": len(solutions),
        "solutions": solutions,
        "stats": stats,
        "reason": reason,
        "solutions_file": os.path.basename(path),
    }
    return jsonify(body)


@app.route("/download/solutions")
def download_solutions():
    path = os.path.abspath(solutions_path(BASE_DIR))
    directory, filename = os.path.split(path)
    return send_from_directory(directory, filename, as_attachment=True)


@app.route("/progress")
def progress():
    return jsonify(progress_snapshot())


if __name__ == "__main__":
    app.run(debug=False)
