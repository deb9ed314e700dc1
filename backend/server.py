import os
import sys
import time
import threading
import hashlib
import json
from collections import OrderedDict, defaultdict

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from catalog import CourseCatalog
from data_loader import load_data, load_templates
from errors import RoadmapError
from llm_scorer import get_scorer
from roadmap_engine import generate
from template_parser import find_matching_template, infer_major_and_degree
from timeline import roadmap_to_program
from validators import normalize_profile

load_dotenv()

app = Flask(__name__)

VERSION = "0.1.0"

# ── Paths ─────────────────────────────────────────────────────────────────────
BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
_DEFAULT_DATA_PATH = os.path.join(PROJECT_ROOT, "data", "courses.json")
_DEFAULT_TEMPLATES_PATH = os.path.join(PROJECT_ROOT, "data", "pathways.json")


def _resolve_path(env_name: str, default: str) -> str:
    raw = os.environ.get(env_name)
    if not raw:
        return default
    if not os.path.isabs(raw):
        return os.path.join(PROJECT_ROOT, raw)
    return raw


DATA_PATH = _resolve_path("DATA_PATH", _DEFAULT_DATA_PATH)
TEMPLATES_PATH = _resolve_path("TEMPLATES_PATH", _DEFAULT_TEMPLATES_PATH)
_data_lock = threading.Lock()
_data_mtime = None

# -- Rate limiting (manual token bucket, 10 req/min per IP) ----------------
_RATE_LIMIT_MAX = 10
_RATE_LIMIT_WINDOW = 60  # seconds
_rate_limit_lock = threading.Lock()
_rate_limit_tracker: dict[str, list[float]] = defaultdict(list)


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, int(raw))
    except (TypeError, ValueError):
        return default


_SLOW_REQUEST_LOG_MS = _env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0)
_REQUEST_CACHE_SIZE = _env_int("REQUEST_CACHE_SIZE", 128, minimum=1)


class _LruResponseCache:
    """Thread-safe bounded in-memory cache for JSON-serializable responses."""

    def __init__(self, max_size: int):
        self.max_size = max(1, int(max_size))
        self._lock = threading.Lock()
        self._items: OrderedDict[str, dict] = OrderedDict()

    def get(self, key: str):
        with self._lock:
            if key not in self._items:
                return None
            value = self._items.pop(key)
            self._items[key] = value
            return value

    def set(self, key: str, value: dict) -> None:
        with self._lock:
            if key in self._items:
                self._items.pop(key)
            self._items[key] = value
            while len(self._items) > self.max_size:
                self._items.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


# Generation is deterministic for a given payload and data snapshot.
_roadmap_response_cache = _LruResponseCache(_REQUEST_CACHE_SIZE)


def _cache_enabled() -> bool:
    return not app.config.get("TESTING", False)


def _stable_payload_hash(payload) -> str:
    normalized = payload if payload is not None else {}
    encoded = json.dumps(
        normalized,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    ).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def _request_cache_key(prefix: str, payload) -> str:
    version = "none" if _data_mtime is None else str(_data_mtime)
    return f"{prefix}:{version}:{_stable_payload_hash(payload)}"


def _check_rate_limit(ip: str) -> bool:
    """Return True if request is allowed, False if rate-limited."""
    now = time.time()
    with _rate_limit_lock:
        timestamps = _rate_limit_tracker[ip]
        _rate_limit_tracker[ip] = [t for t in timestamps if now - t < _RATE_LIMIT_WINDOW]
        if len(_rate_limit_tracker[ip]) >= _RATE_LIMIT_MAX:
            return False
        _rate_limit_tracker[ip].append(now)
        return True


def _data_files_mtime():
    try:
        return max(os.path.getmtime(DATA_PATH), os.path.getmtime(TEMPLATES_PATH))
    except OSError:
        return None


def _load_runtime_data() -> dict:
    data = load_data(DATA_PATH)
    return {
        "catalog": CourseCatalog.from_data(data),
        "templates": load_templates(TEMPLATES_PATH),
    }


def _error(error_code: str, message: str, status: int):
    return jsonify({
        "mode": "error",
        "error": {"error_code": error_code, "message": message},
    }), status


# ── Startup data load ──────────────────────────────────────────────────────────
try:
    _data = _load_runtime_data()
    _data_mtime = _data_files_mtime()
    print(
        f"[OK] Loaded {len(_data['catalog'])} courses from {DATA_PATH} and "
        f"{len(_data['templates'])} pathways from {TEMPLATES_PATH}"
    )
except FileNotFoundError as exc:
    print(f"[FATAL] Data file not found: {exc}", file=sys.stderr)
    sys.exit(1)
except Exception as exc:
    print(f"[FATAL] Failed to load data: {exc}", file=sys.stderr)
    sys.exit(1)

_scorer = get_scorer()


def _reload_data_if_changed(force: bool = False) -> bool:
    """
    Hot-reload the catalog and pathway collection when either file changes
    on disk.

    Returns True when a reload occurred, else False.
    """
    global _data, _data_mtime

    candidate_mtime = _data_files_mtime()
    if not force:
        if candidate_mtime is None:
            return False
        if _data_mtime is not None and candidate_mtime <= _data_mtime:
            return False

    with _data_lock:
        latest_mtime = _data_files_mtime()
        if not force:
            if latest_mtime is None:
                return False
            if _data_mtime is not None and latest_mtime <= _data_mtime:
                return False

        try:
            new_data = _load_runtime_data()
        except Exception as exc:
            print(f"[WARN] Data reload failed; keeping previous dataset: {exc}", file=sys.stderr)
            return False

        _data = new_data
        _data_mtime = latest_mtime if latest_mtime is not None else candidate_mtime
        _roadmap_response_cache.clear()
        print(
            f"[OK] Reloaded {len(new_data['catalog'])} courses and "
            f"{len(new_data['templates'])} pathways"
        )
        return True


def _refresh_data_if_needed() -> None:
    try:
        _reload_data_if_changed()
    except Exception as exc:
        print(f"[WARN] Data reload check failed: {exc}", file=sys.stderr)


# -- Security headers ------------------------------------------------------
@app.before_request
def _start_request_timer():
    g._request_start_time = time.perf_counter()


@app.after_request
def _add_security_headers(response):
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "same-origin"

    started = getattr(g, "_request_start_time", None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000.0
        if duration_ms >= _SLOW_REQUEST_LOG_MS:
            endpoint = request.endpoint or "unknown"
            print(
                f"[SLOW] {request.method} {request.path} "
                f"endpoint={endpoint} status={response.status_code} duration_ms={duration_ms:.1f}"
            )
    return response


# -- Health endpoint --------------------------------------------------------
@app.route("/health", methods=["GET"])
def health_endpoint():
    return jsonify({
        "status": "ok",
        "version": VERSION,
        "courses": len(_data["catalog"]),
        "pathways": len(_data["templates"]),
    })


# -- Input validation ------------------------------------------------------
def _validate_roadmap_body(body):
    """Returns (error_code, message) on invalid input, (None, None) on success."""
    if not isinstance(body, dict):
        return "INVALID_INPUT", "Request body must be a JSON object."
    if not isinstance(body.get("profile"), dict):
        return "INVALID_INPUT", "'profile' must be an object."
    program_name = body.get("program_name")
    template = body.get("template")
    if template is None and not (isinstance(program_name, str) and program_name.strip()):
        return "INVALID_INPUT", "Provide either 'program_name' or an inline 'template'."
    if template is not None and not isinstance(template, dict):
        return "INVALID_INPUT", "'template' must be an object."
    credit_cap = body.get("credit_cap")
    if credit_cap is not None:
        if isinstance(credit_cap, bool) or not isinstance(credit_cap, int) or credit_cap < 1:
            return "INVALID_INPUT", "'credit_cap' must be a positive integer."
    if not isinstance(body.get("debug", False), bool):
        return "INVALID_INPUT", "'debug' must be true or false."
    return None, None


# ── 500 handler ────────────────────────────────────────────────────────────────
@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return _error(e.name.upper().replace(" ", "_"), e.description or e.name, e.code or 500)
    print(f"[WARN] Unhandled error on {request.path}: {e!r}", file=sys.stderr)
    return _error("SERVER_ERROR", "An unexpected server error occurred.", 500)


# ── Routes ─────────────────────────────────────────────────────────────────────
@app.route("/programs", methods=["GET"])
def get_programs():
    _refresh_data_if_needed()
    programs = []
    for template in _data["templates"]:
        name = str(template.get("program_name", "") or "").strip()
        if not name:
            continue
        major, degree = infer_major_and_degree(name)
        programs.append({
            "program_name": name,
            "campus": str(template.get("campus", "") or template.get("institution", "") or ""),
            "degree": str(template.get("degree", "") or degree),
            "major": str(template.get("major", "") or major),
            "track": str(template.get("track", "") or ""),
        })
    programs.sort(key=lambda p: p["program_name"].lower())
    return jsonify({"programs": programs})


@app.route("/roadmap", methods=["POST"])
def roadmap_endpoint():
    client_ip = request.headers.get("X-Forwarded-For", request.remote_addr or "").split(",")[0].strip()
    if not app.config.get("TESTING") and not _check_rate_limit(client_ip):
        return _error("RATE_LIMITED", "Too many requests. Please wait before submitting again.", 429)
    _refresh_data_if_needed()

    body = request.get_json(force=True, silent=True)
    err_code, err_msg = _validate_roadmap_body(body)
    if err_code:
        return _error(err_code, err_msg, 400)

    cache_key = _request_cache_key("roadmap", body)
    if _cache_enabled():
        cached = _roadmap_response_cache.get(cache_key)
        if cached is not None:
            return jsonify(cached)

    template = body.get("template")
    if template is None:
        template = find_matching_template(body["program_name"], _data["templates"])
        if template is None:
            return _error("UNKNOWN_PROGRAM", f"No pathway found for '{body['program_name']}'.", 404)

    try:
        profile = normalize_profile(body["profile"])
    except ValueError as exc:
        return _error("INVALID_INPUT", str(exc), 400)

    try:
        roadmap = generate(
            template,
            profile,
            _data["catalog"],
            _scorer,
            credit_cap=body.get("credit_cap"),
            debug=body.get("debug", False),
        )
    except RoadmapError as exc:
        return jsonify({"mode": "error", "error": exc.to_dict()}), 422

    payload = {
        "mode": "roadmap",
        "roadmap": roadmap,
        "program": roadmap_to_program(roadmap),
    }
    if _cache_enabled():
        _roadmap_response_cache.set(cache_key, payload)
    return jsonify(payload)


app.add_url_rule("/api/health", endpoint="api_health", view_func=health_endpoint, methods=["GET"])
app.add_url_rule("/api/programs", endpoint="api_programs", view_func=get_programs, methods=["GET"])
app.add_url_rule("/api/roadmap", endpoint="api_roadmap", view_func=roadmap_endpoint, methods=["POST"])


# -- API catch-all (404 for unknown /api/* routes) -------------------
@app.route("/api/<path:rest>", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
def api_catch_all(rest):
    return _error("NOT_FOUND", f"/api/{rest} not found", 404)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
