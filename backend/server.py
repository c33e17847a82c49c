import os
import sys
import time

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from config import load_settings
from data_loader import load_offer_file, parse_offer_csv
from data_sources import DataSourceError, build_data_source
from eligibility import check_can_take
from normalizer import clean_tokens, normalize_code, normalize_code_list
from offer_resolver import OfferCatalog, resolve_offers
from projection_engine import compute_selection, compute_variants
from projection_models import MAX_OPTIONS_LIMIT, SelectionCriteria

VERSION = "1.0.0"

_settings = load_settings()

app = Flask(__name__)
app.config["DATA_SOURCE"] = build_data_source(_settings)
app.config["OFFER_CATALOG"] = OfferCatalog()

_SLOW_REQUEST_LOG_MS = _settings["slow_request_log_ms"]
_DEFAULT_MAX_OPTIONS = _settings["default_max_options"]

# Accepted request field names; the portal frontend still posts the Spanish ones.
_FIELD_ALIASES = {
    "student_id": ("student_id", "rut"),
    "program_code": ("program_code", "codCarrera"),
    "catalog": ("catalog", "catalogo"),
    "credit_cap": ("credit_cap", "topeCreditos"),
    "priority_order": ("priority_order", "ordenPrioridades"),
    "priority_courses": ("priority_courses", "prioritarios"),
    "maximize_credits": ("maximize_credits", "maximizarCreditos"),
    "max_options": ("max_options", "maxOptions"),
    "period": ("period",),
    "course": ("course", "requested_course"),
}


# ── Startup offering load ──────────────────────────────────────────────────────
if _settings["offers_path"]:
    try:
        _rows = load_offer_file(_settings["offers_path"])
        app.config["OFFER_CATALOG"].upsert_many(_rows)
        print(f"[OK] Loaded {len(_rows)} section(s) from {_settings['offers_path']}")
    except (OSError, ValueError) as exc:
        print(f"[WARN] Offer file not loaded ({_settings['offers_path']}): {exc}", file=sys.stderr)


def _error(error_code: str, message: str, status: int):
    return jsonify({
        "mode": "error",
        "error": {"error_code": error_code, "message": message},
    }), status


def _field(body: dict, name: str, default=None):
    for key in _FIELD_ALIASES.get(name, (name,)):
        if body.get(key) is not None:
            return body[key]
    return default


def _as_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val or "").strip().lower() in {"true", "1", "yes", "y"}


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


# -- Input validation ------------------------------------------------------
def _validate_projection_body(body, extra_required: tuple = ()):
    """Returns (error_code, message) on invalid input, (None, None) on success."""
    if not isinstance(body, dict):
        return "INVALID_INPUT", "Request body must be a JSON object."
    for name in ("student_id", "program_code", "catalog") + tuple(extra_required):
        val = _field(body, name)
        if val is None or not str(val).strip():
            return "INVALID_INPUT", f"'{name}' is required."
    for name in ("priority_order", "priority_courses"):
        val = _field(body, name)
        if val is not None and not isinstance(val, (str, list)):
            return "INVALID_INPUT", f"'{name}' must be a list or a comma-separated string."
    max_options_raw = _field(body, "max_options")
    if max_options_raw is not None:
        try:
            if isinstance(max_options_raw, bool):
                raise ValueError
            max_options = int(max_options_raw)
            if not (1 <= max_options <= MAX_OPTIONS_LIMIT):
                raise ValueError
        except (TypeError, ValueError):
            return "INVALID_INPUT", f"max_options must be an integer between 1 and {MAX_OPTIONS_LIMIT}."
    return None, None


def _criteria_from_body(body: dict) -> SelectionCriteria:
    cap = _field(body, "credit_cap")
    return SelectionCriteria(
        # A JSON boolean is not a cap; let the engine apply its default.
        credit_cap=None if isinstance(cap, bool) else cap,
        priority_order=tuple(clean_tokens(_field(body, "priority_order"))),
        priority_courses=tuple(normalize_code_list(_field(body, "priority_courses"))),
        maximize_credits=_as_bool(_field(body, "maximize_credits")),
    )


def _load_inputs(body: dict):
    source = app.config["DATA_SOURCE"]
    student_id = str(_field(body, "student_id")).strip()
    program_code = str(_field(body, "program_code")).strip()
    catalog = str(_field(body, "catalog")).strip()
    curriculum = source.get_curriculum(program_code, catalog)
    history = source.get_history(student_id, program_code)
    return curriculum, history


# ── Error handlers ─────────────────────────────────────────────────────────────
@app.errorhandler(DataSourceError)
def handle_data_source_error(e):
    return _error("UPSTREAM_ERROR", e.message, e.status)


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    print(f"[ERROR] {request.method} {request.path}: {e!r}", file=sys.stderr)
    return _error("SERVER_ERROR", "An unexpected server error occurred.", 500)


# ── Routes ─────────────────────────────────────────────────────────────────────
@app.route("/health", methods=["GET"])
def health_endpoint():
    return jsonify({
        "status": "ok",
        "version": VERSION,
        "use_stubs": _settings["use_stubs"],
        "offer_sections": len(app.config["OFFER_CATALOG"]),
    })


@app.route("/malla", methods=["GET"])
def get_malla():
    program_code = request.args.get("program_code", "").strip()
    catalog = request.args.get("catalog", "").strip()
    if not program_code or not catalog:
        return _error("INVALID_INPUT", "'program_code' and 'catalog' are required.", 400)
    courses = app.config["DATA_SOURCE"].get_curriculum(program_code, catalog)
    return jsonify({"courses": [c.to_dict() for c in courses]})


@app.route("/avance", methods=["GET"])
def get_avance():
    student_id = request.args.get("student_id", "").strip()
    program_code = request.args.get("program_code", "").strip()
    if not student_id or not program_code:
        return _error("INVALID_INPUT", "'student_id' and 'program_code' are required.", 400)
    records = app.config["DATA_SOURCE"].get_history(student_id, program_code)
    return jsonify({"records": [r.to_dict() for r in records]})


@app.route("/projections/generate", methods=["POST"])
def generate_projection():
    body = request.get_json(force=True, silent=True)
    err_code, err_msg = _validate_projection_body(body)
    if err_code:
        return _error(err_code, err_msg, 400)

    curriculum, history = _load_inputs(body)
    result = compute_selection(curriculum, history, _criteria_from_body(body))
    return jsonify(result.to_dict())


@app.route("/projections/options", methods=["POST"])
def generate_projection_options():
    body = request.get_json(force=True, silent=True)
    err_code, err_msg = _validate_projection_body(body)
    if err_code:
        return _error(err_code, err_msg, 400)

    max_options = int(_field(body, "max_options", _DEFAULT_MAX_OPTIONS))
    curriculum, history = _load_inputs(body)
    options = compute_variants(curriculum, history, _criteria_from_body(body), max_options)
    return jsonify({"options": [o.to_dict() for o in options]})


@app.route("/projections/with-offer", methods=["POST"])
def generate_projection_with_offer():
    body = request.get_json(force=True, silent=True)
    err_code, err_msg = _validate_projection_body(body, extra_required=("period",))
    if err_code:
        return _error(err_code, err_msg, 400)

    period = str(_field(body, "period")).strip()
    curriculum, history = _load_inputs(body)
    result = compute_selection(curriculum, history, _criteria_from_body(body))
    resolved = resolve_offers(result, app.config["OFFER_CATALOG"], period)
    return jsonify(resolved.to_dict())


@app.route("/can-take", methods=["POST"])
def can_take_endpoint():
    body = request.get_json(force=True, silent=True)
    err_code, err_msg = _validate_projection_body(body, extra_required=("course",))
    if err_code:
        return _error(err_code, err_msg, 400)

    requested = normalize_code(_field(body, "course"))
    curriculum, history = _load_inputs(body)
    result = check_can_take(requested, curriculum, history)
    result["mode"] = "can_take"
    return jsonify(result)


@app.route("/offers/upload", methods=["POST"])
def upload_offers():
    csv_text = request.get_data(as_text=True)
    try:
        rows = parse_offer_csv(csv_text)
    except ValueError as exc:
        return _error("INVALID_INPUT", str(exc), 400)
    upserts = app.config["OFFER_CATALOG"].upsert_many(rows)
    print(f"[OK] Loaded {upserts} section(s) from upload")
    return jsonify({"ok": True, "upserts": upserts, "rows": len(rows)})


@app.route("/offers", methods=["GET"])
def list_offers():
    course = normalize_code(request.args.get("course", ""))
    period = request.args.get("period", "").strip()
    if not course or not period:
        return _error("INVALID_INPUT", "'course' and 'period' are required.", 400)
    offers = app.config["OFFER_CATALOG"].list_by_course_and_period(course, period)
    return jsonify({"offers": [o.to_dict() for o in offers]})


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
