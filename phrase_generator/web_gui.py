#!/usr/bin/env python3
"""Flask web interface for Phrase Generator.

The page mirrors the controls of the command-line interface: bar count,
voices, instrument, shortest note, tempo, time signature, root and scale kind.
Submitting the form generates a melody and renders ``score.html``, which draws
the notation in the browser with VexFlow and offers the MIDI file for
download.  ``GET /melody.json`` returns the same notation payload for scripts.

Behaviour worth knowing about:

* **CSRF protection**: Flask-WTF's :class:`~flask_wtf.csrf.CSRFProtect`
  validates a token on every POST request.
* **WSGI-friendly entry point**: :func:`create_app` builds a configured
  application so production servers like Gunicorn can serve it directly.
* **Request size limiting**: ``MAX_CONTENT_LENGTH`` bounds the size of form
  submissions.
* **Rate limiting**: an in-memory per-IP throttle caps requests per minute
  and answers ``429`` with a ``Retry-After`` header.
* **Form state preservation**: validation failures re-render the form with
  the user's previous selections and highlight the rejected input.
* **Rendering isolation**: failing to build the MIDI download only produces
  a flash message; the notation is still shown.
"""

from __future__ import annotations

import base64
import logging
import math
import os
import secrets
from tempfile import NamedTemporaryFile
from threading import Lock
from time import monotonic
from typing import Dict, Iterable, Mapping, Optional, Set, Tuple

from flask import (
    Flask,
    Response,
    current_app,
    flash,
    jsonify,
    make_response,
    render_template,
    request,
)
from flask_wtf.csrf import CSRFProtect

from phrase_generator import (
    INSTRUMENTS,
    MAX_BARS,
    MAX_OCTAVE,
    MIN_OCTAVE,
    NOTES,
    SCALE_PATTERNS,
    TIME_SIGNATURES,
    all_durations,
    create_midi_file,
    generate_melody,
)
from phrase_generator.errors import InvalidArgument
from phrase_generator.models import Melody
from phrase_generator.notation import melody_to_notation

# Logger used throughout the module for diagnostic messages.
logger = logging.getLogger(__name__)

# CSRF protection instance. ``init_app`` is invoked inside ``create_app`` so
# tests can control when protection is enabled.
csrf = CSRFProtect()

# Maps client IP to ``(window_start, count)`` for the current rate-limit
# window. Guarded by ``REQUEST_LOCK`` because the development server handles
# requests on multiple threads.
REQUEST_LOG: Dict[str, Tuple[float, int]] = {}
REQUEST_LOCK = Lock()

# Duration of a single rate-limit window in seconds.
RATE_LIMIT_WINDOW = 60.0


def rate_limit() -> Optional[Response]:
    """Enforce a naive per-IP request limit.

    Registered as a ``before_request`` hook. ``RATE_LIMIT_PER_MINUTE`` in the
    application config sets the limit; a missing, zero or invalid value
    disables throttling.

    Returns:
        Optional[Response]: ``429`` response when the limit is exceeded,
        otherwise ``None`` to let the request proceed.
    """

    limit_raw = current_app.config.get("RATE_LIMIT_PER_MINUTE")
    if limit_raw is None:
        return None

    try:
        limit = int(limit_raw)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid RATE_LIMIT_PER_MINUTE %r; disabling rate limiting", limit_raw
        )
        return None

    if limit <= 0:
        if limit < 0:
            logger.warning(
                "RATE_LIMIT_PER_MINUTE must be positive; disabling rate limiting (received %r)",
                limit_raw,
            )
        return None

    now = monotonic()
    ip_addr = request.remote_addr or "unknown"

    with REQUEST_LOCK:
        # Purge stale windows so the log stays small.
        expired = [
            ip for ip, (start, _) in REQUEST_LOG.items()
            if now - start >= RATE_LIMIT_WINDOW
        ]
        for ip in expired:
            del REQUEST_LOG[ip]

        window_start, count = REQUEST_LOG.get(ip_addr, (now, 0))

        if count >= limit:
            remaining = math.ceil(
                max(0.0, RATE_LIMIT_WINDOW - (now - window_start))
            )
            response = make_response("Too many requests", 429)
            response.headers["Retry-After"] = str(remaining)
            return response

        REQUEST_LOG[ip_addr] = (window_start, count + 1)

    return None


# Default values for text inputs, stored as strings for direct use in the
# HTML ``value`` attributes.
_FORM_TEXT_DEFAULTS: Dict[str, str] = {
    "bars": "4",
    "voices": "1",
    "instrument": "Piano",
    "shortest_note": "1/4",
    "tempo": "120",
    "time_signature": "4/4",
    "root": "C",
    "scale_kind": "major",
    "base_octave": "4",
}

_FORM_CHECKBOX_DEFAULTS: Dict[str, bool] = {
    "strict_closure": False,
    "syncopated": False,
}


def _default_form_values() -> Dict[str, object]:
    """Return a fresh merged copy of the text and checkbox defaults."""

    return {**_FORM_TEXT_DEFAULTS, **_FORM_CHECKBOX_DEFAULTS}


def _extract_form_values(form: Mapping[str, str]) -> Dict[str, object]:
    """Return submitted values merged with defaults for re-rendering.

    Text fields stay strings so they can be reinserted into inputs; checkbox
    values become booleans. Empty strings are kept so validation can
    highlight the blank field instead of silently substituting a default.
    """

    merged = _default_form_values()
    for field in _FORM_TEXT_DEFAULTS:
        if field in form:
            merged[field] = form.get(field, "")
    for field in _FORM_CHECKBOX_DEFAULTS:
        merged[field] = bool(form.get(field))
    return merged


def _build_form_context(
    form_values: Optional[Mapping[str, object]] = None,
    error_fields: Optional[Iterable[str]] = None,
) -> Dict[str, object]:
    """Assemble the template context for ``index.html``.

    Only known field names are merged from ``form_values`` so a crafted
    submission cannot inject unrelated template variables.
    """

    context_values = _default_form_values()
    if form_values is not None:
        for name, value in form_values.items():
            if name in context_values:
                context_values[name] = value

    highlighted: Set[str] = set(error_fields or [])

    return {
        "roots": list(NOTES),
        "scale_kinds": list(SCALE_PATTERNS),
        "time_signatures": list(TIME_SIGNATURES),
        "durations": all_durations(),
        "instruments": list(INSTRUMENTS),
        "max_bars": MAX_BARS,
        "min_octave": MIN_OCTAVE,
        "max_octave": MAX_OCTAVE,
        "form_values": context_values,
        "error_fields": highlighted,
    }


def _render_form(
    form_values: Optional[Mapping[str, object]] = None,
    error_fields: Optional[Iterable[str]] = None,
):
    """Render the generator form with supplied values and error highlights."""

    return render_template(
        "index.html", **_build_form_context(form_values, error_fields)
    )


def _generate(values: Mapping[str, object]) -> Melody:
    """Run :func:`generate_melody` with raw form or query values."""

    return generate_melody(
        values.get("bars"),
        values.get("root"),
        values.get("scale_kind"),
        values.get("time_signature"),
        values.get("shortest_note"),
        voices=values.get("voices"),
        tempo=values.get("tempo"),
        base_octave=values.get("base_octave"),
        instrument=values.get("instrument"),
        syncopated=bool(values.get("syncopated")),
        closure="strict" if values.get("strict_closure") else "lenient",
    )


def _midi_download(melody: Melody) -> str:
    """Return the melody as a base64 encoded MIDI file.

    The temporary file is removed even when writing fails.
    """

    tmp = NamedTemporaryFile(suffix=".mid", delete=False)
    tmp.close()
    try:
        create_midi_file(melody, tmp.name)
        with open(tmp.name, "rb") as fh:
            data = fh.read()
    finally:
        if os.path.exists(tmp.name):
            os.remove(tmp.name)
    return base64.b64encode(data).decode("ascii")


def index():
    """Render the form and handle submissions.

    ``GET`` shows the form. ``POST`` validates the submitted values, generates
    a melody and renders the score page. Invalid input flashes the error and
    redisplays the form with the offending field highlighted.
    """

    if request.method == "POST":
        form_values = _extract_form_values(request.form)
        try:
            melody = _generate(form_values)
        except InvalidArgument as exc:
            flash(str(exc))
            return _render_form(form_values, {exc.field} if exc.field else set())

        midi_encoded = ""
        try:
            midi_encoded = _midi_download(melody)
        except (ImportError, OSError, ValueError) as exc:
            logger.exception("MIDI export failed: %s", exc)
            flash("The MIDI download is unavailable for this melody.")

        notation = melody_to_notation(melody)
        partial = notation["partialBars"]
        if partial:
            flash(
                "Some bars could not be filled exactly with the chosen durations: "
                + ", ".join(str(n) for n in partial)
            )
        return render_template(
            "score.html",
            notation=notation,
            midi=midi_encoded,
            voices=len(melody.voices),
        )

    return _render_form()


def melody_json():
    """Return the notation payload for the query parameters as JSON.

    Missing parameters fall back to the form defaults. Invalid values produce
    a ``400`` response with ``error`` and ``field`` keys.
    """

    values: Dict[str, object] = _default_form_values()
    for field in _FORM_TEXT_DEFAULTS:
        if field in request.args:
            values[field] = request.args[field]
    for flag in _FORM_CHECKBOX_DEFAULTS:
        values[flag] = request.args.get(flag, "").lower() in {"1", "true", "on"}
    try:
        melody = _generate(values)
    except InvalidArgument as exc:
        return jsonify({"error": str(exc), "field": exc.field}), 400
    return jsonify(melody_to_notation(melody))


def create_app() -> Flask:
    """Build and configure the Flask application instance.

    Configures the session secret, CSRF protection, request size limit and the
    optional rate limiter, and registers the routes. Outside debug mode
    ``FLASK_SECRET`` must be set; a missing value is logged as ``CRITICAL``
    and raises :class:`RuntimeError` so the app never runs with a throwaway
    key in production.

    Returns:
        Flask: Configured application ready for use by a WSGI server.
    Raises:
        RuntimeError: If ``FLASK_SECRET`` is absent when debug mode is off.
    """

    app = Flask(__name__, template_folder="templates")

    secret = os.environ.get("FLASK_SECRET")
    try:
        max_mb = int(os.environ.get("MAX_UPLOAD_MB", "1"))
    except ValueError:
        max_mb = 1
        logger.warning("Invalid MAX_UPLOAD_MB value; defaulting to 1 MB.")
    rate_limit_env = os.environ.get("RATE_LIMIT_PER_MINUTE")
    try:
        rate_limit_per_minute = int(rate_limit_env) if rate_limit_env else None
    except ValueError:
        logger.warning(
            "RATE_LIMIT_PER_MINUTE must be an integer. Disabling rate limiting."
        )
        rate_limit_per_minute = None

    if not app.debug and not secret:
        logger.critical("FLASK_SECRET environment variable must be set in production.")
        raise RuntimeError("Missing FLASK_SECRET")

    if not secret:
        secret = secrets.token_urlsafe(32)
        logger.warning(
            "FLASK_SECRET environment variable not set. "
            "Using a randomly generated key; sessions will not persist across restarts."
        )
    app.secret_key = secret
    app.config["MAX_CONTENT_LENGTH"] = max_mb * 1024 * 1024
    app.config["RATE_LIMIT_PER_MINUTE"] = rate_limit_per_minute

    csrf.init_app(app)

    app.add_url_rule("/", view_func=index, methods=["GET", "POST"])
    app.add_url_rule("/melody.json", view_func=melody_json, methods=["GET"])

    app.before_request(rate_limit)

    @app.errorhandler(413)
    def handle_request_too_large(_err):
        """Return a concise message when the client uploads too much data."""
        return "Request exceeds configured size limit.", 413

    return app
