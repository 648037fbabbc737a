"""Flask route handlers for the dashboard (Blueprint)."""

import logging

from flask import Blueprint, jsonify, redirect, request

bp = Blueprint("main", __name__)
logger = logging.getLogger(__name__)

# Module-level references, set by init_routes()
CONFIG = {}
controller = None
_deps = {}  # all other dependencies


def init_routes(config):
    """Inject dependencies from main(). Call before registering blueprint."""
    global CONFIG, controller, _deps
    CONFIG = config.get("CONFIG", {})
    controller = config.get("controller")
    _deps.update(config)


# ── Accessor helpers for injected dependencies ──
def fetch_portfolios_payload():
    return _deps["fetch_portfolios_payload"]()


def fetch_current_weather(lat, lon):
    return _deps["fetch_current_weather"](lat, lon)


def render_page(snapshot):
    poll_seconds = min(CONFIG.get("refresh_seconds", {}).values(), default=30)
    return _deps["render_page"](snapshot, CONFIG, poll_seconds=poll_seconds)


def render_cards(snapshot):
    return _deps["render_cards"](snapshot, CONFIG)


# ── Page ──
@bp.route("/")
def index():
    return render_page(controller.snapshot())


@bp.route("/refresh/<source>", methods=["POST"])
def refresh(source):
    """Manual refresh for one card, then back to the page."""
    if source not in controller.fetchers:
        return jsonify({"error": f"Unknown source: {source}"}), 404
    controller.refresh(source)
    return redirect("/")


@bp.route("/api/cards")
def api_cards():
    """Current card fragments, polled by the page."""
    return jsonify(render_cards(controller.snapshot()))


# ── Upstream proxies ──
@bp.route("/api/weather")
def api_weather():
    try:
        lat = float(request.args["lat"])
        lon = float(request.args["lon"])
    except (KeyError, ValueError):
        return jsonify({"error": "lat and lon query parameters are required"}), 400
    try:
        return jsonify(fetch_current_weather(lat, lon))
    except Exception as e:
        logger.error("Weather API Error: %s", e)
        return jsonify({"error": str(e) or "Failed to fetch weather"}), 500


@bp.route("/api/coinbase/portfolios")
def api_coinbase_portfolios():
    """Signed GET /v1/portfolios relayed as-is; any failure becomes {error} with a 500."""
    try:
        return jsonify(fetch_portfolios_payload())
    except Exception as e:
        logger.error("Coinbase API Error: %s (status=%s)", e, getattr(e, "status", None))
        return jsonify({"error": str(e) or "Failed to fetch portfolio data"}), 500
