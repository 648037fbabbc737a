"""
Local server for the dashboard.
Run: python server.py
Then open http://localhost:5000 — weather, crypto prices and Coinbase Prime portfolios,
each polled on its own timer and refreshable from its card.
"""

import atexit
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

BASE = Path(__file__).resolve().parent
sys.path.insert(0, str(BASE))

# Load .env so API keys work when running server
load_dotenv(BASE / ".env")

CONFIG_PATH = Path(os.environ.get("DASHBOARD_CONFIG", BASE / "config.json"))

logger = logging.getLogger("server")


def setup_logging(level=None):
    logging.basicConfig(
        level=level or os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_app(config, controller, session=None):
    """Flask app with routes wired to `controller` and the real upstream fetchers."""
    from coinbase_manager import fetch_portfolios_payload
    from dashboard import render_cards, render_page
    from finance_manager import get_effective_api_keys
    from routes import bp, init_routes
    from weather_manager import fetch_current_weather

    timeout = config.get("http_timeout_seconds")

    def weather_proxy(lat, lon):
        api_key = get_effective_api_keys(config).get("openweather", "")
        return fetch_current_weather(lat, lon, api_key, session=session, timeout=timeout)

    def portfolios_proxy():
        # Credentials are re-read from the environment on every call
        return fetch_portfolios_payload(session=session, timeout=timeout)

    app = Flask(__name__)

    init_routes({
        "CONFIG": config,
        "controller": controller,
        "fetch_portfolios_payload": portfolios_proxy,
        "fetch_current_weather": weather_proxy,
        "render_page": render_page,
        "render_cards": render_cards,
    })
    app.register_blueprint(bp)
    return app


def build_controller(config):
    from page_controller import PageController, build_fetchers
    return PageController(build_fetchers(config), intervals=config.get("refresh_seconds"))


def main():
    from finance_manager import load_config

    setup_logging()
    config = load_config(CONFIG_PATH)
    controller = build_controller(config)
    app = build_app(config, controller)

    # Only poll in the reloader child process (or when reloader is off)
    # to avoid duplicate jobs when use_reloader=True
    use_reloader = os.environ.get("DASHBOARD_RELOAD", "").lower() in ("1", "true", "yes")
    is_reloader_parent = use_reloader and os.environ.get("WERKZEUG_RUN_MAIN") != "true"
    if not is_reloader_parent:
        controller.start()
        atexit.register(controller.stop)
        intervals = config["refresh_seconds"]
        print(f"Auto-refresh: weather every {intervals['weather']}s, crypto every {intervals['crypto']}s, "
              f"portfolios every {intervals['portfolios']}s")

    port = int(os.environ.get("PORT", 5000))
    host = os.environ.get("HOST", "0.0.0.0")
    print(f"Dashboard: http://{host}:{port}")
    if not os.environ.get("COINBASE_ACCESS_KEY"):
        print("Note: COINBASE_ACCESS_KEY / COINBASE_SIGNING_KEY / COINBASE_PASSPHRASE not set; portfolio card will show an error.")
    if not os.environ.get("OPENWEATHER_API_KEY"):
        print("Note: OPENWEATHER_API_KEY not set; weather card will show an error.")
    print("Ctrl+C to stop.")
    app.run(host=host, port=port, debug=False, use_reloader=use_reloader)


if __name__ == "__main__":
    main()
