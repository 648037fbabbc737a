"""WSGI entry point for production deployment (gunicorn)."""

import atexit
import os
import sys
from pathlib import Path

BASE = Path(__file__).resolve().parent
sys.path.insert(0, str(BASE))

from dotenv import load_dotenv

load_dotenv(BASE / ".env")

from finance_manager import load_config
from server import build_app, build_controller, setup_logging

CONFIG_PATH = Path(os.environ.get("DASHBOARD_CONFIG", BASE / "config.json"))

setup_logging()
config = load_config(CONFIG_PATH)
controller = build_controller(config)
app = build_app(config, controller)

# One controller per worker process; run gunicorn with a single worker to poll once
controller.start()
atexit.register(controller.stop)
