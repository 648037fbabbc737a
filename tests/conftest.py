import pytest
from unittest.mock import MagicMock

from finance_manager import CryptoQuote, CryptoSnapshot, load_config
from coinbase_manager import Portfolio
from page_controller import PageController
from weather_manager import WeatherSnapshot


class FakeScheduler:
    """Stands in for BackgroundScheduler: records jobs, runs them only when fired."""

    def __init__(self):
        self.jobs = {}
        self.running = False

    def add_job(self, func, trigger, args=None, seconds=None, id=None, next_run_time=None, **kwargs):
        self.jobs[id] = {"func": func, "args": args or [], "seconds": seconds, "next_run_time": next_run_time}

    def remove_job(self, job_id):
        del self.jobs[job_id]

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False

    def fire(self, job_id):
        job = self.jobs[job_id]
        return job["func"](*job["args"])

    def fire_all(self):
        for job_id in list(self.jobs):
            self.fire(job_id)


@pytest.fixture
def config():
    return load_config(None)


@pytest.fixture
def weather_snapshot():
    return WeatherSnapshot(
        location="Abu Dhabi", temperature=25, condition="Clear", description="clear sky",
        date="Oct 19, 2026", timestamp="09:05 PM", est_time="01:05 PM",
    )


@pytest.fixture
def crypto_snapshot():
    return CryptoSnapshot(
        btc=CryptoQuote("BTC", 65000.0, 2.5, "2023-11-14T22:13:20Z"),
        eth=CryptoQuote("ETH", 3200.0, -1.2, "2023-11-14T22:13:20Z"),
    )


@pytest.fixture
def portfolios():
    return [
        Portfolio(id="p-1", name="Main", entity_id="e-1", organization_id="o-1"),
        Portfolio(id="p-2", name="Cold Storage", entity_id="e-1", organization_id="o-1"),
    ]


@pytest.fixture
def fetchers(weather_snapshot, crypto_snapshot, portfolios):
    return {
        "weather": MagicMock(return_value=weather_snapshot),
        "crypto": MagicMock(return_value=crypto_snapshot),
        "portfolios": MagicMock(return_value=portfolios),
    }


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def controller(fetchers, scheduler):
    return PageController(fetchers, scheduler=scheduler)


@pytest.fixture
def upstream():
    """Fake upstream calls injected into the routes."""
    return {
        "fetch_portfolios_payload": MagicMock(return_value={"portfolios": []}),
        "fetch_current_weather": MagicMock(return_value={"main": {"temp": 24.7}, "weather": [{"main": "Clear", "description": "clear sky"}]}),
    }


@pytest.fixture
def app(config, controller, upstream):
    """Create and configure a new app instance for each test."""
    from server import build_app
    import routes

    app = build_app(config, controller)
    routes.init_routes({**upstream, "CONFIG": config, "controller": controller})
    app.config.update({"TESTING": True})
    yield app


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


def make_response(status=200, json_data=None, text=None, reason="OK"):
    r = MagicMock()
    r.status_code = status
    r.ok = 200 <= status < 300
    r.reason = reason
    r.text = text if text is not None else ""
    if isinstance(json_data, Exception):
        r.json.side_effect = json_data
    else:
        r.json.return_value = json_data
    return r


@pytest.fixture
def response():
    """Factory for fake requests.Response objects."""
    return make_response
