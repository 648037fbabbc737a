"""
Page controller: owns the weather / crypto / portfolios card state and keeps each fresh
with its own APScheduler interval job. One source failing never touches another.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

SOURCES = ("weather", "crypto", "portfolios")
DEFAULT_INTERVALS = {"weather": 60, "crypto": 30, "portfolios": 60}


@dataclass(frozen=True)
class ResourceState:
    data: Any = None
    is_loading: bool = True
    error: str = ""


class PageController:
    def __init__(self, fetchers: dict, intervals: Optional[dict] = None, scheduler=None):
        unknown = set(fetchers) - set(SOURCES)
        if unknown:
            raise ValueError(f"Unknown sources: {sorted(unknown)}")
        self.fetchers = dict(fetchers)
        self.intervals = {**DEFAULT_INTERVALS, **(intervals or {})}
        self._states = {source: ResourceState() for source in self.fetchers}
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler
        self._job_ids: list[str] = []
        self._torn_down = False
        self._start_lock = threading.Lock()

    # ── state ──
    def state(self, source: str) -> ResourceState:
        return self._states[source]

    def snapshot(self) -> dict:
        return dict(self._states)

    def _set(self, source: str, **changes) -> None:
        # Results landing after teardown are dropped.
        if self._torn_down:
            return
        self._states[source] = replace(self._states[source], **changes)

    # ── fetch cycle ──
    def refresh(self, source: str) -> ResourceState:
        """
        One fetch cycle for `source`: loading on, fetch, replace data + clear error on
        success, keep old data + set error on failure, loading off either way.
        Overlapping cycles are not guarded; the one that finishes last wins.
        """
        fetch: Callable[[], Any] = self.fetchers[source]
        self._set(source, is_loading=True)
        try:
            data = fetch()
        except Exception as e:
            message = str(e) or f"Failed to fetch {source}"
            logger.warning("[%s] fetch failed: %s", source, message)
            self._set(source, error=message)
        else:
            self._set(source, data=data, error="")
        finally:
            self._set(source, is_loading=False)
        return self._states[source]

    # ── mount / unmount ──
    def start(self) -> None:
        """Fetch every source right away, then on its own interval."""
        with self._start_lock:
            if self._job_ids:
                return
            if self.scheduler is None:
                from apscheduler.schedulers.background import BackgroundScheduler
                self.scheduler = BackgroundScheduler(daemon=True)
            self._torn_down = False
            now = datetime.now()
            for source in self.fetchers:
                job_id = f"refresh_{source}"
                self.scheduler.add_job(
                    self.refresh,
                    "interval",
                    args=[source],
                    seconds=self.intervals[source],
                    id=job_id,
                    next_run_time=now,
                    replace_existing=True,
                )
                self._job_ids.append(job_id)
            if not self.scheduler.running:
                self.scheduler.start()
            logger.info("Polling started: %s", ", ".join(f"{s} every {self.intervals[s]}s" for s in self.fetchers))

    def stop(self) -> None:
        """Cancel all polling jobs. In-flight fetches finish but their results are discarded."""
        with self._start_lock:
            self._torn_down = True
            for job_id in self._job_ids:
                try:
                    self.scheduler.remove_job(job_id)
                except LookupError:
                    # JobLookupError subclasses KeyError
                    logger.debug("Job %s already gone", job_id)
            self._job_ids = []
            if self._owns_scheduler and self.scheduler is not None and self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            if self._owns_scheduler:
                # a shut-down pool cannot take new jobs; start() builds a fresh one
                self.scheduler = None
            logger.info("Polling stopped")


def build_fetchers(config: dict, session=None) -> dict:
    """Wire each card to its real data module."""
    from coinbase_manager import fetch_portfolios
    from finance_manager import fetch_crypto_snapshot, get_effective_api_keys
    from weather_manager import build_weather_snapshot, fetch_current_weather

    timeout = config.get("http_timeout_seconds")
    location = config["location"]
    reference_tz = config["reference_timezone"]["timezone"]

    def fetch_weather():
        api_key = get_effective_api_keys(config).get("openweather", "")
        payload = fetch_current_weather(location["lat"], location["lon"], api_key, session=session, timeout=timeout)
        return build_weather_snapshot(payload, location, reference_tz)

    def fetch_crypto():
        return fetch_crypto_snapshot(session=session, timeout=timeout)

    def fetch_portfolio_list():
        return fetch_portfolios(session=session, timeout=timeout)

    return {
        "weather": fetch_weather,
        "crypto": fetch_crypto,
        "portfolios": fetch_portfolio_list,
    }
