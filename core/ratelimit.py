"""
ratelimit.py -- In-memory fixed-window admission controller.

Counters are kept per endpoint key and per client identifier. A client's
window opens at its first request after the previous window expired and
lasts exactly `window` seconds; it is reset, never slid. This allows a burst
of up to 2x max_requests straddling a window boundary, which is accepted.

Counters are process-local. Several server instances each enforce their own
limit.

Usage:
    controller = AdmissionController(window=60)
    controller.start()                                   # inside a running loop
    result = controller.check("203.0.113.7", "blacklist", 20)
    if not result.allowed: ...
    controller.stop()
"""

import asyncio
import logging
import math
import threading
import time
from collections.abc import Callable
from typing import Optional

from core.models import RateLimitResult, RateWindowRecord

logger = logging.getLogger("ipguard.ratelimit")

DEFAULT_WINDOW = 60


class _EndpointStore:
    """Client id -> RateWindowRecord for a single endpoint key."""

    def __init__(self) -> None:
        self.records: dict[str, RateWindowRecord] = {}
        self.lock = threading.Lock()


class AdmissionController:
    def __init__(
        self,
        window: float = DEFAULT_WINDOW,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window <= 0:
            raise ValueError("window must be positive")
        self.window = window
        self.sweep_interval = sweep_interval if sweep_interval is not None else window
        self._clock = clock
        self._stores: dict[str, _EndpointStore] = {}
        # Guards creation of stores only; never held while a record is mutated.
        self._stores_lock = threading.Lock()
        self._sweep_task: Optional[asyncio.Task] = None

    def _store(self, endpoint: str) -> _EndpointStore:
        store = self._stores.get(endpoint)
        if store is None:
            with self._stores_lock:
                store = self._stores.setdefault(endpoint, _EndpointStore())
        return store

    def check(self, client_id: str, endpoint: str, max_requests: int) -> RateLimitResult:
        """Admit or deny one request from client_id to endpoint.

        The lookup, expiry test and increment run under the endpoint's lock so
        two concurrent requests can never both take the last slot.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")

        store = self._store(endpoint)
        with store.lock:
            now = self._clock()
            record = store.records.get(client_id)

            if record is None or now - record.window_start > self.window:
                store.records[client_id] = RateWindowRecord(window_start=now)
                return RateLimitResult(
                    allowed=True,
                    remaining=max_requests - 1,
                    reset_in=math.ceil(self.window),
                    limit=max_requests,
                )

            reset_in = math.ceil(record.window_start + self.window - now)

            if record.count >= max_requests:
                logger.info("Rate limit hit: endpoint=%s client=%s reset_in=%ds", endpoint, client_id, reset_in)
                return RateLimitResult(allowed=False, remaining=0, reset_in=reset_in, limit=max_requests)

            record.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=max_requests - record.count,
                reset_in=reset_in,
                limit=max_requests,
            )

    def tracked(self, endpoint: str) -> int:
        """Return the number of client records currently held for endpoint."""
        store = self._stores.get(endpoint)
        if store is None:
            return 0
        with store.lock:
            return len(store.records)

    def sweep(self) -> int:
        """Evict expired records from every store. Returns the number removed.

        Locks one store at a time so admission checks on other endpoints are
        never blocked by the sweep.
        """
        removed = 0
        for endpoint, store in list(self._stores.items()):
            with store.lock:
                now = self._clock()
                stale = [k for k, v in store.records.items() if now - v.window_start > self.window]
                for key in stale:
                    del store.records[key]
            if stale:
                logger.debug("Swept %d expired record(s) from endpoint=%s", len(stale), endpoint)
            removed += len(stale)
        return removed

    # ------------------------------------------------------------------
    # Background sweep lifecycle
    # ------------------------------------------------------------------

    async def _sweep_loop(self) -> None:
        # CancelledError from stop() propagates out of asyncio.sleep.
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Rate-limit sweep failed; retrying in %ss", self.sweep_interval)

    def start(self) -> asyncio.Task:
        """Schedule the periodic sweep on the running event loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        return self._sweep_task

    def stop(self) -> None:
        """Cancel the periodic sweep, if running."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            self._sweep_task = None

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()
