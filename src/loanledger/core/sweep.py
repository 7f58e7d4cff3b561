# ABOUTME: Background scheduler that reclassifies past-due loans as OVERDUE.
# ABOUTME: Sweeps once at startup, then on a fixed interval; a failed run never stops it.

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from loanledger.core.clock import Clock
from loanledger.core.ledger import LoanLedger
from loanledger.db.connection import ConnectionFactory

logger = logging.getLogger(__name__)

# Due dates have whole-day granularity, so a quarter-hour cadence is plenty.
DEFAULT_SWEEP_INTERVAL = 900.0


class OverdueSweeper:
    """Runs LoanLedger.sweep_overdue on a daemon thread.

    The sweeper opens its own connection for every run through
    connection_factory, so it shares nothing with request-handling threads
    except the database itself.

    Usage:
        with OverdueSweeper(connection_factory(path), interval=600):
            serve_requests()
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Clock | None = None,
        on_sweep: Callable[[int], Any] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Sweep interval must be positive, got {interval}")
        self._connect = connection_factory
        self._interval = interval
        self._clock = clock
        self._on_sweep = on_sweep
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.runs = 0
        self.failures = 0
        self.last_count: int | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int | None:
        """Sweep once.

        Returns:
            Number of loans marked OVERDUE, or None if the run failed.
        """
        self.runs += 1
        try:
            conn = self._connect()
            try:
                count = LoanLedger(conn, clock=self._clock).sweep_overdue()
            finally:
                conn.close()
            self.last_count = count
            if self._on_sweep is not None:
                self._on_sweep(count)
        except Exception:
            self.failures += 1
            logger.exception("Overdue sweep failed; will retry in %.0fs", self._interval)
            return None

        if count > 0:
            logger.info("Overdue sweep: %d loan(s) marked as OVERDUE.", count)
        else:
            logger.info("Overdue sweep: no overdue loans found.")
        return count

    def serve(self) -> None:
        """Sweep now, then every interval until stop() is called. Blocks."""
        logger.info("Checking for overdue loans on startup...")
        self.run_once()
        while not self._stop.wait(self._interval):
            self.run_once()
        logger.info("Overdue sweeper stopped after %d run(s)", self.runs)

    def start(self) -> None:
        """Run serve() on a daemon thread. The first sweep starts immediately."""
        if self.is_running:
            raise RuntimeError("Overdue sweeper is already running")
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.serve, name="overdue-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait for the current run to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __enter__(self) -> OverdueSweeper:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
