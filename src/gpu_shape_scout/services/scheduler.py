"""Fixed-rate background scheduler for capacity polls."""

from __future__ import annotations

import logging
import threading
import time

from gpu_shape_scout.oci_api import UpstreamError
from gpu_shape_scout.services.poller import CapacityPoller, run_cycle

logger = logging.getLogger(__name__)

_scheduler_thread: threading.Thread | None = None
_scheduler_stop = threading.Event()


def _scheduler_loop(poller: CapacityPoller, initial_delay: float, period: float) -> None:
    """Run a cycle after *initial_delay*, then every *period* seconds."""
    logger.info(
        "Capacity scheduler started (initial_delay=%ds, period=%ds)", initial_delay, period
    )
    next_run = time.monotonic() + initial_delay
    while not _scheduler_stop.wait(timeout=max(0.0, next_run - time.monotonic())):
        # Fixed rate: the next slot is measured from the scheduled start.
        next_run += period
        try:
            run_cycle(poller)
        except UpstreamError as exc:
            logger.error("Scheduled capacity poll failed: %s", exc)
        except Exception:
            logger.exception("Scheduled capacity poll crashed")
        if next_run < time.monotonic():
            # A slow cycle skips missed slots instead of running back-to-back.
            next_run = time.monotonic() + period


def start_scheduler(poller: CapacityPoller, initial_delay: float, period: float) -> None:
    """Start the background scheduler thread."""
    global _scheduler_thread  # noqa: PLW0603
    if _scheduler_thread is not None and _scheduler_thread.is_alive():
        return
    _scheduler_stop.clear()
    _scheduler_thread = threading.Thread(
        target=_scheduler_loop,
        args=(poller, initial_delay, period),
        daemon=True,
        name="capacity-scheduler",
    )
    _scheduler_thread.start()


def stop_scheduler() -> None:
    """Stop the background scheduler thread."""
    _scheduler_stop.set()
    if _scheduler_thread is not None:
        _scheduler_thread.join(timeout=5)


def is_running() -> bool:
    """Return *True* while the scheduler thread is alive."""
    return _scheduler_thread is not None and _scheduler_thread.is_alive()
