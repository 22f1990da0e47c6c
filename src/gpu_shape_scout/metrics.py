"""Prometheus metric publication.

The registry is process-wide state created once by :func:`init_registry`
and never torn down.  Each availability fact maps to one child of the
``gpu_shape_status`` gauge; publishing the same label set again updates
that child in place, so series are republished on every poll rather than
appended.

Series are never removed: when a shape changes status, the series for the
previous status keeps its last value until the process restarts.
"""

from __future__ import annotations

import logging
import threading
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from gpu_shape_scout.oci_api.capacity import AvailabilityFact

logger = logging.getLogger(__name__)

SHAPE_STATUS_METRIC = "gpu_shape_status"
SHAPE_STATUS_LABELS = ("availability_domain", "fault_domain", "shape", "status")

_registry: CollectorRegistry | None = None
_shape_status: Gauge | None = None
_poll_errors: Counter | None = None
_last_success: Gauge | None = None
_init_lock = threading.Lock()


def init_registry(registry: CollectorRegistry | None = None) -> CollectorRegistry:
    """Create the metric registry and register the scout's metrics.

    Without an explicit *registry* the call is idempotent and returns the
    registry created by the first call.  Passing a registry replaces the
    current one (used by tests to start from an empty registry).
    """
    global _registry, _shape_status, _poll_errors, _last_success  # noqa: PLW0603
    with _init_lock:
        if registry is None and _registry is not None:
            return _registry
        reg = registry if registry is not None else CollectorRegistry()
        _shape_status = Gauge(
            SHAPE_STATUS_METRIC,
            "Available count of a GPU shape per availability/fault domain and status",
            labelnames=SHAPE_STATUS_LABELS,
            registry=reg,
        )
        _poll_errors = Counter(
            "gpu_shape_poll_errors",
            "Failed OCI API calls during capacity polls",
            labelnames=("operation",),
            registry=reg,
        )
        _last_success = Gauge(
            "gpu_shape_poll_last_success_timestamp_seconds",
            "Unix time of the last completed capacity poll",
            registry=reg,
        )
        _registry = reg
        return reg


def get_registry() -> CollectorRegistry:
    """Return the process-wide registry."""
    if _registry is None:
        raise RuntimeError("Metric registry is not initialised; call init_registry() first")
    return _registry


def shape_status_labels(
    fact: AvailabilityFact, availability_domain: str, fault_domain: str | None
) -> dict[str, str]:
    """Return the label set for *fact*.

    A fault domain or status the provider did not report is labelled ``""``
    so the fact is still published.
    """
    return {
        "availability_domain": availability_domain,
        "fault_domain": fault_domain or "",
        "shape": fact.shape,
        "status": fact.status or "",
    }


def publish(
    fact: AvailabilityFact,
    region: str,
    availability_domain: str,
    fault_domain: str | None,
) -> None:
    """Set the ``gpu_shape_status`` gauge for *fact*."""
    if _shape_status is None:
        raise RuntimeError("Metric registry is not initialised; call init_registry() first")
    labels = shape_status_labels(fact, availability_domain, fault_domain)
    logger.info(
        "[%s] %s %s/%s >> %s {%s}",
        region,
        fact.shape,
        labels["fault_domain"],
        availability_domain,
        labels["status"],
        fact.available_count,
    )
    _shape_status.labels(**labels).set(fact.count)


def record_upstream_error(operation: str) -> None:
    """Count one failed OCI call."""
    if _poll_errors is not None:
        _poll_errors.labels(operation=operation).inc()


def mark_cycle_success() -> None:
    """Stamp the completion time of a poll cycle."""
    if _last_success is not None:
        _last_success.set(time.time())


def render_latest() -> tuple[bytes, str]:
    """Return the exposition payload and its content type."""
    return generate_latest(get_registry()), CONTENT_TYPE_LATEST
