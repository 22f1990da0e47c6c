"""Capacity poller – one depth-first pass over regions, ADs, and FDs.

A cycle walks every subscribed region, every availability domain of the
configured compartment, and (in the ``per_fault_domain`` variant) every
fault domain, requests a capacity report for each unit, and publishes every
returned fact as a gauge.

Failure boundaries:
- region list fails → the whole cycle is aborted and the error re-raised;
  no metric is touched.
- AD list fails → that region is skipped.
- FD list fails → that AD is skipped.
- report request fails → that unit is skipped; its siblings still run.

There are no retries within a cycle; the next scheduled cycle picks up
transient failures.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field

from gpu_shape_scout import metrics, oci_api
from gpu_shape_scout.oci_api import OciProvider, ReportVariant, UpstreamError
from gpu_shape_scout.shapes import ShapeSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BranchFailure:
    """A skipped branch of the traversal."""

    region: str
    operation: str
    error: str
    availability_domain: str | None = None
    fault_domain: str | None = None


@dataclass
class PollSummary:
    """Outcome of one poll cycle."""

    regions: int = 0
    units: int = 0
    published: int = 0
    failures: list[BranchFailure] = field(default_factory=list)


class CapacityPoller:
    """Drives capacity poll cycles for one tenancy / compartment."""

    def __init__(
        self,
        provider: OciProvider,
        tenancy_id: str,
        compartment_id: str,
        shapes: Sequence[ShapeSpec],
        variant: ReportVariant | str = ReportVariant.per_fault_domain,
    ) -> None:
        self.provider = provider
        self.tenancy_id = tenancy_id
        self.compartment_id = compartment_id
        self.shapes = tuple(shapes)
        self.variant = ReportVariant(variant)

    def poll_once(self) -> PollSummary:
        """Run one full traversal and publish every observed fact.

        Raises :class:`UpstreamError` only when the region list cannot be
        fetched.
        """
        logger.info("Generate compute capacity report.")
        summary = PollSummary()
        try:
            regions = oci_api.list_regions(self.provider, self.tenancy_id)
        except UpstreamError as exc:
            metrics.record_upstream_error(exc.operation)
            logger.error("Cannot list regions, aborting cycle: %s", exc)
            raise

        for region in regions:
            summary.regions += 1
            self._poll_region(region, summary)

        metrics.mark_cycle_success()
        logger.info(
            "Capacity poll complete: %d regions, %d units, %d facts, %d failures",
            summary.regions,
            summary.units,
            summary.published,
            len(summary.failures),
        )
        return summary

    def _poll_region(self, region: str, summary: PollSummary) -> None:
        try:
            ads = oci_api.list_availability_domains(self.provider, region, self.compartment_id)
        except UpstreamError as exc:
            self._fail(summary, exc, region)
            return

        for ad in ads:
            if self.variant is ReportVariant.per_fault_domain:
                self._poll_fault_domains(region, ad, summary)
            else:
                self._poll_unit(region, ad, None, summary)

    def _poll_fault_domains(self, region: str, ad: str, summary: PollSummary) -> None:
        try:
            fds = oci_api.list_fault_domains(self.provider, region, self.compartment_id, ad)
        except UpstreamError as exc:
            self._fail(summary, exc, region, ad)
            return

        for fd in fds:
            self._poll_unit(region, ad, fd, summary)

    def _poll_unit(self, region: str, ad: str, fd: str | None, summary: PollSummary) -> None:
        summary.units += 1
        try:
            facts = oci_api.request_capacity_report(
                self.provider, region, self.compartment_id, ad, self.shapes, fault_domain=fd
            )
        except UpstreamError as exc:
            self._fail(summary, exc, region, ad, fd)
            return

        for fact in facts:
            # Request-scoped FD wins; otherwise the fact carries it.
            metrics.publish(fact, region, ad, fd if fd is not None else fact.fault_domain)
            summary.published += 1

    def _fail(
        self,
        summary: PollSummary,
        exc: UpstreamError,
        region: str,
        ad: str | None = None,
        fd: str | None = None,
    ) -> None:
        metrics.record_upstream_error(exc.operation)
        location = "/".join(part for part in (region, ad, fd) if part)
        logger.error("Skipping %s: %s", location, exc)
        summary.failures.append(
            BranchFailure(
                region=region,
                operation=exc.operation,
                error=str(exc),
                availability_domain=ad,
                fault_domain=fd,
            )
        )


# ---------------------------------------------------------------------------
# Single-flight guard
# ---------------------------------------------------------------------------

_cycle_lock = threading.Lock()


def run_cycle(poller: CapacityPoller) -> PollSummary:
    """Run one cycle, serialised against every other caller.

    Both the scheduled tick and the manual trigger go through here; a caller
    arriving while a cycle is running waits for it and then runs its own.
    """
    with _cycle_lock:
        return poller.poll_once()
