"""Compute capacity reports.

Two request shapes exist for the same report:

- ``per_fault_domain`` (default): one request per (AD, FD) pair, with the
  fault domain set on every shape line item.  The FD of each fact is the
  one that was requested.
- ``per_availability_domain``: one request per AD without a fault domain;
  the provider reports the FD as an attribute of each returned fact.

The two are kept as distinct call paths; callers choose one.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from oci.core.models import (
    CapacityReportInstanceShapeConfig,
    CreateCapacityReportShapeAvailabilityDetails,
    CreateComputeCapacityReportDetails,
)

from gpu_shape_scout.oci_api._auth import OciProvider
from gpu_shape_scout.oci_api._errors import call_upstream
from gpu_shape_scout.shapes import ShapeSpec

logger = logging.getLogger(__name__)


class ReportVariant(StrEnum):
    """Where the fault domain lives in a capacity report exchange."""

    per_fault_domain = "per_fault_domain"
    per_availability_domain = "per_availability_domain"


@dataclass(frozen=True)
class AvailabilityFact:
    """Availability of one shape in one AD / FD, as reported by OCI."""

    shape: str
    availability_domain: str
    fault_domain: str | None
    status: str | None
    available_count: int | None = None

    @property
    def count(self) -> int:
        """Available count with an absent value resolved to 0.

        OCI currently leaves ``available_count`` unset for most shapes, so
        the zero fallback is the common case rather than an edge case.
        """
        return self.available_count if self.available_count is not None else 0


def build_report_details(
    compartment_id: str,
    availability_domain: str,
    shapes: Sequence[ShapeSpec],
    fault_domain: str | None = None,
) -> CreateComputeCapacityReportDetails:
    """Build the request body listing every shape with its configuration."""
    return CreateComputeCapacityReportDetails(
        compartment_id=compartment_id,
        availability_domain=availability_domain,
        shape_availabilities=[
            CreateCapacityReportShapeAvailabilityDetails(
                instance_shape=shape.name,
                fault_domain=fault_domain,
                instance_shape_config=CapacityReportInstanceShapeConfig(
                    ocpus=shape.ocpus,
                    memory_in_gbs=shape.memory_in_gbs,
                ),
            )
            for shape in shapes
        ],
    )


def request_capacity_report(
    provider: OciProvider,
    region: str,
    compartment_id: str,
    availability_domain: str,
    shapes: Sequence[ShapeSpec],
    fault_domain: str | None = None,
) -> list[AvailabilityFact]:
    """Request a capacity report for one AD (or one AD / FD pair).

    Returns one fact per shape the provider reports on.  Shapes the provider
    omits are not synthesised.  Raises
    :class:`~gpu_shape_scout.oci_api._errors.UpstreamError` on failure.
    """
    details = build_report_details(compartment_id, availability_domain, shapes, fault_domain)
    client = provider.compute(region)
    response = call_upstream(
        "create_compute_capacity_report",
        client.create_compute_capacity_report,
        details,
    )

    facts: list[AvailabilityFact] = []
    for availability in response.data.shape_availabilities or []:
        facts.append(
            AvailabilityFact(
                shape=availability.instance_shape,
                availability_domain=availability_domain,
                fault_domain=(
                    fault_domain if fault_domain is not None else availability.fault_domain
                ),
                status=availability.availability_status,
                available_count=availability.available_count,
            )
        )
    return facts
