"""OCI API helpers.

Pure-data functions over the OCI Python SDK used by the capacity poller.
Every public function takes the target region explicitly and returns plain
Python objects.

This package re-exports all public names so that
``from gpu_shape_scout.oci_api import X`` works without reaching into the
submodules.
"""

import oci as oci  # noqa: F401  # re-export for mock patching

# -- Auth ---------------------------------------------------------------------
from gpu_shape_scout.oci_api._auth import OciProvider, build_provider  # noqa: F401

# -- Errors -------------------------------------------------------------------
from gpu_shape_scout.oci_api._errors import (  # noqa: F401
    UpstreamError,
    call_upstream,
    check_response,
)

# -- Capacity reports ---------------------------------------------------------
from gpu_shape_scout.oci_api.capacity import (  # noqa: F401
    AvailabilityFact,
    ReportVariant,
    build_report_details,
    request_capacity_report,
)

# -- Topology -----------------------------------------------------------------
from gpu_shape_scout.oci_api.topology import (  # noqa: F401
    list_availability_domains,
    list_fault_domains,
    list_regions,
)
