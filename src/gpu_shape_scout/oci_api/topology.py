"""Region, availability domain, and fault domain discovery."""

from __future__ import annotations

import logging

from gpu_shape_scout.oci_api._auth import OciProvider
from gpu_shape_scout.oci_api._errors import call_upstream

logger = logging.getLogger(__name__)


def list_regions(provider: OciProvider, tenancy_id: str) -> list[str]:
    """Return the names of the regions the tenancy is subscribed to."""
    client = provider.identity(provider.home_region)
    response = call_upstream(
        "list_region_subscriptions", client.list_region_subscriptions, tenancy_id
    )
    regions = [sub.region_name for sub in response.data]
    logger.debug("Subscribed regions: %s", ", ".join(regions))
    return regions


def list_availability_domains(
    provider: OciProvider, region: str, compartment_id: str
) -> list[str]:
    """Return the availability domain names of *compartment_id* in *region*."""
    client = provider.identity(region)
    response = call_upstream(
        "list_availability_domains", client.list_availability_domains, compartment_id
    )
    ads = [ad.name for ad in response.data]
    for ad in ads:
        logger.debug("Availability Domain: %s", ad)
    return ads


def list_fault_domains(
    provider: OciProvider,
    region: str,
    compartment_id: str,
    availability_domain: str,
) -> list[str]:
    """Return the fault domain names of *availability_domain*."""
    client = provider.identity(region)
    response = call_upstream(
        "list_fault_domains",
        client.list_fault_domains,
        compartment_id,
        availability_domain,
    )
    fds = [fd.name for fd in response.data]
    for fd in fds:
        logger.debug("FD: %s", fd)
    return fds
