"""Shared test fixtures for gpu-shape-scout tests."""

from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from gpu_shape_scout import metrics
from gpu_shape_scout.settings import ScoutSettings


def ok_response(data: object, status: int = 200) -> SimpleNamespace:
    """Build a stand-in for ``oci.response.Response``."""
    return SimpleNamespace(status=status, data=data, headers={})


@pytest.fixture(autouse=True)
def registry() -> CollectorRegistry:
    """Give every test an empty metric registry."""
    return metrics.init_registry(CollectorRegistry())


@pytest.fixture(autouse=True)
def _propagate_logs():
    """Let caplog see records from the package logger."""
    app_logger = logging.getLogger("gpu_shape_scout")
    previous = app_logger.propagate
    app_logger.propagate = True
    yield
    app_logger.propagate = previous


@pytest.fixture()
def settings() -> ScoutSettings:
    return ScoutSettings(
        _env_file=None,
        oci_tenancy_id="ocid1.tenancy.oc1..test",
        oci_compartment_id="ocid1.compartment.oc1..test",
        report_variant="per_availability_domain",
        poll_enabled=False,
    )


@pytest.fixture()
def provider() -> MagicMock:
    """A provider whose region-bound clients are mocks.

    ``provider.identity(region)`` always returns ``provider.identity_client``
    and ``provider.compute(region)`` returns ``provider.compute_client``.
    """
    prov = MagicMock()
    prov.home_region = "us-ashburn-1"
    prov.identity_client = MagicMock()
    prov.compute_client = MagicMock()
    prov.identity.return_value = prov.identity_client
    prov.compute.return_value = prov.compute_client
    return prov


@pytest.fixture()
def client(settings, provider):
    """Create a FastAPI test client with a mocked OCI provider."""
    from gpu_shape_scout.app import app

    with (
        patch("gpu_shape_scout.app.get_settings", return_value=settings),
        patch("gpu_shape_scout.oci_api.build_provider", return_value=provider),
        TestClient(app) as c,
    ):
        yield c
