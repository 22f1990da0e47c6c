"""Tests for the capacity poller traversal and failure boundaries."""

import logging
import threading
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, call, patch

import oci
import pytest
from oci.core.models import CapacityReportShapeAvailability, ComputeCapacityReport

from gpu_shape_scout.oci_api import AvailabilityFact, UpstreamError
from gpu_shape_scout.services.poller import CapacityPoller, run_cycle
from gpu_shape_scout.shapes import DEFAULT_SHAPES

H100 = "BM.GPU.H100.8"


def _fact(ad: str, count: int | None = 3, fd: str | None = None) -> AvailabilityFact:
    return AvailabilityFact(H100, ad, fd, "AVAILABLE", count)


def _poller(variant: str = "per_availability_domain") -> CapacityPoller:
    return CapacityPoller(
        provider=MagicMock(),
        tenancy_id="ocid1.tenancy",
        compartment_id="ocid1.compartment",
        shapes=DEFAULT_SHAPES,
        variant=variant,
    )


def _gauges(registry) -> list:
    return [
        s
        for metric in registry.collect()
        if metric.name == "gpu_shape_status"
        for s in metric.samples
    ]


def _upstream(operation: str, status: int = 500) -> UpstreamError:
    return UpstreamError(operation, status=status, code="InternalServerError")


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    """One region, two ADs, the second AD's report fails."""

    def _run(self, registry, ad1_count, caplog):
        def _report(provider, region, compartment, ad, shapes, fault_domain=None):
            if ad == "AD-2":
                raise _upstream("create_compute_capacity_report")
            return [_fact("AD-1", ad1_count)]

        with (
            patch("gpu_shape_scout.oci_api.list_regions", return_value=["us-east-1"]),
            patch(
                "gpu_shape_scout.oci_api.list_availability_domains",
                return_value=["AD-1", "AD-2"],
            ),
            patch("gpu_shape_scout.oci_api.request_capacity_report", side_effect=_report),
            caplog.at_level(logging.ERROR, logger="gpu_shape_scout"),
        ):
            return run_cycle(_poller())

    def test_failed_ad_is_skipped_and_sibling_published(self, registry, caplog) -> None:
        summary = self._run(registry, 3, caplog)

        gauges = _gauges(registry)
        assert len(gauges) == 1
        assert gauges[0].labels["availability_domain"] == "AD-1"
        assert gauges[0].labels["shape"] == H100
        assert gauges[0].labels["status"] == "AVAILABLE"
        assert gauges[0].value == 3.0

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "AD-2" in errors[0].getMessage()

        assert summary.units == 2
        assert summary.published == 1
        assert [f.availability_domain for f in summary.failures] == ["AD-2"]

    def test_absent_count_publishes_zero(self, registry, caplog) -> None:
        self._run(registry, None, caplog)
        gauges = _gauges(registry)
        assert len(gauges) == 1
        assert gauges[0].value == 0.0

    def test_region_list_failure_publishes_nothing_and_raises(self, registry) -> None:
        with (
            patch(
                "gpu_shape_scout.oci_api.list_regions",
                side_effect=_upstream("list_region_subscriptions"),
            ),
            patch("gpu_shape_scout.oci_api.list_availability_domains") as list_ads,
            pytest.raises(UpstreamError),
        ):
            run_cycle(_poller())

        list_ads.assert_not_called()
        assert _gauges(registry) == []
        assert registry.get_sample_value("gpu_shape_poll_last_success_timestamp_seconds") == 0
        assert (
            registry.get_sample_value(
                "gpu_shape_poll_errors_total", {"operation": "list_region_subscriptions"}
            )
            == 1.0
        )


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


class TestFaultDomainVariant:
    def test_one_report_per_fault_domain(self, registry) -> None:
        def _report(provider, region, compartment, ad, shapes, fault_domain=None):
            return [_fact(ad, 1, fault_domain)]

        poller = _poller("per_fault_domain")
        with (
            patch("gpu_shape_scout.oci_api.list_regions", return_value=["us-ashburn-1"]),
            patch("gpu_shape_scout.oci_api.list_availability_domains", return_value=["AD-1"]),
            patch(
                "gpu_shape_scout.oci_api.list_fault_domains",
                return_value=["FAULT-DOMAIN-1", "FAULT-DOMAIN-2"],
            ) as list_fds,
            patch(
                "gpu_shape_scout.oci_api.request_capacity_report", side_effect=_report
            ) as report,
        ):
            summary = poller.poll_once()

        list_fds.assert_called_once_with(
            poller.provider, "us-ashburn-1", "ocid1.compartment", "AD-1"
        )
        assert report.call_args_list == [
            call(
                poller.provider,
                "us-ashburn-1",
                "ocid1.compartment",
                "AD-1",
                poller.shapes,
                fault_domain="FAULT-DOMAIN-1",
            ),
            call(
                poller.provider,
                "us-ashburn-1",
                "ocid1.compartment",
                "AD-1",
                poller.shapes,
                fault_domain="FAULT-DOMAIN-2",
            ),
        ]
        fds = sorted(g.labels["fault_domain"] for g in _gauges(registry))
        assert fds == ["FAULT-DOMAIN-1", "FAULT-DOMAIN-2"]
        assert summary.published == 2

    def test_fault_domain_list_failure_skips_only_that_ad(self, registry) -> None:
        def _fds(provider, region, compartment, ad):
            if ad == "AD-1":
                raise _upstream("list_fault_domains")
            return ["FAULT-DOMAIN-1"]

        def _report(provider, region, compartment, ad, shapes, fault_domain=None):
            return [_fact(ad, 2, fault_domain)]

        with (
            patch("gpu_shape_scout.oci_api.list_regions", return_value=["us-ashburn-1"]),
            patch(
                "gpu_shape_scout.oci_api.list_availability_domains",
                return_value=["AD-1", "AD-2"],
            ),
            patch("gpu_shape_scout.oci_api.list_fault_domains", side_effect=_fds),
            patch("gpu_shape_scout.oci_api.request_capacity_report", side_effect=_report),
        ):
            summary = _poller("per_fault_domain").poll_once()

        gauges = _gauges(registry)
        assert [g.labels["availability_domain"] for g in gauges] == ["AD-2"]
        assert summary.failures[0].operation == "list_fault_domains"
        assert summary.failures[0].availability_domain == "AD-1"


class TestAvailabilityDomainVariant:
    def test_fault_domain_taken_from_fact(self, registry) -> None:
        with (
            patch("gpu_shape_scout.oci_api.list_regions", return_value=["us-ashburn-1"]),
            patch("gpu_shape_scout.oci_api.list_availability_domains", return_value=["AD-1"]),
            patch("gpu_shape_scout.oci_api.list_fault_domains") as list_fds,
            patch(
                "gpu_shape_scout.oci_api.request_capacity_report",
                return_value=[_fact("AD-1", 1, "FAULT-DOMAIN-3")],
            ) as report,
        ):
            _poller("per_availability_domain").poll_once()

        list_fds.assert_not_called()
        assert report.call_args.kwargs["fault_domain"] is None
        assert _gauges(registry)[0].labels["fault_domain"] == "FAULT-DOMAIN-3"


class TestRegionBoundaries:
    def test_ad_list_failure_skips_only_that_region(self, registry) -> None:
        def _ads(provider, region, compartment):
            if region == "ap-tokyo-1":
                raise _upstream("list_availability_domains")
            return [f"{region}-AD-1"]

        with (
            patch(
                "gpu_shape_scout.oci_api.list_regions",
                return_value=["ap-tokyo-1", "us-ashburn-1"],
            ),
            patch("gpu_shape_scout.oci_api.list_availability_domains", side_effect=_ads),
            patch(
                "gpu_shape_scout.oci_api.request_capacity_report",
                side_effect=lambda p, r, c, ad, s, fault_domain=None: [_fact(ad, 1, "FD-1")],
            ),
        ):
            summary = _poller().poll_once()

        assert [g.labels["availability_domain"] for g in _gauges(registry)] == [
            "us-ashburn-1-AD-1"
        ]
        assert summary.regions == 2
        assert summary.failures[0].region == "ap-tokyo-1"
        assert summary.failures[0].availability_domain is None
        assert registry.get_sample_value("gpu_shape_poll_last_success_timestamp_seconds") > 0

    def test_regions_are_passed_explicitly(self) -> None:
        poller = _poller()
        with (
            patch(
                "gpu_shape_scout.oci_api.list_regions",
                return_value=["ap-tokyo-1", "us-ashburn-1"],
            ),
            patch(
                "gpu_shape_scout.oci_api.list_availability_domains", return_value=[]
            ) as list_ads,
        ):
            poller.poll_once()

        assert list_ads.call_args_list == [
            call(poller.provider, "ap-tokyo-1", "ocid1.compartment"),
            call(poller.provider, "us-ashburn-1", "ocid1.compartment"),
        ]


# ---------------------------------------------------------------------------
# Single-flight
# ---------------------------------------------------------------------------


class TestRunCycle:
    def test_cycles_never_overlap(self) -> None:
        active = 0
        max_active = 0
        lock = threading.Lock()

        def _slow_regions(provider, tenancy):
            nonlocal active, max_active
            with lock:
                active += 1
                max_active = max(max_active, active)
            time.sleep(0.05)
            with lock:
                active -= 1
            return []

        poller = _poller()
        with patch("gpu_shape_scout.oci_api.list_regions", side_effect=_slow_regions):
            threads = [threading.Thread(target=run_cycle, args=(poller,)) for _ in range(3)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert max_active == 1


class TestTransportFailures:
    def test_connect_timeout_skips_only_that_ad(self, registry, provider) -> None:
        def _create(details):
            if details.availability_domain == "AD-2":
                raise oci.exceptions.ConnectTimeout("connect timed out")
            return SimpleNamespace(
                status=200,
                data=ComputeCapacityReport(
                    shape_availabilities=[
                        CapacityReportShapeAvailability(
                            instance_shape=H100,
                            availability_status="AVAILABLE",
                            available_count=1,
                            fault_domain="FAULT-DOMAIN-1",
                        )
                    ]
                ),
            )

        provider.compute_client.create_compute_capacity_report.side_effect = _create
        poller = _poller()
        poller.provider = provider
        with (
            patch("gpu_shape_scout.oci_api.list_regions", return_value=["us-ashburn-1"]),
            patch(
                "gpu_shape_scout.oci_api.list_availability_domains",
                return_value=["AD-1", "AD-2", "AD-3"],
            ),
        ):
            summary = poller.poll_once()

        ads = sorted(g.labels["availability_domain"] for g in _gauges(registry))
        assert ads == ["AD-1", "AD-3"]
        assert [f.availability_domain for f in summary.failures] == ["AD-2"]
        assert summary.failures[0].operation == "create_compute_capacity_report"
