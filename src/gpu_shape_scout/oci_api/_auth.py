"""Authentication and region-bound client construction for OCI API calls."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

import oci

from gpu_shape_scout.settings import AuthMode, ScoutSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OciProvider:
    """Authenticated provider handle.

    Holds credentials only.  Every client it hands out is freshly built and
    bound to one region for its whole lifetime, so concurrent branches never
    share a client whose region could be switched underneath them.
    """

    config: dict[str, Any] = field(default_factory=dict)
    signer: Any = None
    region: str = ""

    @property
    def home_region(self) -> str:
        """Region used for tenancy-wide calls such as region subscriptions."""
        if self.region:
            return self.region
        signer_region = getattr(self.signer, "region", None)
        return signer_region or self.config.get("region", "")

    def _client_kwargs(self, region: str) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "config": {**self.config, "region": region},
            # A failed call is retried by the next poll cycle, not by the SDK.
            "retry_strategy": oci.retry.NoneRetryStrategy(),
        }
        if self.signer is not None:
            kwargs["signer"] = self.signer
        return kwargs

    def identity(self, region: str) -> oci.identity.IdentityClient:
        """Return an identity client bound to *region*."""
        return oci.identity.IdentityClient(**self._client_kwargs(region))

    def compute(self, region: str) -> oci.core.ComputeClient:
        """Return a compute client bound to *region*."""
        return oci.core.ComputeClient(**self._client_kwargs(region))


def build_provider(settings: ScoutSettings) -> OciProvider:
    """Build the provider handle for the configured authentication mode."""
    mode = AuthMode(settings.oci_auth_mode)
    logger.info("Authenticating to OCI with %s", mode.value)

    if mode is AuthMode.config_file:
        config = oci.config.from_file(
            file_location=os.path.expanduser(settings.oci_config_file),
            profile_name=settings.oci_config_profile,
        )
        oci.config.validate_config(config)
        return OciProvider(config=config, region=settings.oci_region)

    if mode is AuthMode.resource_principal:
        signer = oci.auth.signers.get_resource_principals_signer()
    else:
        signer = oci.auth.signers.InstancePrincipalsSecurityTokenSigner()
    return OciProvider(signer=signer, region=settings.oci_region)
