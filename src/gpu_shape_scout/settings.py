"""Runtime settings loaded from environment variables."""

import logging
from enum import StrEnum
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class AuthMode(StrEnum):
    """Supported OCI authentication modes."""

    instance_principal = "instance_principal"
    resource_principal = "resource_principal"
    config_file = "config_file"


class ScoutSettings(BaseSettings):
    """Configuration for gpu-shape-scout.

    Values are read from environment variables (case-insensitive) and
    optionally from a ``.env`` file in the working directory.
    """

    oci_tenancy_id: str = ""
    oci_compartment_id: str = ""

    oci_auth_mode: Literal["instance_principal", "resource_principal", "config_file"] = (
        "instance_principal"
    )
    oci_config_file: str = "~/.oci/config"
    oci_config_profile: str = "DEFAULT"
    # Region used for tenancy-wide calls; defaults to the signer/config region.
    oci_region: str = ""

    report_variant: Literal["per_fault_domain", "per_availability_domain"] = "per_fault_domain"
    shapes_file: str | None = None

    poll_enabled: bool = True
    poll_initial_delay_seconds: float = 300.0
    poll_period_seconds: float = 600.0

    host: str = "0.0.0.0"
    port: int = 8080

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _validate(self) -> "ScoutSettings":
        if not self.oci_tenancy_id:
            raise ValueError("OCI_TENANCY_ID must be set.")
        if self.poll_period_seconds <= 0:
            raise ValueError("POLL_PERIOD_SECONDS must be positive.")
        if self.poll_initial_delay_seconds < 0:
            raise ValueError("POLL_INITIAL_DELAY_SECONDS must not be negative.")
        if not self.oci_compartment_id:
            # The tenancy is the root compartment.
            self.oci_compartment_id = self.oci_tenancy_id
        return self


@lru_cache(maxsize=1)
def get_settings() -> ScoutSettings:
    """Return the process-wide settings, loading them on first use."""
    return ScoutSettings()
