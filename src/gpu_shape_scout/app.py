"""GPU Shape Scout – FastAPI web application.

Serves the Prometheus scrape endpoint for the ``gpu_shape_status`` gauges
and a debug endpoint that runs one capacity poll on demand.  The fixed-rate
scheduler is started with the application.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from gpu_shape_scout import __version__, metrics, oci_api
from gpu_shape_scout.oci_api import UpstreamError
from gpu_shape_scout.services import scheduler
from gpu_shape_scout.services.poller import CapacityPoller, run_cycle
from gpu_shape_scout.settings import ScoutSettings, get_settings
from gpu_shape_scout.shapes import load_shape_catalogue

# ---------------------------------------------------------------------------
# Colored logging (reuse uvicorn's formatter)
# ---------------------------------------------------------------------------


def _setup_logging(level: int = logging.INFO) -> None:
    """Configure the root ``gpu_shape_scout`` logger with uvicorn-style colours."""
    from uvicorn.logging import DefaultFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(
        DefaultFormatter(fmt="%(levelprefix)s %(name)s - %(message)s", use_colors=True)
    )
    app_logger = logging.getLogger("gpu_shape_scout")
    app_logger.handlers = [handler]
    app_logger.setLevel(level)
    app_logger.propagate = False

    # Silence noisy third-party loggers
    logging.getLogger("oci").setLevel(logging.WARNING)


_setup_logging()
logger = logging.getLogger(__name__)


def build_poller(settings: ScoutSettings) -> CapacityPoller:
    """Wire the provider, shape catalogue, and poller from *settings*."""
    return CapacityPoller(
        provider=oci_api.build_provider(settings),
        tenancy_id=settings.oci_tenancy_id,
        compartment_id=settings.oci_compartment_id,
        shapes=load_shape_catalogue(settings.shapes_file),
        variant=settings.report_variant,
    )


# ---------------------------------------------------------------------------
# Lifespan – build the poller and start the scheduler
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Initialise metrics, build the poller, and run the scheduler."""
    settings = get_settings()
    metrics.init_registry()
    poller = build_poller(settings)
    app.state.poller = poller
    if settings.poll_enabled:
        scheduler.start_scheduler(
            poller, settings.poll_initial_delay_seconds, settings.poll_period_seconds
        )
    try:
        yield
    finally:
        scheduler.stop_scheduler()


app = FastAPI(
    title="gpu-shape-scout API",
    version=__version__,
    description=(
        "Publishes OCI compute capacity reports for GPU shapes as Prometheus "
        "gauges (`gpu_shape_status`), labelled by availability domain, fault "
        "domain, shape, and availability status."
    ),
    license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=_lifespan,
)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Status"], summary="Liveness probe")
async def health() -> JSONResponse:
    """Return service status and version."""
    return JSONResponse({"status": "ok", "version": __version__})


@app.get("/metrics", tags=["Metrics"], summary="Prometheus scrape endpoint")
async def prometheus_metrics() -> Response:
    """Return every registered metric in the Prometheus text format."""
    payload, content_type = metrics.render_latest()
    return Response(content=payload, media_type=content_type)


@app.get(
    "/capacity/report",
    tags=["Capacity"],
    summary="Run one capacity poll (debug)",
    response_class=PlainTextResponse,
)
def capacity_report(request: Request) -> PlainTextResponse:
    """Run one capacity poll synchronously and acknowledge with ``ok``.

    Skipped ADs / FDs do not fail the request; they only show up in the logs
    and as stale gauges.  When the region list itself cannot be fetched no
    metric is updated and the request fails with 502.
    """
    logger.info("This endpoint is only used for debug.")
    try:
        run_cycle(request.app.state.poller)
    except UpstreamError as exc:
        logger.error("Capacity poll failed: %s", exc)
        return PlainTextResponse(f"error: {exc}", status_code=502)
    return PlainTextResponse("ok")
