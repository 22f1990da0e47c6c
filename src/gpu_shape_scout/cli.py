"""Unified CLI for gpu-shape-scout.

Provides three subcommands:
    gpu-shape-scout web     – run the exporter (FastAPI + uvicorn + scheduler)
    gpu-shape-scout poll    – run one capacity poll and print a summary
    gpu-shape-scout shapes  – print the configured shape catalogue

Running ``gpu-shape-scout`` without a subcommand defaults to ``web``.
"""

import click

from gpu_shape_scout import __version__


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="gpu-shape-scout")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """GPU Shape Scout."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(web)


@cli.command()
@click.option("--host", default=None, help="Host to bind to (default: HOST setting).")
@click.option("--port", default=None, type=int, help="Port to listen on (default: PORT setting).")
@click.option(
    "--no-scheduler",
    is_flag=True,
    default=False,
    help="Only serve the debug trigger; do not poll on a timer.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose logging.",
)
def web(host: str | None, port: int | None, no_scheduler: bool, verbose: bool) -> None:
    """Run the metrics exporter (default)."""
    import logging

    import uvicorn

    from gpu_shape_scout.app import _setup_logging, app
    from gpu_shape_scout.settings import get_settings

    settings = get_settings()
    if no_scheduler:
        settings.poll_enabled = False
    host = host or settings.host
    port = port or settings.port

    _setup_logging(level=logging.DEBUG if verbose else logging.INFO)

    url = f"http://{host}:{port}"
    click.echo(f"✦ gpu-shape-scout running at {click.style(url, fg='cyan', bold=True)}")
    click.echo(f"  metrics: {url}/metrics")
    if settings.poll_enabled:
        click.echo(
            f"  polling every {settings.poll_period_seconds:g}s "
            f"(first run in {settings.poll_initial_delay_seconds:g}s)"
        )
    click.echo("  Press Ctrl+C to stop.\n")

    uvicorn.run(app, host=host, port=port, log_level="debug" if verbose else "info")


@cli.command()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose logging.",
)
def poll(verbose: bool) -> None:
    """Run one capacity poll and print a summary."""
    import logging

    from gpu_shape_scout import metrics
    from gpu_shape_scout.app import _setup_logging, build_poller
    from gpu_shape_scout.oci_api import UpstreamError
    from gpu_shape_scout.services.poller import run_cycle
    from gpu_shape_scout.settings import get_settings

    _setup_logging(level=logging.DEBUG if verbose else logging.INFO)
    metrics.init_registry()
    poller = build_poller(get_settings())
    try:
        summary = run_cycle(poller)
    except UpstreamError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"{summary.regions} regions, {summary.units} reports, "
        f"{summary.published} facts published"
    )
    for failure in summary.failures:
        location = "/".join(
            p for p in (failure.region, failure.availability_domain, failure.fault_domain) if p
        )
        click.echo(click.style(f"  skipped {location}: {failure.error}", fg="yellow"))


@cli.command()
def shapes() -> None:
    """Print the configured shape catalogue."""
    from gpu_shape_scout.settings import get_settings
    from gpu_shape_scout.shapes import load_shape_catalogue

    for shape in load_shape_catalogue(get_settings().shapes_file):
        click.echo(f"{shape.name:<20} {shape.ocpus:>7g} OCPU {shape.memory_in_gbs:>7g} GB")
