"""ThreatPulse CLI entry point — `tpulse` command group."""

from __future__ import annotations

import click

from threatpulse.cli.commands.alerts import alerts_cmd
from threatpulse.cli.commands.cves import cves_cmd
from threatpulse.cli.commands.pipeline import pipeline_cmd


@click.group()
@click.version_option(package_name="threatpulse")
@click.option(
    "--api-url",
    default="http://localhost:8000",
    envvar="TPULSE_API_URL",
    show_default=True,
    help="Base URL of the ThreatPulse API server",
)
@click.pass_context
def cli(ctx: click.Context, api_url: str) -> None:
    """ThreatPulse — CVE feed ingestion and asset correlation.

    \b
    Quick start:
      tpulse pipeline run
      tpulse pipeline run --local      # in-process, for cron
      tpulse cves list --severity critical
      tpulse alerts list --status new

    API docs: http://localhost:8000/docs
    """
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url.rstrip("/")


# Register sub-commands
cli.add_command(pipeline_cmd)
cli.add_command(cves_cmd)
cli.add_command(alerts_cmd)


@cli.command("serve")
@click.option("--host", default=None, help="Bind host [default: APP_HOST]")
@click.option("--port", default=None, type=int, help="Bind port [default: APP_PORT]")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload (dev mode)")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the ThreatPulse API server (and its scheduler, when enabled)."""
    import uvicorn

    from threatpulse.core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "threatpulse.api.app:app",
        host=host or settings.app_host,
        port=port or settings.app_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
