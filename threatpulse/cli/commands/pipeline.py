"""CLI commands for running the ingestion pipeline."""

from __future__ import annotations

import asyncio

import click

from threatpulse.cli.output import console, run_summary


@click.group("pipeline")
def pipeline_cmd() -> None:
    """CVE ingestion and correlation runs."""


@pipeline_cmd.command("run")
@click.option(
    "--local",
    is_flag=True,
    default=False,
    help="Run in this process against the configured database instead of the API",
)
@click.option(
    "--site",
    "sites",
    multiple=True,
    help="Only correlate assets of this site UUID (repeatable)",
)
@click.pass_context
def pipeline_run(ctx: click.Context, local: bool, sites: tuple[str, ...]) -> None:
    """Fetch new CVEs, store them and raise alerts for affected assets.

    Exits with status 1 when the run fails, so cron and CI can see it.
    """
    if local:
        summary = _run_local(sites)
    else:
        summary = _run_remote(ctx.obj["api_url"], sites)

    run_summary(summary)
    if not summary.get("success"):
        raise SystemExit(1)


def _run_local(sites: tuple[str, ...]) -> dict:
    import uuid

    from threatpulse.core.database import close_engine
    from threatpulse.pipeline.orchestrator import run_once

    try:
        site_ids = [uuid.UUID(s) for s in sites] or None
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--site")

    async def _main() -> dict:
        try:
            summary = await run_once(site_ids=site_ids)
        finally:
            await close_engine()
        return summary.model_dump(mode="json")

    with console.status("[dim]Running pipeline…[/dim]"):
        return asyncio.run(_main())


def _run_remote(api_url: str, sites: tuple[str, ...]) -> dict:
    import httpx

    try:
        with console.status("[dim]Running pipeline…[/dim]"):
            r = httpx.post(
                f"{api_url}/api/v1/pipeline/run",
                params=[("site_id", s) for s in sites],
                timeout=120,
            )
    except httpx.ConnectError:
        console.print(f"[red]Cannot connect to API at {api_url}.[/red]")
        raise SystemExit(1)

    # Failed runs still return a summary body (502/503)
    if r.status_code in (200, 502, 503):
        return r.json()
    console.print(f"[red]API error {r.status_code}:[/red] {r.text}")
    raise SystemExit(1)
