"""CLI commands for browsing ingested CVEs."""

from __future__ import annotations

import click

from threatpulse.cli.output import console, cves_table


@click.group("cves")
def cves_cmd() -> None:
    """Browse ingested vulnerabilities."""


@cves_cmd.command("list")
@click.option("--limit", default=50, show_default=True, help="Max rows to display")
@click.option(
    "--severity",
    type=click.Choice(["critical", "high", "medium", "low"]),
    default=None,
    help="Only show this severity tier",
)
@click.pass_context
def cves_list(ctx: click.Context, limit: int, severity: str | None) -> None:
    """List the most recently published CVEs."""
    import httpx

    api_url: str = ctx.obj["api_url"]
    params: dict[str, str | int] = {"limit": limit}
    if severity:
        params["severity"] = severity

    try:
        r = httpx.get(f"{api_url}/api/v1/cves", params=params, timeout=15)
        r.raise_for_status()
        data = r.json()
        console.print(cves_table(data["items"]))
        console.print(f"[dim]Showing {len(data['items'])} of {data['total']} CVEs.[/dim]")
    except httpx.ConnectError:
        console.print(f"[red]Cannot connect to API at {api_url}.[/red]")
        raise SystemExit(1)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
