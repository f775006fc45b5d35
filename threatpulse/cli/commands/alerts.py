"""CLI commands for alerts raised by correlation."""

from __future__ import annotations

import click

from threatpulse.cli.output import alerts_table, console


@click.group("alerts")
def alerts_cmd() -> None:
    """Browse asset/CVE alerts."""


@alerts_cmd.command("list")
@click.option("--limit", default=50, show_default=True, help="Max rows to display")
@click.option(
    "--status",
    "status_filter",
    type=click.Choice(["new", "read", "dismissed"]),
    default=None,
)
@click.option("--site", "site_id", default=None, help="Only alerts of this site UUID")
@click.pass_context
def alerts_list(
    ctx: click.Context, limit: int, status_filter: str | None, site_id: str | None
) -> None:
    """List alerts, newest first."""
    import httpx

    api_url: str = ctx.obj["api_url"]
    params: dict[str, str | int] = {"limit": limit}
    if status_filter:
        params["status"] = status_filter
    if site_id:
        params["site_id"] = site_id

    try:
        r = httpx.get(f"{api_url}/api/v1/alerts", params=params, timeout=15)
        r.raise_for_status()
        data = r.json()
        console.print(alerts_table(data["items"]))
        console.print(f"[dim]Showing {len(data['items'])} of {data['total']} alerts.[/dim]")
    except httpx.ConnectError:
        console.print(f"[red]Cannot connect to API at {api_url}.[/red]")
        raise SystemExit(1)
    except httpx.HTTPStatusError as e:
        console.print(f"[red]API error {e.response.status_code}:[/red] {e.response.text}")
        raise SystemExit(1)
