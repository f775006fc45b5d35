"""Rich output helpers — tables and run summaries."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

console = Console()


def severity_style(severity: str) -> str:
    return {
        "critical": "bold red",
        "high": "red",
        "medium": "yellow",
        "low": "dim",
    }.get(severity, "white")


def status_style(status: str) -> str:
    return {
        "new": "bold yellow",
        "read": "dim",
        "dismissed": "dim",
        "done": "green",
        "fetch_failed": "red",
        "store_unavailable": "red",
    }.get(status, "white")


def fmt_date(iso: str | None) -> str:
    if not iso:
        return "—"
    try:
        dt = datetime.fromisoformat(iso.replace("Z", "+00:00"))
        return dt.strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return iso


def _truncate(text: str | None, width: int = 80) -> str:
    if not text:
        return "—"
    return text if len(text) <= width else text[: width - 1] + "…"


def run_summary(summary: dict[str, Any]) -> None:
    """Print a pipeline run summary."""
    stage = summary.get("stage", "?")
    ok = summary.get("success", False)
    title = "[bold green]Run complete[/bold green]" if ok else "[bold red]Run failed[/bold red]"
    console.rule(title)

    fields = [
        ("Stage", Text(stage, style=status_style(stage))),
        ("Window", f"{fmt_date(summary.get('window_start'))} → {fmt_date(summary.get('window_end'))}"),
        ("Fetched", summary.get("fetched", 0)),
        ("Feed total", summary.get("total_results")),
        ("Inserted", summary.get("inserted", 0)),
        ("Skipped", summary.get("skipped", 0)),
        ("Rejected", summary.get("rejected", 0)),
        ("Failed", summary.get("failed", 0)),
        ("Alerts created", summary.get("alerts_created", 0)),
    ]
    for label, value in fields:
        if value is None:
            continue
        console.print(f"  [dim]{label:<15}[/dim] ", end="")
        console.print(value)

    if summary.get("error"):
        console.print(f"\n  [red]{summary['error']}[/red]")


def cves_table(items: list[dict[str, Any]]) -> Table:
    table = Table(
        title=f"CVEs ({len(items)})",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
        show_lines=False,
    )
    table.add_column("CVE", style="bold", no_wrap=True)
    table.add_column("Severity")
    table.add_column("CVSS", justify="right")
    table.add_column("Products")
    table.add_column("Published", style="dim")
    table.add_column("Description")

    for c in items:
        severity = c.get("severity", "?")
        score = c.get("cvss_score")
        table.add_row(
            c.get("cve_id", ""),
            Text(severity, style=severity_style(severity)),
            f"{score:.1f}" if score is not None else "—",
            ", ".join(c.get("affected_products") or []) or "—",
            fmt_date(c.get("published_at")),
            _truncate(c.get("description")),
        )
    return table


def alerts_table(items: list[dict[str, Any]]) -> Table:
    table = Table(
        title=f"Alerts ({len(items)})",
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("CVE", style="bold")
    table.add_column("Severity")
    table.add_column("Asset")
    table.add_column("Status")
    table.add_column("Created", style="dim")

    for a in items:
        severity = a.get("severity") or "?"
        status = a.get("status", "?")
        table.add_row(
            str(a.get("id", ""))[:8] + "…",
            a.get("cve") or "—",
            Text(severity, style=severity_style(severity)),
            a.get("asset_name") or str(a.get("asset_id", ""))[:8],
            Text(status, style=status_style(status)),
            fmt_date(a.get("created_at")),
        )
    return table
