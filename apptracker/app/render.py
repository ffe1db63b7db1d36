"""Terminal rendering of the dashboard, the record list, and drafts (rich)."""

from collections.abc import Sequence
from datetime import datetime, timezone

from rich import box
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from apptracker.core.schemas import (
    STATUS_STYLES,
    ApplicationStats,
    JobApplication,
    StatusStyle,
)
from apptracker.views.stats import is_overdue, utc_now

_DEFAULT_STYLE = StatusStyle(label="Unknown", color="grey50")


def format_date(value: datetime | None, missing: str = "N/A") -> str:
    """``Mon D, YYYY`` in UTC, or *missing* when there is no date."""
    if value is None:
        return missing
    d = value.astimezone(timezone.utc)
    return f"{d:%b} {d.day}, {d.year}"


def status_badge(record: JobApplication) -> Text:
    style = STATUS_STYLES.get(record.status, _DEFAULT_STYLE)
    return Text(f" {style.label} ", style=f"bold white on {style.color}")


def stats_table(stats: ApplicationStats) -> Table:
    """One-row table of stat cards."""
    t = Table(title="Job Search Overview", box=box.ROUNDED)
    t.add_column("Total", justify="right", style="bold")
    t.add_column("Interviews", justify="right", style="blue")
    t.add_column("Offers", justify="right", style="green")
    t.add_column("Rejected", justify="right", style="red")
    t.add_column("Follow-ups Due", justify="right", style="yellow")
    t.add_column("Offer Rate", justify="right", style="bold green")
    t.add_row(
        str(stats.total),
        str(stats.interviews),
        str(stats.offers),
        str(stats.rejected),
        str(stats.overdue_follow_ups),
        f"{stats.offer_rate:.1f}%",
    )
    return t


def applications_table(
    records: Sequence[JobApplication],
    *,
    title: str = "Applications",
    now: datetime | None = None,
) -> Table:
    now = now or utc_now()
    t = Table(title=title, box=box.ROUNDED)
    t.add_column("ID", style="dim", no_wrap=True)
    t.add_column("Title", style="bold", max_width=40)
    t.add_column("Company")
    t.add_column("Status")
    t.add_column("Applied")
    t.add_column("Follow-up")
    t.add_column("Link", style="cyan", max_width=45)

    for record in records:
        follow_up = Text(format_date(record.follow_up_date, missing="None"))
        if is_overdue(record.follow_up_date, now):
            follow_up.stylize("bold red")
            follow_up.append(" OVERDUE", style="bold red")
        t.add_row(
            record.id,
            record.title,
            record.company,
            status_badge(record),
            format_date(record.date_applied),
            follow_up,
            record.display_link,
        )
    return t


def render_dashboard(
    console: Console,
    stats: ApplicationStats,
    records: Sequence[JobApplication],
    *,
    filter_mode: str = "All",
    now: datetime | None = None,
) -> None:
    console.print(stats_table(stats))
    if not records:
        if filter_mode == "All":
            console.print("[dim]No job applications yet. Add one with 'apptracker add'.[/dim]")
        else:
            console.print(f"[dim]No applications match the '{escape(filter_mode)}' filter.[/dim]")
        return
    title = "Applications" if filter_mode == "All" else f"Applications ({filter_mode})"
    console.print(applications_table(records, title=title, now=now))


def render_record(console: Console, record: JobApplication) -> None:
    body = Group(
        Text.assemble(("Company: ", "bold"), record.company),
        Text.assemble(("Status: ", "bold"), status_badge(record)),
        Text.assemble(("Applied: ", "bold"), format_date(record.date_applied)),
        Text.assemble(("Follow-up: ", "bold"), format_date(record.follow_up_date, missing="None")),
        Text.assemble(("Link: ", "bold"), record.display_link or "None"),
        Text.assemble(("Notes: ", "bold"), record.notes or "None"),
    )
    console.print(Panel(body, title=f"[bold]{escape(record.title)}[/bold]", border_style="cyan"))


def render_draft(console: Console, text: str, *, title: str = "Follow-up Draft") -> None:
    console.print(Panel(text, title=f"[bold cyan]{title}[/bold cyan]", border_style="cyan"))


def render_messages(console: Console, **messages: str) -> None:
    """Print non-empty inline messages (errors red, notices green)."""
    for kind, text in messages.items():
        if not text:
            continue
        color = "green" if kind == "notice" else "red"
        console.print(f"[{color}]{escape(text)}[/{color}]")
