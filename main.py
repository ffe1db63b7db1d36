"""CLI entry point for the job application tracker."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm, Prompt

from apptracker.app.controller import TrackerApp
from apptracker.app.render import (
    render_dashboard,
    render_draft,
    render_messages,
    render_record,
)
from apptracker.core.config import Settings
from apptracker.core.errors import ConfigError
from apptracker.core.schemas import ApplicationStatus, JobApplication
from apptracker.views.filters import ALL, FILTER_MODES

logger = logging.getLogger(__name__)

console = Console()

DEFAULT_CONFIG = "config/settings.yaml"
SNAPSHOT_TIMEOUT_S = 15.0
WATCH_REFRESH_S = 60.0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG}; "
        "falls back to TRACKER_* environment variables when absent)",
    )
    common.add_argument(
        "--email",
        default=None,
        help="Account email (default: $TRACKER_EMAIL, or prompt)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    parser = argparse.ArgumentParser(
        description="Job application tracker - record applications, follow-ups and drafts",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- signup ---
    subparsers.add_parser("signup", parents=[common], help="Create an account")

    # --- dashboard / watch ---
    for name, help_text in (
        ("dashboard", "Show stats and the application list"),
        ("watch", "Show the dashboard and redraw on every change"),
    ):
        p = subparsers.add_parser(name, parents=[common], help=help_text)
        p.add_argument(
            "--filter",
            default=ALL,
            choices=FILTER_MODES,
            metavar="MODE",
            help=f"List filter: {', '.join(FILTER_MODES)} (default: {ALL})",
        )

    # --- add / edit ---
    add_parser = subparsers.add_parser("add", parents=[common], help="Add an application")
    _add_record_fields(add_parser, required=True)
    edit_parser = subparsers.add_parser("edit", parents=[common], help="Edit an application")
    edit_parser.add_argument("id", help="Application id")
    _add_record_fields(edit_parser, required=False)

    # --- delete ---
    delete_parser = subparsers.add_parser("delete", parents=[common], help="Delete an application")
    delete_parser.add_argument("id", help="Application id")
    delete_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip the confirmation prompt",
    )

    # --- draft ---
    draft_parser = subparsers.add_parser(
        "draft",
        parents=[common],
        help="Draft a follow-up email for an application (Gemini)",
    )
    draft_parser.add_argument("id", help="Application id")

    return parser.parse_args(argv)


def _add_record_fields(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument("--title", required=required, help="Job title")
    parser.add_argument("--company", required=required, help="Company name")
    parser.add_argument("--link", default=None, help="Job posting URL")
    parser.add_argument(
        "--status",
        default=None,
        choices=[s.value for s in ApplicationStatus],
        help="Application status (default for new records: Applied)",
    )
    parser.add_argument("--date-applied", default=None, help="YYYY-MM-DD (default: today)")
    parser.add_argument("--follow-up", default=None, help="Follow-up date, YYYY-MM-DD")
    parser.add_argument("--notes", default=None, help="Free-form notes")


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(config_path: str) -> Settings:
    """YAML settings when the file exists, environment otherwise.

    An explicitly named file that does not exist is an error.
    """
    if Path(config_path).exists():
        return Settings.from_yaml(config_path)
    if config_path != DEFAULT_CONFIG:
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)
    return Settings.from_env()


def _form_fields(args: argparse.Namespace) -> dict[str, str]:
    fields = {
        "title": args.title,
        "company": args.company,
        "link": args.link,
        "status": args.status,
        "date_applied": args.date_applied,
        "follow_up_date": args.follow_up,
        "notes": args.notes,
    }
    return {k: v for k, v in fields.items() if v is not None}


def _credentials(args: argparse.Namespace) -> tuple[str, str]:
    email = args.email or os.environ.get("TRACKER_EMAIL") or Prompt.ask("Email")
    password = os.environ.get("TRACKER_PASSWORD") or Prompt.ask("Password", password=True)
    return email, password


async def _ensure_signed_in(app: TrackerApp, args: argparse.Namespace) -> bool:
    if app.gate == "ready":
        return True
    email, password = _credentials(args)
    if not await app.sign_in(email, password):
        render_messages(console, auth_error=app.auth_error)
        return False
    return True


async def _load_record(app: TrackerApp, record_id: str) -> JobApplication | None:
    await app.wait_for_snapshot(SNAPSHOT_TIMEOUT_S)
    record = app.find(record_id)
    if record is None:
        console.print(f"[red]No application with id '{record_id}'.[/red]")
    return record


async def cmd_signup(app: TrackerApp, args: argparse.Namespace) -> int:
    email, password = _credentials(args)
    if not await app.sign_up(email, password):
        render_messages(console, auth_error=app.auth_error)
        return 1
    principal = app.principal
    console.print(f"[green]Account created.[/green] User id: {principal.uid if principal else ''}")
    return 0


async def cmd_dashboard(app: TrackerApp, args: argparse.Namespace) -> int:
    app.filter_mode = args.filter
    await app.wait_for_snapshot(SNAPSHOT_TIMEOUT_S)
    render_messages(console, store_error=app.store_error)
    render_dashboard(console, app.stats, app.visible_records, filter_mode=app.filter_mode)
    return 0


async def cmd_watch(app: TrackerApp, args: argparse.Namespace) -> int:
    app.filter_mode = args.filter
    await app.wait_for_snapshot(SNAPSHOT_TIMEOUT_S)
    console.print("Watching for changes. Press [bold]Ctrl+C[/bold] to stop.")
    while True:
        console.clear()
        render_messages(console, store_error=app.store_error)
        render_dashboard(console, app.stats, app.visible_records, filter_mode=app.filter_mode)
        try:
            await app.next_snapshot(WATCH_REFRESH_S)
        except TimeoutError:
            # Overdue markers depend on the clock, not only on the list.
            app.refresh()


async def cmd_add(app: TrackerApp, args: argparse.Namespace) -> int:
    app.open_form()
    app.update_form(**_form_fields(args))
    record_id = await app.save_form()
    render_messages(console, form_error=app.form_error, store_error=app.store_error)
    if record_id is None:
        return 1
    console.print(f"[green]Application saved.[/green] Id: {record_id}")
    return 0


async def cmd_edit(app: TrackerApp, args: argparse.Namespace) -> int:
    record = await _load_record(app, args.id)
    if record is None:
        return 1
    app.open_form(record)
    app.update_form(**_form_fields(args))
    record_id = await app.save_form()
    render_messages(console, form_error=app.form_error, store_error=app.store_error)
    if record_id is None:
        return 1
    console.print(f"[green]Application updated.[/green] Id: {record_id}")
    return 0


async def cmd_delete(app: TrackerApp, args: argparse.Namespace) -> int:
    record = await _load_record(app, args.id)
    if record is None:
        return 1
    render_record(console, record)
    confirmed = args.yes or Confirm.ask(
        "Are you sure you want to delete this job application?",
        default=False,
    )
    if not confirmed:
        console.print("Delete cancelled.")
        return 0
    if not await app.delete_application(record.id, confirm=True):
        render_messages(console, store_error=app.store_error)
        return 1
    console.print("[green]Application deleted.[/green]")
    return 0


async def cmd_draft(app: TrackerApp, args: argparse.Namespace) -> int:
    record = await _load_record(app, args.id)
    if record is None:
        return 1
    app.open_form(record)
    with console.status("Generating follow-up draft..."):
        text = await app.draft_follow_up()
    if text is None:
        render_messages(console, draft_error=app.draft_error)
        return 1
    render_draft(console, text, title=f"Follow-up: {record.title} at {record.company}")
    return 0


_COMMANDS = {
    "signup": cmd_signup,
    "dashboard": cmd_dashboard,
    "watch": cmd_watch,
    "add": cmd_add,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "draft": cmd_draft,
}


async def run(settings: Settings, args: argparse.Namespace) -> int:
    async with TrackerApp(settings) as app:
        if app.gate == "blocked":
            console.print(f"[red]Tracker unavailable:[/red] {app.blocked_reason}")
            return 1
        if args.command != "signup" and not await _ensure_signed_in(app, args):
            return 1
        try:
            return await _COMMANDS[args.command](app, args)
        except TimeoutError:
            console.print("[red]Timed out waiting for job applications.[/red]")
            return 1


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError, ConfigError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        code = asyncio.run(run(settings, args))
    except KeyboardInterrupt:
        code = 0
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
