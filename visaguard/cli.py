"""
CLI interface for VisaGuard.

Commands:
    add         Track a new person's document
    delete      Stop tracking a person
    list        Show tracked persons and time left
    stats       Count documents by status
    check       Check expirations now
    test-notify Send a test notification
    run         Keep running, checking at startup and every 24 hours
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import date, datetime
from typing import Optional

import click

from visaguard import __version__
from visaguard.config import NOTIFIER_CHOICES, AppConfig, load_config


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(version=__version__, prog_name="visaguard")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="Path to a JSON config file.")
@click.option("--db", default=None, help="Database URL for the record store.")
@click.option("--notifier", default=None,
              help=f"How alerts are delivered: {', '.join(NOTIFIER_CHOICES)}, or several joined by commas.")
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging level.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    db: Optional[str],
    notifier: Optional[str],
    log_level: Optional[str],
) -> None:
    """VisaGuard: track visa and permit expiry dates and get alerted in time."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not load configuration: {e}")

    if db:
        config.db_url = db
    if notifier:
        config.notifier = notifier.lower()
    if log_level:
        config.log_level = log_level.upper()
    try:
        config.validate()
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--notifier")

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _open_app(ctx: click.Context):
    from visaguard.app import Application

    config: AppConfig = ctx.obj["config"]
    factory = ctx.obj.get("app_factory", Application)
    try:
        app = factory(config)
    except ValueError as e:
        raise click.ClickException(str(e))
    ctx.call_on_close(app.close)
    return app


def _echo_alerts(alerts) -> None:
    if not alerts:
        click.echo("No new alerts.")
        return
    click.echo(f"{len(alerts)} alert(s) sent:")
    for alert in alerts:
        click.echo(f"  {alert.format_text()}")


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--first-name", "-f", required=True, help="First name.")
@click.option("--last-name", "-l", required=True, help="Last name.")
@click.option("--country", "-c", required=True, help="Issuing country.")
@click.option("--expires", "-e", required=True, help="Expiration date (YYYY-MM-DD).")
@click.option("--document-type", "-d", default="", help="Document type (default: Document).")
@click.option("--phone", "-p", default="", help="Phone number.")
@click.option("--no-check", is_flag=True, help="Do not run an expiration check after adding.")
@click.pass_context
def add(
    ctx: click.Context,
    first_name: str,
    last_name: str,
    country: str,
    expires: str,
    document_type: str,
    phone: str,
    no_check: bool,
) -> None:
    """Track a new person's document."""
    from visaguard.store.records import InvalidPersonError

    app = _open_app(ctx)
    try:
        person = app.repository.add_person(
            first_name=first_name,
            last_name=last_name,
            country=country,
            expiration_date=_parse_date(expires),
            document_type=document_type,
            phone_number=phone,
        )
    except InvalidPersonError as e:
        raise click.BadParameter(str(e))

    click.echo(f"{person.full_name} added successfully (id: {person.id}).")

    if not no_check:
        _echo_alerts(app.request_check())


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("person_id")
@click.pass_context
def delete(ctx: click.Context, person_id: str) -> None:
    """Stop tracking the person with PERSON_ID."""
    app = _open_app(ctx)
    if app.repository.delete_person(person_id):
        click.echo("Person removed.")
    else:
        click.echo(f"Person {person_id} not found.")
        ctx.exit(1)


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------

@cli.command(name="list")
@click.option("--json-output", is_flag=True, help="Output as JSON instead of plain text.")
@click.pass_context
def list_persons(ctx: click.Context, json_output: bool) -> None:
    """Show tracked persons and time left."""
    from visaguard.engine.dates import days_label, days_left, format_date, parse_date, status_of

    app = _open_app(ctx)
    persons = app.repository.list_persons()
    today = app.engine.today()

    rows = []
    for p in persons:
        expires = parse_date(p.expiration_date)
        days = days_left(expires, today) if expires else None
        rows.append({
            **p.to_dict(),
            "daysLeft": days,
            "status": status_of(days).value if days is not None else "unknown",
        })

    if json_output:
        click.echo(json.dumps(rows, indent=2, ensure_ascii=False))
        return

    if not persons:
        click.echo("No persons tracked yet.")
        return

    click.echo(f"Tracked persons ({len(persons)}):")
    for p, row in zip(persons, rows):
        days = row["daysLeft"]
        label = days_label(days) if days is not None else "no expiry date"
        click.echo(
            f"  {p.id[:8]} | {p.full_name[:28]:28s} | {p.document_label[:14]:14s} | "
            f"{p.country[:14]:14s} | {format_date(p.expiration_date):>13s} | "
            f"{row['status']:8s} | {label}"
        )


# ---------------------------------------------------------------------------
# stats
# ---------------------------------------------------------------------------

@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Count tracked documents by status."""
    app = _open_app(ctx)
    counts = app.engine.stats()

    click.echo("=== VisaGuard Statistics ===")
    click.echo(f"Total:    {counts['total']}")
    click.echo(f"Safe:     {counts['safe']}")
    click.echo(f"Warning:  {counts['warning']}")
    click.echo(f"Expired:  {counts['expired']}")
    if counts["untracked"]:
        click.echo(f"No date:  {counts['untracked']}")
    last = app.repository.get_last_check_date()
    click.echo(f"Last check: {last or 'never'}")


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--force/--no-force", default=True,
              help="Check even if a check already ran today (default: force).")
@click.pass_context
def check(ctx: click.Context, force: bool) -> None:
    """Check expirations now."""
    app = _open_app(ctx)
    _echo_alerts(app.engine.check_expirations(force=force))
    click.echo("Expiration check complete.")


# ---------------------------------------------------------------------------
# test-notify
# ---------------------------------------------------------------------------

@cli.command(name="test-notify")
@click.pass_context
def test_notify(ctx: click.Context) -> None:
    """Send a test notification."""
    app = _open_app(ctx)
    try:
        app.engine.send_test_notification()
    except Exception as e:
        raise click.ClickException(f"Notification failed: {e}")
    click.echo("Test notification sent.")


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------

@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Keep running: check at startup and on every interval (SIGUSR1 checks now)."""
    app = _open_app(ctx)
    config: AppConfig = ctx.obj["config"]
    click.echo(
        f"VisaGuard running; checking every {config.check_interval_hours:g}h. "
        "Press Ctrl+C to stop."
    )
    app.run()


# ---------------------------------------------------------------------------
# Utility
# ---------------------------------------------------------------------------

def _parse_date(s: str) -> date:
    try:
        return datetime.strptime(s.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"Invalid date format: {s}. Use YYYY-MM-DD.")


def main() -> None:
    cli()


if __name__ == "__main__":
    sys.exit(main())
