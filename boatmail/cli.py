import json
import click

from .config import get_settings
from .db import init_db, connect_db
from .mailer import build_email_service
from .models import STATUSES, Booking, BookingEmailData
from .repository import EmailQueue, get_config, set_config, config_int
from .store import SqliteJobStore
from .utils import iso_from_seconds_from_now, parse_delay_to_seconds, parse_iso, to_iso
from .worker import process_due, start_worker


def open_queue(conn):
    return EmailQueue(SqliteJobStore(conn, key=get_settings().queue_key))


def resolve_fire_at(at, delay_str):
    if at and delay_str:
        raise click.ClickException("Use either --at or --delay, not both.")
    if delay_str:
        try:
            return iso_from_seconds_from_now(parse_delay_to_seconds(delay_str))
        except ValueError as e:
            raise click.ClickException(str(e))
    if not at:
        raise click.ClickException("One of --at or --delay is required.")
    try:
        return to_iso(parse_iso(at))
    except ValueError as e:
        raise click.ClickException(str(e))


def fail(message):
    click.secho(f"Error: {message}", fg="red")
    raise SystemExit(1)


@click.group(help="boatmail — scheduled BoatMe email queue")
def cli():
    # Ensure DB/schema exist before any command runs
    init_db()


# ---------- Schedule ----------
@cli.group("schedule", help="Schedule an email")
def schedule_group():
    pass


@schedule_group.command("booking-reminder")
@click.option("--booking-id", required=True)
@click.option("--guest-name", required=True)
@click.option("--guest-email", required=True)
@click.option("--boat-name", required=True)
@click.option("--start-date", required=True)
@click.option("--end-date", required=True)
@click.option("--owner-name", default="")
@click.option("--owner-email", default="")
@click.option("--amount", "total_amount", type=float, default=0.0)
@click.option("--location", default="")
@click.option("--at", default=None, help="ISO datetime to send at (Z or offset; naive = UTC)")
@click.option("--delay", "delay_str", default=None, help="Send after a delay, e.g. 20s, 5m, 1h30m, 2d3h")
def schedule_booking_reminder_cmd(at, delay_str, **booking):
    conn = connect_db()
    try:
        fire_at = resolve_fire_at(at, delay_str)
        if not open_queue(conn).schedule_booking_reminder(BookingEmailData(**booking), fire_at):
            raise click.ClickException("could not schedule booking reminder (see log)")
        click.secho(f"Booking reminder for {booking['guest_email']} scheduled at {fire_at}", fg="green")
    except click.ClickException as e:
        fail(e.message)
    finally:
        conn.close()


@schedule_group.command("document-followup")
@click.option("--email", "address", required=True)
@click.option("--name", required=True)
@click.option("--at", default=None, help="ISO datetime to send at (Z or offset; naive = UTC)")
@click.option("--delay", "delay_str", default=None, help="Send after a delay, e.g. 20s, 5m, 1h30m, 2d3h")
def schedule_document_followup_cmd(address, name, at, delay_str):
    conn = connect_db()
    try:
        fire_at = resolve_fire_at(at, delay_str)
        if not open_queue(conn).schedule_document_followup(address, name, fire_at):
            raise click.ClickException("could not schedule document followup (see log)")
        click.secho(f"Document followup for {address} scheduled at {fire_at}", fg="green")
    except click.ClickException as e:
        fail(e.message)
    finally:
        conn.close()


@schedule_group.command("review-reminder", help="Schedule a review nudge after the booking ends")
@click.option("--booking-id", "id", required=True)
@click.option("--item-name", required=True)
@click.option("--item-type", type=click.Choice(["boat", "course"]), default="boat", show_default=True)
@click.option("--guest-name", required=True)
@click.option("--guest-email", required=True)
@click.option("--start-date", required=True)
@click.option("--end-date", required=True, help="ISO datetime the booking ends")
def schedule_review_reminder_cmd(**booking):
    conn = connect_db()
    try:
        if not open_queue(conn).schedule_review_reminder(Booking(**booking)):
            fail("could not schedule review reminder (see log)")
        click.secho(f"Review reminder for booking {booking['id']} scheduled", fg="green")
    finally:
        conn.close()


# ---------- Jobs ----------
@cli.command("list")
@click.option("--recipient", default=None, help="Only jobs for this exact address")
@click.option("--status", type=click.Choice(list(STATUSES)), default=None)
def list_cmd(recipient, status):
    conn = connect_db()
    try:
        jobs = open_queue(conn).list_jobs(recipient=recipient, status=status)
    finally:
        conn.close()

    if not jobs:
        click.echo("No scheduled emails.")
        return

    for j in jobs:
        click.echo(
            f"{j.id:>40} | {j.kind:<17} | {j.status:<9} | fires_at={j.fires_at} "
            f"| to={j.recipient} | last_error={j.last_error}"
        )


@cli.command("status")
def status_cmd():
    conn = connect_db()
    try:
        click.echo(json.dumps(open_queue(conn).counts(), indent=2))
    finally:
        conn.close()


@cli.command("cancel", help="Remove a scheduled email")
@click.argument("job_id")
def cancel_cmd(job_id):
    conn = connect_db()
    try:
        if not open_queue(conn).cancel(job_id):
            fail(f"could not cancel {job_id} (see log)")
        click.secho(f"Cancelled {job_id}.", fg="green")
    finally:
        conn.close()


@cli.command("cancel-review", help="Cancel pending review reminders for a booking")
@click.argument("booking_id")
def cancel_review_cmd(booking_id):
    conn = connect_db()
    try:
        if not open_queue(conn).cancel_review_reminders(booking_id):
            fail(f"could not cancel review reminders for {booking_id} (see log)")
        click.secho(f"Review reminders for booking {booking_id} cancelled.", fg="green")
    finally:
        conn.close()


# ---------- Sweeping ----------
@cli.command("sweep", help="Send every due email now (one pass)")
def sweep_cmd():
    conn = connect_db()
    try:
        result = process_due(
            open_queue(conn),
            build_email_service(get_settings()),
            retention_days=config_int(conn, "retention_days"),
        )
    finally:
        conn.close()
    click.echo(json.dumps(result.__dict__, indent=2))


@cli.group("worker", help="Run the periodic sweeper")
def worker_group():
    pass


@worker_group.command("start")
@click.option("--interval", type=int, default=None,
              help="Seconds between sweeps (default: sweep_interval_seconds config)")
@click.option("--now", "run_immediately", is_flag=True, help="Sweep once right away")
def worker_start(interval, run_immediately):
    conn = connect_db()
    try:
        if interval is None:
            interval = config_int(conn, "sweep_interval_seconds")
        if interval <= 0:
            fail("--interval must be > 0")
        click.secho(f"Sweeping every {interval}s. Press Ctrl+C to stop…", fg="cyan")
        start_worker(
            open_queue(conn),
            build_email_service(get_settings()),
            interval,
            retention_days=config_int(conn, "retention_days"),
            run_immediately=run_immediately,
        )
        click.secho("Worker stopped.", fg="yellow")
    finally:
        conn.close()


# ---------- Config ----------
@cli.group("config", help="Configuration")
def config_group():
    pass


@config_group.command("get")
def config_get():
    conn = connect_db()
    try:
        click.echo(json.dumps(get_config(conn), indent=2))
    finally:
        conn.close()


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set_cmd(key, value):
    conn = connect_db()
    try:
        set_config(conn, key, value)
        click.secho(f"Config updated: {key}={value}", fg="green")
    except ValueError as e:
        fail(e)
    finally:
        conn.close()


def main():
    cli()
