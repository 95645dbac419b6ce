# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/lotto_pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--org "Org Name"] [--timezone America/Chicago]
#   Idempotent bootstrap: default org, store and manager user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Lottery inspection:
# - python -m flask lottery bins --store-id 1
#   Active bins with their pack and starting/ending serials.
# - python -m flask lottery day-status --store-id 1
#   Today's business day (store timezone) and its status.
# - python -m flask lottery period --store-id 1
#   Open business period and the packs activated during it.
#
# Shifts:
# - python -m flask shifts open-list --store-id 1
#   Shifts that would block a day close.
#
# Maintenance:
# - python -m flask sessions cleanup
#   Delete expired/revoked sessions older than 30 days.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, Store, User
from .services import business_period_service, day_close_service, session_service, shift_service, store_service
from .services.auth_service import AuthError, create_user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Default Organization', help='Organization name')
@click.option('--org-code', default='DEFAULT', help='Organization code')
@click.option('--timezone', 'timezone_name', default=None, help='IANA timezone of the default store')
@click.option('--password', default='Password123!', help='Password for the default manager user')
@with_appcontext
def init_system(org_name, org_code, timezone_name, password):
    """
    Initialize organization, default store and a manager user.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing lottery system...")

    org = db.session.query(Organization).filter_by(code=org_code).first()
    if not org:
        org = store_service.create_organization(org_name, org_code)
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    store = db.session.query(Store).filter_by(org_id=org.id).first()
    if not store:
        store = store_service.create_store(org.id, "Main Store", code="MAIN", timezone=timezone_name)
        click.echo(f"PASS Created store: {store.name} (ID: {store.id}, TZ: {store.timezone})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    existing = db.session.query(User).filter_by(org_id=org.id, username="manager").first()
    if existing:
        click.echo("WARN  User 'manager' already exists in org, skipping...")
    else:
        try:
            create_user("manager", password, org.id, email="manager@lotto.local", store_id=store.id)
            click.echo("PASS Created user: manager")
        except AuthError as e:
            click.echo(f"FAIL Failed to create user 'manager': {e}")

    click.echo("\nDONE Lottery system initialized.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('lottery')
def lottery_group():
    """Lottery inspection commands."""


@lottery_group.command('bins')
@click.option('--store-id', type=int, required=True)
@with_appcontext
def list_day_bins_cli(store_id):
    """Active bins with the serials the next close will start from."""
    try:
        view = business_period_service.get_day_bins(store_id)
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"\nBusiness date: {view['business_date']}")
    click.echo("=" * 90)
    click.echo(f"{'Bin':<5} {'Pack':<14} {'Game':<25} {'Start':<7} {'Ending':<7} {'End':<5}")
    click.echo("=" * 90)
    for entry in view["bins"]:
        if entry["pack_id"] is None:
            click.echo(f"{entry['bin_number']:<5} (empty)")
            continue
        click.echo(
            f"{entry['bin_number']:<5} {entry['pack_number']:<14} {entry['game_name'][:25]:<25} "
            f"{entry['starting_serial']:<7} {entry['ending_serial'] or '-':<7} {entry['serial_end']:<5}"
        )
    click.echo("=" * 90)

    if view["depleted_packs"]:
        click.echo("Depleted this period: " + ", ".join(p["pack_number"] for p in view["depleted_packs"]))
    click.echo("")


@lottery_group.command('day-status')
@click.option('--store-id', type=int, required=True)
@with_appcontext
def day_status_cli(store_id):
    """Today's business day for the store."""
    try:
        day = day_close_service.get_day_status(store_id)
    except day_close_service.DayCloseError as e:
        raise click.ClickException(e.message)

    if day is None:
        click.echo("No business day recorded for today.")
        return
    click.echo(f"{day.business_date.isoformat()} {day.status.value} closed_at={day.closed_at or '-'}")


@lottery_group.command('period')
@click.option('--store-id', type=int, required=True)
@with_appcontext
def period_cli(store_id):
    """Open business period and packs activated during it."""
    try:
        data = business_period_service.get_activated_packs(store_id)
    except ValueError as e:
        raise click.ClickException(str(e))

    period = data["period"]
    click.echo(f"\n{data['label']}: started {period['started_at'] or '-'}, "
               f"last closed {period['last_closed_date'] or 'never'}")
    for pack in data["packs"]:
        bin_number = pack["bin_number"] if pack["bin_number"] is not None else "-"
        click.echo(f"  {pack['pack_number']:<14} {pack['game_name'][:25]:<25} bin {bin_number:<4} {pack['status']}")
    click.echo("")


@click.group('shifts')
def shifts_group():
    """Shift inspection commands."""


@shifts_group.command('open-list')
@click.option('--store-id', type=int, required=True)
@with_appcontext
def open_shifts_cli(store_id):
    """Shifts still OPEN or ACTIVE (these block a day close)."""
    shifts = shift_service.list_open_shifts(store_id)
    if not shifts:
        click.echo("No open shifts.")
        return
    for shift in shifts:
        summary = shift_service.shift_summary(shift)
        click.echo(f"{summary['shift_id']:<5} {summary['status']:<8} {summary['cashier_name'] or '-':<20} "
                   f"{summary['terminal_name'] or '-':<15} {summary['opened_at']}")


@click.group('sessions')
def sessions_group():
    """Session maintenance commands."""


@sessions_group.command('cleanup')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired or revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} stale sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(lottery_group)
    app.cli.add_command(shifts_group)
    app.cli.add_command(sessions_group)
