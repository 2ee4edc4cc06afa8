# Overview: Flask CLI command groups for bootstrap, inspection, and reporting.

# backend/gestion360/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to gestion360 (PowerShell: $env:FLASK_APP="gestion360").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create the ledger tables (usuarios, productos, clientes, transacciones, ledger_revisions) if missing.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List staff accounts with role and capabilities.
# - python -m flask users bootstrap --name "Ana" --pin 1234
#   Create the first administrator (only while no users exist).
#
# Reporting:
# - python -m flask reports show --timeframe month
#   Print the cash-flow report for the current day / month / year.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db, get_store
from .permissions import CAPABILITY_KEYS, capabilities_from_map
from .services import reporting_service
from .services.remote_ledger import LedgerError
from .services.session_service import BootstrapError, INITIAL_ADMIN_ID, SessionGate
from .time_utils import resolve_timezone


def _started_store():
    store = get_store()
    store.start()
    return store


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing ledger tables. Existing data is kept."""
    db.create_all()
    click.echo("PASS Ledger tables ready: usuarios, productos, clientes, transacciones, ledger_revisions")


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
    click.echo("BUILD Recreating schema...")
    db.create_all()
    click.echo("PASS Database reset. Run: python -m flask users bootstrap")


@click.group('users')
def users_group():
    """Staff account commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List staff accounts."""
    users = _started_store().users

    if not users:
        click.echo("No users found. Run: python -m flask users bootstrap --name NAME --pin 1234")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<22} {'Name':<25} {'Role':<10} {'Capabilities'}")
    click.echo("="*80)

    for user in users:
        caps = capabilities_from_map(user.get("permissions"))
        cap_str = ", ".join(key for cap, key in CAPABILITY_KEYS.items() if caps & cap) or "-"
        click.echo(f"{user['id']:<22} {user['name']:<25} {user['role']:<10} {cap_str}")

    click.echo("="*80 + "\n")


@users_group.command('bootstrap')
@click.option('--name', prompt=True, help='Administrator name')
@click.option('--pin', prompt=True, hide_input=True, help='4-digit PIN')
@with_appcontext
def bootstrap_admin(name, pin):
    """Create the first administrator account."""
    gate = SessionGate(_started_store())
    try:
        gate.bootstrap(name, pin)
    except BootstrapError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    except LedgerError as e:
        click.echo(f"FAIL Could not write to the ledger: {e}")
        raise SystemExit(1)
    finally:
        gate.logout()
        gate.close()

    click.echo(f"PASS Created administrator '{name}' (ID: {INITIAL_ADMIN_ID})")


@click.group('reports')
def reports_group():
    """Reporting commands."""


@reports_group.command('show')
@click.option('--timeframe', default='month', type=click.Choice(['day', 'month', 'year']), help='Reporting window')
@click.option('--baseline', type=float, default=None, help='Growth comparison baseline')
@with_appcontext
def show_report(timeframe, baseline):
    """Print sales, expenses, buckets and top sellers."""
    store = _started_store()
    if baseline is None:
        baseline = current_app.config["REPORT_GROWTH_BASELINE"]

    report = reporting_service.compute_report(
        store.transactions,
        timeframe,
        tz=resolve_timezone(current_app.config["REPORT_TIMEZONE"]),
        growth_baseline=baseline,
    )

    click.echo(f"\nCash flow ({report['period_label']})")
    click.echo("-"*40)
    for bucket in report["buckets"]:
        click.echo(f"{bucket['name']:<8} sales {bucket['sales']:>12,.2f}   expenses {bucket['expenses']:>12,.2f}")
    click.echo("-"*40)
    click.echo(f"Sales:     {report['total_sales']:,.2f}")
    click.echo(f"Expenses:  {report['total_expenses']:,.2f}")
    click.echo(f"Net:       {report['net_profit']:,.2f}")
    click.echo(f"Growth:    {report['growth_percent']:+.2f}% vs {report['growth_baseline']:,.2f}")

    if report["top_items"]:
        click.echo("\nTop sellers")
        for i, item in enumerate(report["top_items"], start=1):
            click.echo(f"{i}. {item['name']:<30} x{item['count']:<4} {item['total_revenue']:,.2f}")
    click.echo("")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(reports_group)
