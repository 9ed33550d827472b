# Overview: Flask CLI command groups for bootstrap, inspection, and reporting.

# backend/tillbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app tillbook <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask --app tillbook system init-db
#   Create any missing tables (idempotent; use 'db upgrade' for migrations).
# - python -m flask --app tillbook system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Counter inspection:
# - python -m flask --app tillbook counters show [--date 2024-05-01] [--counter returns]
#   Show the daily counter position (defaults to today).
#
# Reports:
# - python -m flask --app tillbook reports daily-count --staff-id S1 [--date 2024-05-01]
#   Print the staff member's daily count as JSON.
# - python -m flask --app tillbook reports credit --customer-id cust-42
#   Print a customer's store credit breakdown as JSON.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import credit_service, reconciliation_service, sequence_service
from .time_utils import business_date, parse_iso_date


def _parse_day(value):
    if value is None:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise click.BadParameter("date must be formatted YYYY-MM-DD", param_hint="--date")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('counters')
def counters_group():
    """Daily counter inspection."""


@counters_group.command('show')
@click.option('--date', 'day', help='Business day (YYYY-MM-DD), defaults to today')
@click.option('--counter', default=sequence_service.RETURN_COUNTER, show_default=True, help='Counter name')
@with_appcontext
def show_counter(day, counter):
    """Show how many numbers a counter has issued for a day."""
    day = _parse_day(day) or business_date()
    count = sequence_service.get_counter(day, counter=counter)
    click.echo(f"{counter} {sequence_service.day_key(day)}: {count}")


@click.group('reports')
def reports_group():
    """Reconciliation and credit reports."""


@reports_group.command('daily-count')
@click.option('--staff-id', required=True, help='Staff member to reconcile')
@click.option('--date', 'day', help='Business day (YYYY-MM-DD), defaults to today')
@with_appcontext
def daily_count(staff_id, day):
    """Print a staff member's daily count as JSON."""
    try:
        summary = reconciliation_service.reconcile(staff_id, _parse_day(day))
    except reconciliation_service.ReconciliationError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps(summary.to_dict(), indent=2))


@reports_group.command('credit')
@click.option('--customer-id', required=True, help='Customer id')
@with_appcontext
def customer_credit(customer_id):
    """Print a customer's store credit breakdown as JSON."""
    try:
        summary = credit_service.get_credit_summary(customer_id)
    except credit_service.CreditError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps(summary, indent=2))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(counters_group)
    app.cli.add_command(reports_group)
