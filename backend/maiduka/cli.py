# Overview: Flask CLI command groups for schema bootstrap, savings audit, and sync inspection.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Ledger:
# - python -m flask ledger init-db
#   Create all ledger tables on the configured database (idempotent).
# - python -m flask ledger verify-savings --shop-id <id>
#   Replay a shop's savings transactions and compare with its current balance.
#
# Sync collaborator:
# - python -m flask sync pending --entity sale
#   List records of an entity type waiting for upload.
# - python -m flask sync mark-synced --entity sale --id <id> [--id <id>] [--at 2026-01-01T00:00:00Z]
#   Acknowledge uploaded records.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import SYNC_ENTITIES
from .services import savings_service, sync_service
from .time_utils import millis_to_utc_z, parse_iso_millis


@click.group('ledger')
def ledger_group():
    """Ledger schema and audit commands."""


@ledger_group.command('init-db')
@with_appcontext
def init_db():
    """Create all ledger tables."""
    db.create_all()
    click.echo(f"PASS Ledger tables ready ({len(SYNC_ENTITIES)} entity types)")


@ledger_group.command('verify-savings')
@click.option('--shop-id', required=True, help='Shop ID')
@with_appcontext
def verify_savings(shop_id):
    """Replay the savings ledger of one shop."""
    result = savings_service.verify_balance_chain(shop_id)
    if not result.is_success:
        click.echo(f"FAIL {result.error.message}")
        raise SystemExit(1)

    report = result.value
    click.echo(f"Transactions replayed: {report['transactions']}")
    click.echo(f"Replayed balance:      {report['replayed_balance']}")
    click.echo(f"Current balance:       {report['current_balance']}")
    for broken in report["breaks"]:
        click.echo(f"  break at sequence {broken['sequence']}: {broken}")

    if report["ok"]:
        click.echo(f"PASS Savings ledger for shop {shop_id} reconciles")
    else:
        click.echo(f"FAIL Savings ledger for shop {shop_id} does not reconcile")
        raise SystemExit(1)


@click.group('sync')
def sync_group():
    """Inspect and acknowledge records pending upload."""


@sync_group.command('pending')
@click.option('--entity', 'entity_type', required=True, type=click.Choice(sorted(SYNC_ENTITIES)), help='Entity type')
@with_appcontext
def list_pending(entity_type):
    """List records waiting for upload."""
    result = sync_service.pending_records(entity_type)
    if not result.is_success:
        click.echo(f"FAIL {result.error.message}")
        raise SystemExit(1)

    records = result.value
    if not records:
        click.echo(f"No pending {entity_type} records.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<38} {'State':<14} {'Updated (UTC)':<26}")
    click.echo("="*80)
    for record in records:
        click.echo(f"{record.id:<38} {record.record_state:<14} {millis_to_utc_z(record.updated_at):<26}")
    click.echo("="*80)
    click.echo(f"{len(records)} pending {entity_type} record(s)\n")


@sync_group.command('mark-synced')
@click.option('--entity', 'entity_type', required=True, type=click.Choice(sorted(SYNC_ENTITIES)), help='Entity type')
@click.option('--id', 'record_ids', required=True, multiple=True, help='Record ID (repeatable)')
@click.option('--at', 'synced_at', default=None, help='Acknowledgement time (ISO 8601, default now)')
@with_appcontext
def mark_synced_cli(entity_type, record_ids, synced_at):
    """Mark uploaded records as synced."""
    timestamp = None
    if synced_at is not None:
        try:
            timestamp = parse_iso_millis(synced_at)
        except ValueError:
            timestamp = None
        if timestamp is None:
            click.echo(f"FAIL Invalid timestamp: {synced_at}")
            raise SystemExit(1)

    result = sync_service.mark_synced(entity_type, list(record_ids), timestamp)
    if not result.is_success:
        click.echo(f"FAIL {result.error.message}")
        raise SystemExit(1)

    click.echo(f"PASS Marked {result.value} of {len(record_ids)} {entity_type} record(s) synced")


def register_commands(app):
    """Register all CLI commands with the Flask app."""
    app.cli.add_command(ledger_group)
    app.cli.add_command(sync_group)
