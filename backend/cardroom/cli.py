# Overview: Flask CLI command groups for bootstrap, session inspection, and the player directory.

# backend/cardroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Sessions:
# - python -m flask sessions open --float 100000 [--chips-500 20 --chips-100 50] [--reopen]
#   Start today's session (or --date YYYY-MM-DD).
# - python -m flask sessions status [--date 2026-10-17]
#   Show the open session's wallets, chips and credit.
# - python -m flask sessions close --session-id 3
#   Close a session and print its summary and warnings.
# - python -m flask sessions verify --session-id 3
#   Replay the transaction log and report counter drift.
# - python -m flask sessions summaries --limit 10
#   List recent close-time summaries.
#
# Players:
# - python -m flask players create --name "Ravi" --phone 9800000000 --credit-limit 20000
# - python -m flask players list [--search ravi]
# - python -m flask players set-limit 4 25000

import click
from flask.cli import with_appcontext

from .extensions import db
from .chips import ChipBreakdown
from .errors import LedgerError
from .services import credit_service, dashboard_service, player_service, session_service, transaction_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
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


# =============================================================================
# SESSIONS
# =============================================================================

@click.group('sessions')
def sessions_group():
    """Daily session inspection and lifecycle commands."""


@sessions_group.command('open')
@click.option('--float', 'owner_float', type=int, required=True, help='Owner float in rupees')
@click.option('--date', 'session_date', help='Business date (YYYY-MM-DD), defaults to today')
@click.option('--credit-limit', type=int, help='Cashier credit limit for the session')
@click.option('--chips-100', type=int, default=0)
@click.option('--chips-500', type=int, default=0)
@click.option('--chips-5000', type=int, default=0)
@click.option('--chips-10000', type=int, default=0)
@click.option('--reopen', is_flag=True, help='Start a new session on a closed date')
@with_appcontext
def open_session_cli(owner_float, session_date, credit_limit, chips_100, chips_500, chips_5000, chips_10000, reopen):
    """Start a session."""
    chips = ChipBreakdown(chips_100, chips_500, chips_5000, chips_10000)
    try:
        result = session_service.open_session(
            owner_float,
            chip_inventory=chips.to_dict(),
            credit_limit=credit_limit,
            session_date=session_date,
            reopen=reopen,
        )
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS {result['message']} (session {result['session']['id']})")


@sessions_group.command('status')
@click.option('--date', 'session_date', help='Business date (YYYY-MM-DD), defaults to today')
@with_appcontext
def session_status_cli(session_date):
    """Show the open session for a date."""
    session = session_service.get_active_session(session_date)
    if not session:
        click.echo("No active session.")
        return

    dashboard = dashboard_service.build_dashboard(session)
    wallets = dashboard["wallets"]
    chips = dashboard["chip_inventory"]

    click.echo("\n" + "=" * 60)
    click.echo(f"Session {session.id}  {session.session_date}")
    click.echo("=" * 60)
    click.echo(f"{'Primary wallet':<28} ₹{wallets['primary_wallet']}")
    click.echo(f"{'Secondary wallet':<28} ₹{wallets['secondary_wallet']}")
    click.echo(f"{'Owner float':<28} ₹{session.owner_float}")
    click.echo(f"{'Outstanding credit':<28} ₹{session.outstanding_credit}")
    click.echo(f"{'Chips in hand':<28} ₹{chips['in_hand']['total_value']}")
    click.echo(f"{'Chips with players':<28} ₹{chips['with_players']['total_value']}")
    click.echo(f"{'Net result':<28} ₹{dashboard['net_result']}")
    if not dashboard["reconciliation"]["consistent"]:
        click.echo("WARN Session counters disagree with the transaction log; run 'sessions verify'.")
    click.echo("=" * 60 + "\n")


@sessions_group.command('close')
@click.option('--session-id', type=int, required=True)
@with_appcontext
def close_session_cli(session_id):
    """Close a session."""
    try:
        result = session_service.close_session(session_id)
    except LedgerError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS {result['message']}")
    for warning in result["warnings"]:
        click.echo(f"WARN {warning['message']}")


@sessions_group.command('verify')
@click.option('--session-id', type=int, required=True)
@with_appcontext
def verify_session_cli(session_id):
    """Replay the transaction log against the stored session counters."""
    try:
        session = session_service.get_session(session_id)
    except LedgerError as e:
        raise click.ClickException(e.message)

    drifts = transaction_service.verify_session(session)
    if not drifts:
        click.echo(f"PASS Session {session_id} matches its transaction log.")
        return
    click.echo(f"FAIL Session {session_id} has {len(drifts)} drifting counter(s):")
    for drift in drifts:
        click.echo(f"  {drift['field']:<32} stored={drift['stored']:<10} replayed={drift['replayed']}")
    raise SystemExit(1)


@sessions_group.command('summaries')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_summaries_cli(limit):
    """List close-time summaries."""
    summaries = session_service.list_session_summaries(limit)
    if not summaries:
        click.echo("No summaries found.")
        return

    click.echo("\n" + "=" * 96)
    click.echo(f"{'Session':<8} {'Date':<12} {'Opening':<12} {'Closing':<12} {'Net':<12} {'Credit':<10} {'Warnings'}")
    click.echo("=" * 96)
    for s in summaries:
        click.echo(f"{s.session_id:<8} {str(s.session_date):<12} {s.opening_float:<12} {s.closing_float:<12} "
                   f"{s.net_result:<12} {s.outstanding_credit:<10} {len(s.warnings or [])}")
    click.echo("=" * 96 + "\n")


# =============================================================================
# PLAYERS
# =============================================================================

@click.group('players')
def players_group():
    """Player directory commands."""


@players_group.command('create')
@click.option('--name', required=True, help='Player name')
@click.option('--phone', help='Phone number')
@click.option('--credit-limit', type=int, default=0, show_default=True)
@with_appcontext
def create_player_cli(name, phone, credit_limit):
    try:
        player = player_service.create_player(name, phone_number=phone, credit_limit=credit_limit)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created player {player.player_code} ({player.player_name}, ID: {player.id})")


@players_group.command('list')
@click.option('--search', help='Filter by name, code or phone')
@with_appcontext
def list_players_cli(search):
    players = player_service.list_players(search=search)
    if not players:
        click.echo("No players found.")
        return
    for p in players:
        click.echo(f"{p.id:<5} {p.player_code:<10} {p.player_name:<25} limit=₹{p.credit_limit:<8} stored=₹{p.stored_chips}")


@players_group.command('set-limit')
@click.argument('player_id', type=int)
@click.argument('credit_limit', type=int)
@with_appcontext
def set_limit_cli(player_id, credit_limit):
    try:
        player = credit_service.set_player_credit_limit(player_id, credit_limit)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Credit limit for {player.player_name} set to ₹{player.credit_limit}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sessions_group)
    app.cli.add_command(players_group)
