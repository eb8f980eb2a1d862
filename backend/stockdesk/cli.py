# Overview: Flask CLI command groups for schema bootstrap and the user approval queue.

# backend/stockdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask system init-db
#   Create missing tables (idempotent; also happens on every app start).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Approval queue:
# - python -m flask users pending
#   List users waiting for approval.
# - python -m flask users list
#   Every user with status and last sign-in.
# - python -m flask users approve someone@example.com
# - python -m flask users reject someone@example.com
#   Reject deletes the user record.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import AccessApprovalManager, UserNotFound, DECISION_APPROVE, DECISION_REJECT
from .services.storage_gateway import StorageGateway, init_schema


def _manager() -> AccessApprovalManager:
    return AccessApprovalManager(StorageGateway(db.session), verifier=None)


@click.group('system')
def system_group():
    """Schema bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    init_schema()
    click.echo("PASS Schema is up to date.")


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
    init_schema()

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User approval commands."""


@users_group.command('pending')
@with_appcontext
def list_pending():
    """List users waiting for approval."""
    users = _manager().list_pending()

    if not users:
        click.echo("No pending users.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Email':<35} {'Name':<30} {'Since'}")
    click.echo("="*90)

    for user in users:
        click.echo(f"{user.email:<35} {(user.name or '-'):<30} {user.created_at}")

    click.echo("="*90 + "\n")


def _decide(email: str, decision: str) -> None:
    try:
        user = _manager().decide(decision=decision, email=email)
    except UserNotFound:
        raise click.ClickException(f"No user with email {email}")

    if user is None:
        click.echo(f"PASS Rejected and removed {email}")
    else:
        click.echo(f"PASS Approved {user.email}")


@users_group.command('approve')
@click.argument('email')
@with_appcontext
def approve_user(email):
    """Approve a pending user."""
    _decide(email, DECISION_APPROVE)


@users_group.command('reject')
@click.argument('email')
@with_appcontext
def reject_user(email):
    """Reject a user (deletes the record)."""
    _decide(email, DECISION_REJECT)


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their approval status."""
    users = db.session.query(User).order_by(User.email.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    for user in users:
        click.echo(f"{user.email:<35} {user.status:<10} {user.last_login_at or 'never'}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
