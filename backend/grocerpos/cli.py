# Overview: Flask CLI command groups for bootstrap, user management and inventory maintenance.

# backend/grocerpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to grocerpos (PowerShell: $env:FLASK_APP="grocerpos").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables (idempotent). Use "flask db upgrade" for migrated deployments.
#
# Users:
# - python -m flask users create --username admin --name "Admin" --password "Password123!" --role ADMIN
#   Create a user (prompts if options are omitted).
#
# Inventory maintenance:
# - python -m flask inventory mark-expired
#   Flag batches whose expiration date has passed so they are never sold.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import batch_ledger
from .services.auth_service import ROLES, AuthError, create_user
from .time_utils import utcnow, to_utc_z


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create every table that does not exist yet."""
    click.echo("START Initializing GrocerPOS database...")
    db.create_all()
    click.echo("PASS Tables created")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), default='CASHIER', show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, name, email, password, role):
    """Create a user with a bcrypt-hashed password."""
    try:
        user = create_user(username=username, name=name, password=password, role=role, email=email)
    except AuthError as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group('inventory')
def inventory_group():
    """Inventory maintenance commands."""


@inventory_group.command('mark-expired')
@with_appcontext
def mark_expired_cli():
    """Set is_expired on batches whose expiration date has passed."""
    now = utcnow()
    count = batch_ledger.mark_expired_batches(now)
    db.session.commit()
    click.echo(f"PASS Marked {count} batch(es) expired as of {to_utc_z(now)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
