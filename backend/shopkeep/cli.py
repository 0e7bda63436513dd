# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shopkeep/cli.py
# Commands Legend (run from the backend directory, FLASK_APP=wsgi.py):
#
# System bootstrap/repair:
# - flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - flask system check-db
#   Verify the database is reachable and print row counts.
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - flask users create --username admin --email admin@shop.local --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
# - flask users list
#   List all users with role and active status.

import click
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .errors import ValidationError
from .extensions import db
from .models import User, InventoryItem, Party, Invoice, LedgerEntry
from .models.auth import ROLES
from .services.auth_service import create_user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database schema is in place.")


@system_group.command('check-db')
@with_appcontext
def check_db():
    """Fail with a non-zero exit status if the database is unreachable."""
    try:
        db.session.execute(text("SELECT 1"))
        counts = {
            "users": db.session.query(User).count(),
            "inventory_items": db.session.query(InventoryItem).count(),
            "parties": db.session.query(Party).count(),
            "invoices": db.session.query(Invoice).count(),
            "ledger_entries": db.session.query(LedgerEntry).count(),
        }
    except SQLAlchemyError as e:
        raise click.ClickException(f"Database check failed: {e}")

    click.echo("PASS Database reachable")
    for name, count in counts.items():
        click.echo(f"  {name:<16} {count}")


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

    click.echo("PASS Database reset complete. Run 'flask users create' to add an admin.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """
    Create a new user.

    Password must have at least 8 characters with an uppercase letter, a
    lowercase letter, a digit and a special character.
    """
    try:
        user = create_user(username, email, password, role=role)
    except ValidationError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} ({user.role}, ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active = "yes" if user.is_active else "no"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active:<8} {user.role}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
