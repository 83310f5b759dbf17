# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/opticapos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Shop bootstrap:
# - python -m flask shop init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask shop seed-admin
#   Idempotently create the default owner account (Admin / admin@optica.local).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles.
# - python -m flask users create --name "Maria" --email maria@optica.local --role manager
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask notifications purge-read --older-than-days 90
#   Delete read notifications older than the retention window.

import click
from flask import current_app
from flask.cli import with_appcontext

from .engine import ShopEngine
from .errors import ShopError
from .extensions import db
from .models.auth import VALID_ROLES


def _engine() -> ShopEngine:
    return ShopEngine.from_config(db.session, current_app.config)


@click.group('shop')
def shop_group():
    """Shop bootstrap commands."""


@shop_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@shop_group.command('seed-admin')
@with_appcontext
def seed_admin():
    """Create the default owner account if it does not exist."""
    try:
        user, created = _engine().users.seed_admin()
    except ShopError as exc:
        raise click.ClickException(str(exc))
    if created:
        click.echo(f"PASS Created owner {user.name} <{user.email}> (ID: {user.id})")
    else:
        click.echo(f"PASS Owner already exists: {user.name} (ID: {user.id})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with roles."""
    users = _engine().users.list_users()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        click.echo(f"{user.id:>5}  {user.role:<8}  {user.email:<32}  {user.name or ''}")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Unique email address')
@click.option('--role', type=click.Choice(VALID_ROLES), default='seller', show_default=True)
@with_appcontext
def create_user(name, email, role):
    """Create a user."""
    try:
        user = _engine().users.create_user(name=name, email=email, role=role)
    except ShopError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS Created user {user.email} with role {user.role} (ID: {user.id})")


@click.group('notifications')
def notifications_group():
    """Notification maintenance commands."""


@notifications_group.command('purge-read')
@click.option('--older-than-days', default=90, show_default=True, type=click.IntRange(min=1))
@with_appcontext
def purge_read(older_than_days):
    """Delete read notifications older than the retention window."""
    deleted = _engine().notifier.purge_read(older_than_days=older_than_days)
    click.echo(f"PASS Deleted {deleted} read notification(s)")


def register_commands(app):
    app.cli.add_command(shop_group)
    app.cli.add_command(users_group)
    app.cli.add_command(notifications_group)
