# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# hisobchi/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app wsgi <group> <command> [options]
#
# System bootstrap/repair:
# - flask system init-db
#   Create all tables (no-op for tables that already exist).
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - flask users list [--role seller]
#   List users with role and active/deleted flags.
# - flask users create --first-name Ali --phone +998901234567 --telegram-id 123 --role admin
#   Create a user (prompts for missing required options).
#
# Stock maintenance:
# - flask stock reconcile
#   Compare seller stock counters with transfers and sales; exits 1 on mismatch.

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .models import User
from .models.auth import ROLES
from .services.reconcile_service import reconcile_seller_stocks


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice(ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Role':<8} {'Name':<30} {'Phone':<18} {'Telegram':<14} {'State'}")
    click.echo("="*90)

    for user in users:
        if user.is_deleted:
            state = "deleted"
        elif user.is_active:
            state = "active"
        else:
            state = "inactive"
        click.echo(
            f"{user.id:<5} {user.role:<8} {user.full_name:<30} "
            f"{user.phone_number or '-':<18} {user.telegram_id or '-':<14} {state}"
        )

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', default=None, help='Last name')
@click.option('--phone', prompt=True, help='Phone number (unique)')
@click.option('--telegram-id', default=None, help='Telegram user id (unique)')
@click.option('--role', type=click.Choice(ROLES), default='seller', show_default=True, help='Role')
@with_appcontext
def create_user_cli(first_name, last_name, phone, telegram_id, role):
    """Create a user."""
    user = User(
        first_name=first_name.strip(),
        last_name=(last_name or "").strip() or None,
        phone_number=phone.strip(),
        telegram_id=(telegram_id or "").strip() or None,
        role=role,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise click.ClickException("Phone number or Telegram id already registered")

    click.echo(f"PASS Created {role} id={user.id} ({user.full_name})")


@click.group('stock')
def stock_group():
    """Stock maintenance commands."""


@stock_group.command('reconcile')
@with_appcontext
def reconcile_cli():
    """
    Recompute seller stock from the audit trail.

    expected = transferred - returned - sold, per (seller, product).
    """
    problems = reconcile_seller_stocks()

    if not problems:
        click.echo("PASS Seller stocks match transfers and sales.")
        return

    click.echo(f"FAIL {len(problems)} seller stock record(s) disagree with the audit trail:")
    for p in problems:
        click.echo(
            f"  seller={p['seller_id']} product={p['product_id']} "
            f"expected={p['expected']} recorded={p['recorded']}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
