# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/assetman/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, one admin per location and the default categories.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--location HCM]
#   List users with staff code, type, location and active status.
# - python -m flask users create --first-name Binh --last-name "Nguyen Van" --location HCM --type Staff \
#       --date-of-birth 1995-04-12 --joined-date 2024-03-04
#   Create a user through the same rules as the admin screen.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Location, User, UserType
from .services import auth_service, user_service
from .services.session_service import CallerContext
from .time_utils import parse_date, utcnow
from .validation import FieldValidationError


DEFAULT_ADMIN_PASSWORD = "Password123!"

DEFAULT_CATEGORIES = [
    ("Laptop", "LA"),
    ("Monitor", "MO"),
    ("Personal Computer", "PC"),
]


def _cli_caller(location: Location) -> CallerContext:
    """Admin identity for commands run outside a request (no audit user)."""
    return CallerContext(user_id=None, role=UserType.ADMIN, location=location, username="cli")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize AssetMan: tables, one admin per location, default categories.

    Admin usernames are admin<location> (adminhcm, admindn, adminhn), all with
    the password "Password123!".

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing AssetMan...")
    db.create_all()

    click.echo("\nUSERS Creating location admins...")
    for location in Location:
        username = f"admin{location.value.lower()}"
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue

        now = utcnow()
        user = User(
            staff_code=user_service.next_staff_code(),
            first_name="Admin",
            last_name=location.label,
            username=username,
            password_hash=auth_service.hash_password(DEFAULT_ADMIN_PASSWORD),
            is_password_updated=True,
            joined_date=now.date(),
            type=UserType.ADMIN,
            location=location,
            is_active=True,
        )
        user.mark_created(None, now)
        db.session.add(user)
        db.session.commit()
        click.echo(f"PASS Created admin: {username} ({user.staff_code}, {location.label})")

    click.echo("\nLIST Creating default categories...")
    for name, prefix in DEFAULT_CATEGORIES:
        if db.session.query(Category).filter((Category.name == name) | (Category.prefix == prefix)).first():
            click.echo(f"WARN  Category '{name}' already exists, skipping...")
            continue
        category = Category(name=name, prefix=prefix)
        category.mark_created(None, utcnow())
        db.session.add(category)
        db.session.commit()
        click.echo(f"PASS Created category: {name} ({prefix})")

    click.echo("\n" + "="*60)
    click.echo("DONE AssetMan Initialized Successfully!")
    click.echo("="*60)
    click.echo(f"\nDefault admin password (CHANGE IN PRODUCTION!): {DEFAULT_ADMIN_PASSWORD}")
    click.echo("")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--location', type=click.Choice(Location.values(), case_sensitive=False), prompt=True)
@click.option('--type', 'user_type', type=click.Choice(UserType.values(), case_sensitive=False), default='Staff')
@click.option('--gender', default=None, help='Male / Female')
@click.option('--date-of-birth', prompt=True, help='YYYY-MM-DD')
@click.option('--joined-date', prompt=True, help='YYYY-MM-DD (weekday)')
@with_appcontext
def create_user_cli(first_name, last_name, location, user_type, gender, date_of_birth, joined_date):
    """Create a user; prints the generated username and initial password."""
    payload = {
        "firstName": first_name,
        "lastName": last_name,
        "type": user_type,
        "gender": gender,
        "dateOfBirth": date_of_birth,
        "joinedDate": joined_date,
    }
    try:
        user = user_service.create_user(_cli_caller(Location.parse(location)), payload)
    except FieldValidationError as e:
        for message in e.messages():
            click.echo(f"FAIL {message}")
        raise click.Abort()

    password = user_service.initial_password(user.username, parse_date(date_of_birth))
    click.echo(f"PASS Created user {user.username} ({user.staff_code}, {user.location.label})")
    click.echo(f"     Initial password: {password}")


@users_group.command('list')
@click.option('--location', type=click.Choice(Location.values(), case_sensitive=False), default=None)
@with_appcontext
def list_users(location):
    """List users with staff code, type, location and active status."""
    query = db.session.query(User).filter(User.is_deleted.is_(False))
    if location:
        query = query.filter(User.location == Location.parse(location))

    users = query.order_by(User.location, User.staff_code).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Code':<8} {'Username':<20} {'Name':<28} {'Type':<7} {'Loc':<5} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(
            f"{user.staff_code:<8} {user.username:<20} {user.full_name[:28]:<28} "
            f"{user.type.value:<7} {user.location.value:<5} {active_str}"
        )

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
