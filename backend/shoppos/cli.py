# Overview: Flask CLI command groups for bootstrap, inspection, and user management.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--no-seed]
#   Idempotent: creates tables, the store settings row and the default
#   categories, brands and refill options.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --email admin@shop.local --password "..." --role super_admin
#   Create a login (and its profile) and assign a role.
# - python -m flask users list
#   List users with their role and active status.
# - python -m flask users set-role admin@shop.local manager
#   Replace a user's role.
#
# Capabilities:
# - python -m flask perms show cashier
#   Print the capability set of a role.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Brand, Category, RefillOption, User, UserRole
from .permissions import ROLES, CapabilityCategory, get_capabilities_by_category, permissions_for
from .services.auth_service import PasswordValidationError, assign_role, sign_up
from .services.settings_service import get_settings
from .validation import ConflictError, ValidationError


DEFAULT_CATEGORIES = [
    ("Devices", "Vape devices and mods", None),
    ("Coils", "Replacement coils", None),
    ("Flavours", "E-liquids and flavours", None),
    ("Flavour Bottles", "Packed bottles sold as products", "Flavours"),
    ("Refills", "Refill services", "Flavours"),
]

DEFAULT_BRANDS = ["Oxva", "Voopoo", "Caliburn", "Smok", "Vaporesso", "Geek Vape"]

DEFAULT_REFILL_OPTIONS = [
    ("1 ml Refill", 1, 150),
    ("2 ml Refill", 2, 250),
    ("3 ml Refill", 3, 300),
]


def seed_catalog() -> dict:
    """Insert the default categories, brands and refill options that are missing."""
    created = {"categories": 0, "brands": 0, "refill_options": 0}

    by_name = {c.name: c for c in db.session.query(Category).all()}
    for name, description, parent_name in DEFAULT_CATEGORIES:
        if name in by_name:
            continue
        parent = by_name.get(parent_name) if parent_name else None
        category = Category(name=name, description=description, parent_id=parent.id if parent else None)
        db.session.add(category)
        db.session.flush()
        by_name[name] = category
        created["categories"] += 1

    existing_brands = {b.name for b in db.session.query(Brand).all()}
    for name in DEFAULT_BRANDS:
        if name not in existing_brands:
            db.session.add(Brand(name=name))
            created["brands"] += 1

    if db.session.query(RefillOption).count() == 0:
        for name, volume_ml, price in DEFAULT_REFILL_OPTIONS:
            db.session.add(RefillOption(name=name, volume_ml=volume_ml, default_price=price, is_active=True))
            created["refill_options"] += 1

    db.session.commit()
    return created


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--no-seed', is_flag=True, help='Skip default categories, brands and refill options')
@with_appcontext
def init_system(no_seed):
    """
    Initialize the shop database.

    Creates:
    - All tables (use `flask db upgrade` instead once migrations exist)
    - The store settings row
    - Default categories (with the Flavours sub-categories), brands and
      refill options, unless --no-seed

    Create the first super admin afterwards with `flask users create`.
    """
    click.echo("START Initializing shop database...")

    db.create_all()
    click.echo("PASS Tables ready")

    settings = get_settings()
    click.echo(f"PASS Store settings: {settings.store_name} (low stock <= {settings.low_stock_threshold})")

    if not no_seed:
        created = seed_catalog()
        click.echo(
            f"PASS Seeded {created['categories']} categories, "
            f"{created['brands']} brands, {created['refill_options']} refill options"
        )

    click.echo("\nDONE Next: python -m flask users create --role super_admin")


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
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', default=None, help='Display name (defaults to the email)')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, password, full_name, role):
    """
    Create a new user with a role.

    Password must be at least 8 characters.
    """
    try:
        user = sign_up(email=email, password=password, full_name=full_name)
        assign_role(user.id, role)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    roles = {ur.user_id: ur.role for ur in db.session.query(UserRole).all()}

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Active':<8} {'Role'}")
    click.echo("=" * 80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {active_str:<8} {roles.get(user.id) or 'none'}")

    click.echo("=" * 80 + "\n")


@users_group.command('set-role')
@click.argument('email')
@click.argument('role', type=click.Choice(list(ROLES)))
@with_appcontext
def set_role_cli(email, role):
    """Replace the role of an existing user."""
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if user is None:
        raise click.ClickException(f"User '{email}' not found")

    assign_role(user.id, role)
    click.echo(f"PASS {user.email} is now '{role}'")


@click.group('perms')
def perms_group():
    """Capability inspection commands."""


@perms_group.command('show')
@click.argument('role', type=click.Choice(list(ROLES)))
@with_appcontext
def show_role_capabilities(role):
    """Print the capability set of a role."""
    capabilities = permissions_for(role).to_dict()

    click.echo(f"\n{'=' * 70}")
    click.echo(f"Capabilities for role: {role.upper()}")
    click.echo(f"{'=' * 70}\n")
    for category in CapabilityCategory.ALL:
        click.echo(f"[{category}]")
        for code, name, _description, _category in get_capabilities_by_category(category):
            granted = capabilities[code]
            click.echo(f"  {code:<24} {'yes' if granted else 'no':<9} {name}")
        click.echo("")

    click.echo(f"\n Total: {sum(capabilities.values())} of {len(capabilities)} granted\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
