# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/trackey/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--org "Org Name"] [--org-code SHOP]
#   Idempotent bootstrap: default org, store and an admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenants:
# - python -m flask orgs create --name "Acme Phones" --code "ACME"
# - python -m flask stores create --org-id 1 --name "Ikeja" [--code IKJ]
# - python -m flask users create --store-id 1 --username ada --password "Password123" --role clerk
#
# Reconciliation:
# - python -m flask ledger reconcile --store-id 1
#   Report STORED-mode debts whose running balance disagrees with their payments.
# - python -m flask inventory resync --store-id 1 [--fix]
#   Report (and optionally repair) available_qty counters that drifted from the device list.
#
# Security:
# - python -m flask security denials --org-id 1 [--limit 20]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, Store
from .services.auth_service import create_user, PasswordValidationError
from .services import debt_service, inventory_service
from .services.security_service import recent_denials
from .services.tenant_service import TenantContext, TenantAccessError
from .time_utils import to_utc_z
from .validation import format_cents


DEFAULT_ADMIN_PASSWORD = "Password123"


def _tenant_for_store(store_id: int) -> TenantContext | None:
    store = db.session.get(Store, store_id)
    if not store:
        click.echo(f"FAIL Store ID {store_id} not found")
        return None
    return TenantContext(org_id=store.org_id, store_id=store.id)


# =============================================================================
# SYSTEM COMMANDS
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Default Organization', help='Organization name')
@click.option('--org-code', default='DEFAULT', help='Organization code')
@with_appcontext
def init_system(org_name, org_code):
    """
    Create tables, a default organization and store, and an admin user.

    SECURITY: Change the admin password immediately in production!
    """
    db.create_all()

    org = db.session.query(Organization).filter_by(code=org_code).first()
    if not org:
        org = Organization(name=org_name, code=org_code, is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    store = db.session.query(Store).filter_by(org_id=org.id).first()
    if not store:
        store = Store(org_id=org.id, name="Main Store", code="MAIN")
        db.session.add(store)
        db.session.commit()
        click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    try:
        user = create_user("admin", DEFAULT_ADMIN_PASSWORD, org.id, store.id, role="admin")
        click.echo(f"PASS Created user: {user.username} (role admin)")
    except ValueError as e:
        db.session.rollback()
        click.echo(f"WARN  {e}, skipping...")

    click.echo(f"\nLogin: org_code={org.code} username=admin password={DEFAULT_ADMIN_PASSWORD}")


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


# =============================================================================
# TENANT COMMANDS
# =============================================================================

@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--code', required=True, help='Short code used at login (unique)')
@with_appcontext
def create_org_cli(name, code):
    """Create a new organization (tenant)."""
    existing = db.session.query(Organization).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Organization with code '{code}' already exists")
        return

    org = Organization(name=name, code=code, is_active=True)
    db.session.add(org)
    db.session.commit()

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")


@click.group('stores')
def stores_group():
    """Store management commands."""


@stores_group.command('create')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--name', required=True, help='Store name')
@click.option('--code', help='Store code (unique within org)')
@click.option('--currency', default='NGN', show_default=True, help='Display currency')
@with_appcontext
def create_store_cli(org_id, name, code, currency):
    """Add a store to an organization."""
    org = db.session.get(Organization, org_id)
    if not org:
        click.echo(f"FAIL Organization ID {org_id} not found")
        return

    existing = db.session.query(Store).filter_by(org_id=org_id, name=name).first()
    if existing:
        click.echo(f"FAIL Store '{name}' already exists in this organization")
        return

    store = Store(org_id=org_id, name=name, code=code, currency=currency)
    db.session.add(store)
    db.session.commit()

    click.echo(f"PASS Created store: {store.name} (ID: {store.id}) in org '{org.name}'")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--store-id', type=int, required=True, help='Store the user works in')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'manager', 'clerk']), default='clerk', show_default=True)
@with_appcontext
def create_user_cli(store_id, username, password, role):
    """
    Create a user in a store.

    Password must be 8+ characters with an uppercase letter, a lowercase
    letter and a digit.
    """
    store = db.session.get(Store, store_id)
    if not store:
        click.echo(f"FAIL Store ID {store_id} not found")
        return

    try:
        user = create_user(username, password, store.org_id, store.id, role=role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        return
    except (ValueError, TenantAccessError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, role {user.role}) in store '{store.name}'")


# =============================================================================
# RECONCILIATION COMMANDS
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Debt ledger inspection commands."""


@ledger_group.command('reconcile')
@click.option('--store-id', type=int, required=True, help='Store ID')
@with_appcontext
def reconcile_ledger_cli(store_id):
    """Compare STORED-mode running balances with payment history."""
    tenant = _tenant_for_store(store_id)
    if tenant is None:
        return

    drift = debt_service.reconcile_stored_balances(tenant)
    if not drift:
        click.echo("PASS All stored balances match their payment history")
        return

    click.echo(f"\n{'Debt':<8} {'Customer':<30} {'Stored remaining':>18} {'From payments':>15}")
    click.echo("=" * 75)
    for row in drift:
        click.echo(
            f"{row['debt_id']:<8} {row['customer_name'][:30]:<30} "
            f"{format_cents(row['stored_remaining_cents']):>18} {format_cents(row['remaining_cents']):>15}"
        )
    click.echo(f"\nWARN {len(drift)} debt(s) drifted")


@click.group('inventory')
def inventory_group():
    """Inventory snapshot maintenance commands."""


@inventory_group.command('resync')
@click.option('--store-id', type=int, required=True, help='Store ID')
@click.option('--fix', is_flag=True, help='Rewrite drifted counters')
@with_appcontext
def resync_inventory_cli(store_id, fix):
    """Report available_qty counters that disagree with the unsold device count."""
    tenant = _tenant_for_store(store_id)
    if tenant is None:
        return

    drift = inventory_service.resync_snapshots(tenant, fix=fix)
    if not drift:
        click.echo("PASS All inventory snapshots are in sync")
        return

    for row in drift:
        click.echo(
            f"{row['product_id']:<6} {row['name'][:40]:<40} "
            f"available={row['available_qty']} expected={row['expected_available_qty']}"
        )
    if fix:
        click.echo(f"PASS Repaired {len(drift)} snapshot(s)")
    else:
        click.echo(f"WARN {len(drift)} snapshot(s) drifted; re-run with --fix to repair")


# =============================================================================
# SECURITY COMMANDS
# =============================================================================

@click.group('security')
def security_group():
    """Security audit commands."""


@security_group.command('denials')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_denials_cli(org_id, limit):
    """Newest failed logins, permission denials and cross-store attempts."""
    events = recent_denials(org_id, limit=limit)
    if not events:
        click.echo("PASS No denied requests recorded")
        return

    for event in events:
        target = f"{event.entity_type} {event.entity_id}" if event.entity_type else (event.resource or "-")
        click.echo(
            f"{to_utc_z(event.occurred_at)}  {event.event_type:<28} "
            f"user={event.user_id or '-'} store={event.store_id or '-'} {target}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(security_group)
