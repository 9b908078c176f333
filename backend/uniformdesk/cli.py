# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/uniformdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to uniformdesk (PowerShell: $env:FLASK_APP="uniformdesk").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system create-tables
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Companies (tenants):
# - python -m flask companies list
# - python -m flask companies create --code "COMP-ACME" --name "Acme Corp"
#
# Admin roster:
# - python -m flask admins list --company "COMP-ACME"
# - python -m flask admins add --company "COMP-ACME" --employee "EMP-001" --can-approve
# - python -m flask admins remove --company "COMP-ACME" --employee "EMP-001"
#
# Orders:
# - python -m flask orders pending --company "COMP-ACME"
# - python -m flask orders eligibility --employee "EMP-001"

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Company
from .services import eligibility_service, lifecycle_service, permission_service
from .services.permission_service import AdminRosterError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('create-tables')
@with_appcontext
def create_tables():
    """Create all tables that do not exist yet."""
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
# COMPANY MANAGEMENT COMMANDS (MULTI-TENANT)
# =============================================================================

@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies():
    """List all companies."""
    companies = db.session.query(Company).order_by(Company.code.asc()).all()

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Code':<20} {'Name':<30} {'Active':<8} {'Employees':<10} {'Admins'}")
    click.echo("="*80)

    for company in companies:
        active_str = "Yes" if company.is_active else "No"
        click.echo(
            f"{company.code:<20} {company.name:<30} {active_str:<8} "
            f"{len(company.employees):<10} {len(company.admins)}"
        )

    click.echo("="*80 + "\n")


@companies_group.command('create')
@click.option('--code', required=True, help='Company code (unique)')
@click.option('--name', required=True, help='Company name')
@with_appcontext
def create_company_cli(code, name):
    """Create a new company (tenant)."""
    existing = db.session.query(Company).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Company with code '{code}' already exists")
        return

    company = Company(code=code, name=name, is_active=True)
    db.session.add(company)
    db.session.commit()

    click.echo(f"PASS Created company: {company.name} (Code: {company.code})")


# =============================================================================
# ADMIN ROSTER COMMANDS
# =============================================================================

@click.group('admins')
def admins_group():
    """Company admin roster commands."""


@admins_group.command('list')
@click.option('--company', 'company_code', required=True, help='Company code')
@with_appcontext
def list_admins(company_code):
    """List a company's admin roster."""
    admins = permission_service.get_company_admins(company_code)
    if not admins:
        click.echo(f"No admins for company '{company_code}'.")
        return

    for entry in admins:
        employee = entry.employee
        approve_str = "can approve" if entry.can_approve_orders else "view only"
        click.echo(f"{employee.employee_id:<15} {employee.email:<35} {approve_str}")


@admins_group.command('add')
@click.option('--company', 'company_code', required=True, help='Company code')
@click.option('--employee', 'employee_id', required=True, help='Employee ID')
@click.option('--can-approve', is_flag=True, help='Grant order approval')
@with_appcontext
def add_admin(company_code, employee_id, can_approve):
    """Add an employee to the admin roster (or update the approval flag)."""
    try:
        permission_service.add_company_admin(company_code, employee_id, can_approve)
    except AdminRosterError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS {employee_id} is an admin of {company_code} (can approve: {can_approve})")


@admins_group.command('remove')
@click.option('--company', 'company_code', required=True, help='Company code')
@click.option('--employee', 'employee_id', required=True, help='Employee ID')
@with_appcontext
def remove_admin(company_code, employee_id):
    """Remove an employee from the admin roster."""
    try:
        removed = permission_service.remove_company_admin(company_code, employee_id)
    except AdminRosterError as e:
        click.echo(f"FAIL {e}")
        return
    if removed:
        click.echo(f"PASS Removed {employee_id} from {company_code} admins")
    else:
        click.echo(f"WARN  {employee_id} was not an admin of {company_code}")


# =============================================================================
# ORDER INSPECTION COMMANDS
# =============================================================================

@click.group('orders')
def orders_group():
    """Order inspection commands."""


@orders_group.command('pending')
@click.option('--company', 'company_code', required=True, help='Company code')
@with_appcontext
def pending_orders(company_code):
    """List orders awaiting approval for a company."""
    orders = lifecycle_service.get_pending_approvals(company_code)
    click.echo(f"{len(orders)} order(s) awaiting approval for {company_code}")
    for order in orders:
        click.echo(f"{order.order_number:<32} {order.employee_name:<30} {order.total_cents / 100:>10.2f}")


@orders_group.command('eligibility')
@click.option('--employee', 'employee_id', required=True, help='Employee ID')
@with_appcontext
def employee_eligibility(employee_id):
    """Show total / consumed / remaining per category for an employee."""
    summary = eligibility_service.get_eligibility_summary(employee_id)
    if summary is None:
        click.echo(f"FAIL Employee not found: {employee_id}")
        return

    click.echo(f"{'Category':<10} {'Total':>6} {'Used':>6} {'Left':>6}  Cycle")
    for category, row in summary["categories"].items():
        click.echo(
            f"{category:<10} {row['total']:>6} {row['consumed']:>6} {row['remaining']:>6}  "
            f"{row['cycle_start']} -> {row['cycle_end']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(companies_group)  # Multi-tenant company management
    app.cli.add_command(admins_group)
    app.cli.add_command(orders_group)
