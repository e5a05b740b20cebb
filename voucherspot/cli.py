"""Operator commands, run as ``flask <command>`` or ``python manage.py <command>``."""

import click
from flask.cli import with_appcontext

from voucherspot.extensions import db
from voucherspot.models import User
from voucherspot.security.permissions import ALL_PERMISSIONS
from voucherspot.services import maintenance_service, report_service


@click.command("init-db")
@with_appcontext
def init_db():
    """Create all database tables"""
    db.create_all()
    click.echo("Database initialized successfully.")


@click.command("create-admin")
@click.option("--email", prompt=True)
@click.option("--name", prompt="Full name")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_admin(email, name, password):
    """Create a user holding every permission"""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise click.ClickException(f"User with email '{email}' already exists")

    user = User(name=name.strip(), email=email, permissions=list(ALL_PERMISSIONS))
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f"Admin user created: {email}")


@click.command("check-pending-transactions")
@with_appcontext
def check_pending_transactions():
    """Poll gateways for pending transactions"""
    processed = maintenance_service.check_pending_transactions()
    click.echo(f"Processed {processed} transactions.")


@click.command("cleanup-expired-vouchers")
@with_appcontext
def cleanup_expired_vouchers():
    """Remove expired hotspot users and settled CinemaUG transactions"""
    result = maintenance_service.cleanup_expired_vouchers()
    click.echo(
        f"Removed {result['hotspot_users_removed']} hotspot users, "
        f"deleted {result['transactions_deleted']} transactions."
    )


@click.command("refresh-dashboard-stats")
@with_appcontext
def refresh_dashboard_stats():
    """Recompute cached dashboard statistics"""
    count = report_service.refresh_dashboard_stats()
    click.echo(f"Refreshed {count} statistics entries.")


@click.command("backfill-voucher-gateways")
@with_appcontext
def backfill_voucher_gateways():
    """Fill the gateway column on older vouchers"""
    result = maintenance_service.backfill_voucher_gateways()
    click.echo(f"Shop vouchers updated: {result['shop']}")
    click.echo(f"Copied from transaction: {result['copied']}")
    click.echo(f"Skipped: {result['skipped']}")


@click.command("recalculate-voucher-expiry")
@click.option("--dry-run", is_flag=True, help="Show changes without saving them.")
@with_appcontext
def recalculate_voucher_expiry(dry_run):
    """Recompute expiry for activated vouchers"""
    changes = maintenance_service.recalculate_voucher_expiry(dry_run=dry_run)
    for code, expires_at in changes:
        prefix = "[DRY RUN] " if dry_run else ""
        click.echo(f"{prefix}{code} -> {expires_at:%Y-%m-%d %H:%M:%S}")
    verb = "would be updated" if dry_run else "updated"
    click.echo(f"{len(changes)} vouchers {verb}.")


@click.command("cleanup-old-logs")
@with_appcontext
def cleanup_old_logs():
    """Delete rotated log files past retention"""
    deleted = maintenance_service.cleanup_old_logs()
    click.echo(f"Deleted {deleted} old log files.")


COMMANDS = (
    init_db,
    create_admin,
    check_pending_transactions,
    cleanup_expired_vouchers,
    refresh_dashboard_stats,
    backfill_voucher_gateways,
    recalculate_voucher_expiry,
    cleanup_old_logs,
)


def register_cli(app):
    for command in COMMANDS:
        app.cli.add_command(command)
