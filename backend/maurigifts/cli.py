# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/maurigifts/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP=maurigifts (PowerShell: $env:FLASK_APP="maurigifts").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create tables and seed the payment providers (idempotent).
# - python -m flask system send-whatsapp-test --to 22334455 --message "Hello"
#   Send one message through the configured WhatsApp relay.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role, PIN status and order count.
# - python -m flask users create-admin --name "Store Admin" --phone 22334455 --pin 1234
#   Create an admin account (the API has no way to grant the admin role).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired sessions.
# - python -m flask maintenance cleanup-otp
#   Delete expired OTP codes.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import PaymentMethod
from .services import auth_service, otp_service, session_service, whatsapp_service
from .validation import ValidationError, ConflictError
from .vocab import PAYMENT_PROVIDERS, PAYMENT_METHOD_ACTIVE, payment_provider_display_name


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create all tables and one payment method row per supported provider.

    Existing payment methods are left untouched. Safe to run repeatedly.
    """
    click.echo("START Initializing MauriGifts backend...")
    db.create_all()
    click.echo("PASS Tables created")

    created = 0
    for provider in PAYMENT_PROVIDERS:
        name = payment_provider_display_name(provider)
        if db.session.query(PaymentMethod).filter_by(name=name).first():
            continue
        db.session.add(PaymentMethod(name=name, status=PAYMENT_METHOD_ACTIVE))
        created += 1
    db.session.commit()
    click.echo(f"PASS Payment methods seeded: {created} new")

    click.echo("\nNext: python -m flask users create-admin --name ... --phone ... --pin ...")


@system_group.command('send-whatsapp-test')
@click.option('--to', 'to', required=True, help='Phone number or whatsapp:+<country><number>')
@click.option('--message', default='MauriGifts WhatsApp relay test', show_default=True)
@with_appcontext
def send_whatsapp_test_cli(to, message):
    """Send one message through the relay to check its credentials."""
    try:
        if not to.startswith("whatsapp:"):
            to = whatsapp_service.format_recipient(otp_service.normalize_phone(to))
        sid = whatsapp_service.send_whatsapp(to, message)
    except (ValueError, whatsapp_service.RelayError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Sent to {to}" + (f" (sid {sid})" if sid else ""))


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    users = auth_service.list_users_with_order_counts()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Name':<30} {'Phone':<10} {'Role':<7} {'PIN':<5} {'Orders'}")
    click.echo("="*72)
    for row in users:
        pin_str = "yes" if row["has_pin"] else "no"
        click.echo(f"{row['id']:<5} {row['name'][:30]:<30} {row['phone_number']:<10} {row['role']:<7} {pin_str:<5} {row['order_count']}")
    click.echo("="*72 + "\n")


@users_group.command('create-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--phone', prompt=True, help='8-digit phone number')
@click.option('--pin', prompt=True, hide_input=True, confirmation_prompt=True, help='4-digit PIN')
@with_appcontext
def create_admin_cli(name, phone, pin):
    try:
        user = auth_service.create_admin(name, phone, pin)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created admin: {user.name} ({user.phone_number}) ID {user.id}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired sessions.")


@maintenance_group.command('cleanup-otp')
@with_appcontext
def cleanup_otp_cli():
    deleted = otp_service.cleanup_expired_codes()
    click.echo(f"Deleted {deleted} expired OTP codes.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
