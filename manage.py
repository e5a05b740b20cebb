"""Management script for database migrations and scheduled-job commands"""

import os

import click
from dotenv import load_dotenv
from flask.cli import FlaskGroup
from flask_migrate import upgrade

load_dotenv()

from voucherspot import create_app  # noqa: E402

cli = FlaskGroup(create_app=lambda: create_app(os.getenv("APP_ENV")))


@cli.command("migrate-db")
def migrate_db():
    """Apply any pending database migrations"""
    click.echo("Applying database migrations...")
    upgrade()
    click.echo("Database migrations applied successfully.")


@cli.command("drop-db")
def drop_db():
    """Drop all database tables"""
    from voucherspot.extensions import db

    if click.confirm("Are you sure you want to drop all tables?"):
        db.drop_all()
        click.echo("Database dropped successfully.")
    else:
        click.echo("Operation cancelled.")


if __name__ == "__main__":
    cli()
