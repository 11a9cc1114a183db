"""
Flask CLI commands for database and stock management.

Commands:
- flask db-upgrade: Apply Alembic migrations up to head
- flask init-db: Create all tables directly (local development only)
- flask low-stock: List items at or below the low-stock threshold
"""

import os

import click
from flask import current_app

from app.database import get_database, get_session
from app.services.inventory_service import low_stock_items

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _alembic_config():
    from alembic.config import Config as AlembicConfig

    alembic_cfg = AlembicConfig(os.path.join(PROJECT_ROOT, 'alembic.ini'))
    alembic_cfg.set_main_option('script_location', os.path.join(PROJECT_ROOT, 'migrations'))
    alembic_cfg.set_main_option('sqlalchemy.url', current_app.config['SQLALCHEMY_DATABASE_URI'])
    return alembic_cfg


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('db-upgrade')
    @click.option('--revision', default='head', show_default=True, help='Target revision')
    def db_upgrade(revision):
        """Apply schema migrations."""
        from alembic import command

        command.upgrade(_alembic_config(), revision)
        click.echo(click.style(f'✅ Database upgraded to {revision}', fg='green'))

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table from the models, without migrations."""
        get_database().create_all()
        click.echo(click.style('✅ Tables created', fg='green'))

    @app.cli.command('low-stock')
    @click.option('--threshold', type=int, default=None, help='Override LOW_STOCK_THRESHOLD')
    def low_stock(threshold):
        """List items that need restocking."""
        if threshold is None:
            threshold = current_app.config.get('LOW_STOCK_THRESHOLD', 5)

        items = low_stock_items(get_session(), threshold)
        if not items:
            click.echo(click.style(f'No items at or below {threshold} units.', fg='green'))
            return

        click.echo(click.style(f'{len(items)} item(s) at or below {threshold} units:', fg='yellow', bold=True))
        for item in items:
            click.echo(f'   {item.sku:<15} {item.name:<40} {item.quantity:>5}')
