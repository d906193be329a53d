"""``flask`` CLI commands for database setup."""
import logging

import click
from flask import current_app

from app import db
from models.user import User, UserRole

logger = logging.getLogger(__name__)


def seed_admin():
    """Create the configured administrator unless an admin already exists."""
    if User.query.filter_by(role=UserRole.ADMIN.value).first():
        return None

    admin = User(
        username=current_app.config['ADMIN_USERNAME'],
        email=current_app.config['ADMIN_EMAIL'],
        role=UserRole.ADMIN.value,
    )
    admin.set_password(current_app.config['ADMIN_PASSWORD'])
    db.session.add(admin)
    db.session.commit()

    logger.info(f"Seeded administrator: {admin.username} (user_id: {admin.id})")
    return admin


def register_commands(app):
    @app.cli.command('init-db')
    def init_db():
        """Create missing tables and seed the administrator."""
        db.create_all()
        admin = seed_admin()
        click.echo('Database initialized.')
        if admin:
            click.echo(f'Created admin user "{admin.username}".')

    @app.cli.command('reset-db')
    @click.confirmation_option(prompt='This drops every table. Continue?')
    def reset_db():
        """Drop and recreate every table, then seed the administrator."""
        db.drop_all()
        db.create_all()
        seed_admin()
        click.echo('Database reset.')
