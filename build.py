#!/usr/bin/env python3
"""
Build script for deployment.
This script creates the database tables and seeds the default admin account.
"""
import logging

import identity
from access import ADMIN
from app import create_app
from models import Guru, db

logger = logging.getLogger(__name__)


def seed_default_admin(app):
    """Create the default admin account and its Guru profile when configured and missing."""
    email = app.config.get('DEFAULT_ADMIN_EMAIL')
    password = app.config.get('DEFAULT_ADMIN_PASSWORD')
    if not email or not password:
        logger.warning("DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD not set, skipping admin seed")
        return None

    account = identity.get_by_email(email)
    if account is None:
        account = identity.create_account(email, password, display_name='Administrator', commit=False)
    if not Guru.query.filter_by(email=account.email).first():
        db.session.add(Guru(uid=account.uid, nama='Administrator', email=account.email, role=ADMIN,
                            status='Aktif'))
    db.session.commit()
    return account


def initialize_database(app=None):
    """Initialize database for production deployment."""
    app = app or create_app()
    with app.app_context():
        print("Creating database tables...")
        db.create_all()

        print("Creating default admin user...")
        seed_default_admin(app)

        print("Database initialization completed successfully!")


if __name__ == "__main__":
    initialize_database()
