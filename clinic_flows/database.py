"""
Database setup - Flask-SQLAlchemy instance shared by models and services
"""
import logging

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

logger = logging.getLogger(__name__)

db = SQLAlchemy()

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')


def init_db(app):
    """Import models so they register on the metadata, and create tables in dev/test."""
    from clinic_flows import models  # noqa: F401

    with app.app_context():
        if app.config.get('SQLALCHEMY_CREATE_ALL'):
            db.create_all()
            logger.info("Database tables created")
