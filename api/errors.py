import logging

from flask import g
from flask_limiter.errors import RateLimitExceeded
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app import db

logger = logging.getLogger(__name__)


def validation_error(err, message='Invalid input data'):
    """400 body carrying marshmallow's per-field messages."""
    return {'error': message, 'details': err.messages}, 400


def not_found(resource):
    return {'error': f'{resource} not found'}, 404


def rate_limited(error):
    logger.warning(f"Rate limit exceeded (correlation_id={g.get('correlation_id')}): {error.description}")
    return {
        'error': 'Too many requests',
        'message': f'Rate limit of {error.description} exceeded. Try again later.'
    }, 429


def conflict(body, exc):
    """Roll back a write rejected by a unique constraint and answer 409."""
    db.session.rollback()
    logger.warning(f"Unique constraint rejected write (correlation_id={g.get('correlation_id')}): {exc.orig}")
    return body, 409


def server_error(action, exc):
    """Roll back the failed unit of work and produce the generic 500 body."""
    db.session.rollback()
    logger.error(f"Error trying to {action} (correlation_id={g.get('correlation_id')}): {exc}")
    return {'error': f'Failed to {action}'}, 500


def register_error_handlers(app, api):
    @api.errorhandler(ValidationError)
    def handle_validation_error(error):
        return validation_error(error)

    @api.errorhandler(RateLimitExceeded)
    def handle_rate_limited(error):
        return rate_limited(error)

    @app.errorhandler(429)
    def handle_app_rate_limited(error):
        return rate_limited(error)

    @api.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        logger.warning(f"Integrity error: {error.orig}")
        return {'error': 'Conflicting or invalid reference data'}, 409

    @api.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        logger.exception(f"Database error: {error}")
        return {'error': 'Internal server error'}, 500
