from functools import wraps
import logging

from flask import jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from app import db
from models.user import User, UserRole

logger = logging.getLogger(__name__)

# In-memory blocklist of revoked token ids (jti). Per-process only.
blacklisted_tokens: set[str] = set()


def current_user():
    """Load the user behind the verified JWT, or ``None``."""
    identity = get_jwt_identity()
    if identity is None:
        return None
    return db.session.get(User, int(identity))


def admin_required(fn):
    """Like ``jwt_required()`` but also demands the ``admin`` role claim."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if get_jwt().get('role') != UserRole.ADMIN.value:
            logger.warning("Admin route denied for user_id=%s", get_jwt_identity())
            return {
                'error': 'Forbidden',
                'message': 'You must be an administrator to access this resource'
            }, 403
        return fn(*args, **kwargs)
    return wrapper


def register_jwt_callbacks(jwt):
    @jwt.token_in_blocklist_loader
    def check_if_token_in_blacklist(jwt_header, jwt_payload):
        """Tell Flask-JWT-Extended if a token has been revoked/blacklisted."""
        return jwt_payload["jti"] in blacklisted_tokens

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({
            'error': 'Unauthorized',
            'message': 'You must be logged in to access this resource'
        }), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'error': 'Unauthorized', 'message': reason}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Unauthorized', 'message': 'Token has expired'}), 401

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Unauthorized', 'message': 'Token has been revoked'}), 401
