import logging
import os
import time
import uuid
from datetime import datetime, timezone
from flask import Flask, g, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy.orm import DeclarativeBase
from flask_jwt_extended import JWTManager, get_jwt_identity, verify_jwt_in_request
from flask_marshmallow import Marshmallow
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_restx import Api

# Configure logging
logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
)
logger = logging.getLogger(__name__)

# Database setup
class Base(DeclarativeBase):
    pass

db = SQLAlchemy(model_class=Base)
migrate = Migrate()
ma = Marshmallow()
jwt = JWTManager()


def _current_user_id():
    """Best-effort user id for request logs; never fails the request."""
    try:
        verify_jwt_in_request(optional=True)
        return get_jwt_identity()
    except Exception:
        return None


def register_request_logging(app):
    @app.before_request
    def start_request_log():
        g.request_started = time.monotonic()
        g.correlation_id = f"req-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
        logger.info(
            "Incoming request correlation_id=%s method=%s path=%s ip=%s",
            g.correlation_id, request.method, request.path, request.remote_addr
        )

    @app.after_request
    def finish_request_log(response):
        correlation_id = g.get('correlation_id')
        if correlation_id:
            response.headers['X-Correlation-ID'] = correlation_id
            duration_ms = (time.monotonic() - g.request_started) * 1000
            logger.info(
                "Request completed correlation_id=%s method=%s path=%s status=%s duration_ms=%.1f user_id=%s",
                correlation_id, request.method, request.path, response.status_code,
                duration_ms, _current_user_id()
            )
        return response


def add_security_headers(response):
    """Add security headers to every response"""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'SAMEORIGIN'
    response.headers['Referrer-Policy'] = 'same-origin'
    response.headers.setdefault(
        'Content-Security-Policy',
        "default-src 'self'; style-src 'self' 'unsafe-inline'; "
        "script-src 'self' 'unsafe-inline'; img-src 'self' data: https:"
    )
    return response


def create_app(config_object='config.DevelopmentConfig'):
    # Create and configure the app
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Set secret key from environment or default
    app.secret_key = os.environ.get("SESSION_SECRET") or app.config['JWT_SECRET_KEY']

    # Fix proxy issues
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    ma.init_app(app)
    jwt.init_app(app)
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True,
         expose_headers=['X-Correlation-ID'])

    register_request_logging(app)
    app.after_request(add_security_headers)

    # One limiter per app so counters and RATELIMIT_* settings never leak between apps
    limiter = Limiter(get_remote_address, app=app)

    # API documentation setup
    authorizations = {
        'jwt': {
            'type': 'apiKey',
            'in': 'header',
            'name': 'Authorization',
            'description': "Type in the *'Value'* input box below: **'Bearer &lt;JWT&gt;'**, where JWT is the token"
        }
    }

    api = Api(
        app,
        version='1.0',
        title="Buffet Junior's Kids API",
        description='Party buffet management API: clients, events, payments and cash flow',
        doc='/api/docs',
        authorizations=authorizations,
        security='jwt'
    )

    # Register namespaces
    from api.auth import api as auth_ns
    from api.clients import api as clients_ns
    from api.events import api as events_ns
    from api.payments import api as payments_ns
    from api.expenses import api as expenses_ns
    from api.cash_flow import api as cash_flow_ns
    from api.documents import api as documents_ns
    from api.dashboard import api as dashboard_ns, register_cache_invalidation
    from api.errors import register_error_handlers
    from utils.security import register_jwt_callbacks
    from commands import register_commands

    api.add_namespace(auth_ns, path='/api/auth')
    api.add_namespace(clients_ns, path='/api/clients')
    api.add_namespace(events_ns, path='/api/events')
    api.add_namespace(payments_ns, path='/api/payments')
    api.add_namespace(expenses_ns, path='/api/expenses')
    api.add_namespace(cash_flow_ns, path='/api/cash-flow')
    api.add_namespace(documents_ns, path='/api/documents')
    api.add_namespace(dashboard_ns, path='/api/dashboard')

    register_error_handlers(app, api)
    register_jwt_callbacks(jwt)
    register_commands(app)
    register_cache_invalidation(app)

    @app.route('/health')
    @limiter.exempt
    def health_check():
        """Health check endpoint"""
        return {
            'status': 'ok',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'environment': app.config.get('ENVIRONMENT', 'development'),
        }

    # Register error handlers
    @app.errorhandler(404)
    def not_found(error):
        return {'error': 'Not found', 'message': f'Route {request.method} {request.path} does not exist'}, 404

    @app.errorhandler(500)
    def server_error(error):
        logger.error(f"Server error: {error}")
        return {'error': 'Internal server error'}, 500

    @app.errorhandler(Exception)
    def unhandled_exception(error):
        if isinstance(error, HTTPException):
            return {'error': error.name, 'message': error.description}, error.code
        logger.exception(f"Unhandled exception (correlation_id={g.get('correlation_id')}): {error}")
        db.session.rollback()
        return {'error': 'Internal server error'}, 500

    # Create database tables within app context
    with app.app_context():
        import models  # noqa: F401
        db.create_all()

    return app
