from datetime import date

from flask import current_app, request
from flask_restx import Namespace, Resource, inputs, reqparse
from flask_jwt_extended import jwt_required
from sqlalchemy.orm import selectinload
from models.client import Client
from models.event import Event
from models.payment import Payment
from utils.analytics import dashboard_metrics
from utils.cache import dashboard_cache
import logging

logger = logging.getLogger(__name__)

# Setting up API namespace
api = Namespace('dashboard', description='Dashboard metrics')

METRICS_CACHE_KEY = 'dashboard:metrics'
WRITE_METHODS = {'POST', 'PUT', 'PATCH', 'DELETE'}

metrics_parser = reqparse.RequestParser()
metrics_parser.add_argument('refresh', type=inputs.boolean, location='args', default=False,
                            help='Bypass the metrics cache')


def register_cache_invalidation(app):
    """Drop cached metrics after any successful write to the business API."""
    @app.after_request
    def invalidate_dashboard_cache(response):
        if (request.method in WRITE_METHODS
                and response.status_code < 400
                and request.path.startswith('/api/')
                and not request.path.startswith('/api/auth')):
            dashboard_cache.invalidate(METRICS_CACHE_KEY)
        return response


@api.route('/metrics')
class DashboardMetrics(Resource):
    @jwt_required()
    @api.expect(metrics_parser)
    @api.response(200, 'Success')
    def get(self):
        """Revenue, event, client and payment KPIs for the dashboard"""
        refresh = metrics_parser.parse_args()['refresh']

        if not refresh:
            cached = dashboard_cache.get(METRICS_CACHE_KEY)
            if cached is not None:
                return dict(cached, cached=True), 200

        events = Event.query.all()
        clients = Client.query.all()
        payments = Payment.query.options(selectinload(Payment.event)).all()

        metrics = dashboard_metrics(events, clients, payments, date.today())
        dashboard_cache.set(METRICS_CACHE_KEY, metrics, current_app.config.get('DASHBOARD_CACHE_TTL', 120))

        logger.info(
            f"Computed dashboard metrics (events: {len(events)}, clients: {len(clients)}, "
            f"payments: {len(payments)}, refresh: {refresh})"
        )
        return dict(metrics, cached=False), 200
