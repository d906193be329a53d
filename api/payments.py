from datetime import date, datetime, time, timedelta

from flask import request
from flask_restx import Namespace, Resource, fields, reqparse
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
from models.client import Client
from models.event import Event
from models.payment import Payment, PaymentStatus, PaymentMethod
from schemas.payment import PaymentSchema, EventPaymentSchema
from app import db
from api.errors import validation_error, not_found, server_error
from utils.analytics import event_payment_summary, payment_analytics_summary, detailed_payment_analytics
from utils.ledger import (
    payment_income_exists,
    record_payment_income,
    remove_payment_entries,
    sync_payment_income,
)
from utils.pagination import paginate
from utils.query import search_filter, apply_sort, date_range_filter, parse_date_args
import logging

logger = logging.getLogger(__name__)

# Setting up API namespace
api = Namespace('payments', description='Payment operations')

STATUS_VALUES = [s.value for s in PaymentStatus]
METHOD_VALUES = [m.value for m in PaymentMethod]

# Define models for swagger
payment_model = api.model('Payment', {
    'event_id': fields.Integer(required=True, description='Event ID'),
    'amount': fields.String(required=True, description='Payment amount'),
    'payment_method': fields.String(required=True, description='Payment method', enum=METHOD_VALUES),
    'status': fields.String(description='Payment status', enum=STATUS_VALUES),
    'due_date': fields.Date(description='Due date'),
    'payment_date': fields.Date(description='Actual payment date'),
    'notes': fields.String(description='Additional notes')
})

# Set up schemas
payment_schema = PaymentSchema()
payments_schema = PaymentSchema(many=True)
event_payments_schema = EventPaymentSchema(many=True)

SORT_COLUMNS = {
    'dueDate': Payment.due_date,
    'paymentDate': Payment.payment_date,
    'amount': Payment.amount,
    'createdAt': Payment.created_at,
}

# Query parameter parser
payment_parser = reqparse.RequestParser()
payment_parser.add_argument('page', type=int, location='args', help='Page number')
payment_parser.add_argument('limit', type=int, location='args', help='Items per page')
payment_parser.add_argument('search', type=str, location='args', help='Search event title, client name or notes')
payment_parser.add_argument('status', type=str, location='args', choices=STATUS_VALUES, help='Filter by status')
payment_parser.add_argument('paymentMethod', type=str, location='args', choices=METHOD_VALUES,
                            help='Filter by payment method')
payment_parser.add_argument('eventId', type=int, location='args', help='Filter by event ID')
payment_parser.add_argument('dueDateFrom', type=str, location='args', help='Filter by due date from (YYYY-MM-DD)')
payment_parser.add_argument('dueDateTo', type=str, location='args', help='Filter by due date to (YYYY-MM-DD)')
payment_parser.add_argument('sortBy', type=str, location='args', choices=tuple(SORT_COLUMNS),
                            default='dueDate', help='Sort field')
payment_parser.add_argument('sortOrder', type=str, location='args', choices=('asc', 'desc'),
                            default='asc', help='Sort direction')

summary_parser = reqparse.RequestParser()
summary_parser.add_argument('period', type=int, location='args', default=30, help='Number of days to look back')

detailed_parser = reqparse.RequestParser()
detailed_parser.add_argument('dateFrom', type=str, location='args', help='Created from (YYYY-MM-DD)')
detailed_parser.add_argument('dateTo', type=str, location='args', help='Created to (YYYY-MM-DD)')
detailed_parser.add_argument('clientId', type=str, location='args', help="Client ID or 'all'")
detailed_parser.add_argument('status', type=str, location='args', choices=STATUS_VALUES, help='Filter by status')
detailed_parser.add_argument('paymentMethod', type=str, location='args', choices=METHOD_VALUES,
                             help='Filter by payment method')


def _joined_payments():
    return (
        Payment.query
        .outerjoin(Event, Payment.event_id == Event.id)
        .outerjoin(Client, Event.client_id == Client.id)
        .options(joinedload(Payment.event).joinedload(Event.client))
    )


@api.route('')
class PaymentList(Resource):
    @jwt_required()
    @api.expect(payment_parser)
    @api.response(200, 'Success')
    def get(self):
        """Get all payments with optional filtering and pagination"""
        args = payment_parser.parse_args()

        (due_from, due_to), error = parse_date_args(args, 'dueDateFrom', 'dueDateTo')
        if error:
            return error, 400

        # Base query, event and client joined for search and the embedded summaries
        query = _joined_payments()

        # Apply filters
        if args.get('search'):
            query = query.filter(search_filter(args['search'], Event.title, Client.name, Payment.notes))

        if args.get('status'):
            query = query.filter(Payment.status == PaymentStatus(args['status']))

        if args.get('paymentMethod'):
            query = query.filter(Payment.payment_method == PaymentMethod(args['paymentMethod']))

        if args.get('eventId'):
            query = query.filter(Payment.event_id == args['eventId'])

        due_condition = date_range_filter(Payment.due_date, due_from, due_to)
        if due_condition is not None:
            query = query.filter(due_condition)

        # Apply sorting
        query = apply_sort(query, SORT_COLUMNS[args['sortBy']], args['sortOrder']).order_by(Payment.id)

        result = paginate(query, args.get('page'), args.get('limit'), payments_schema)

        logger.info(
            f"Listed payments: {len(result['data'])} of {result['pagination']['total']} total "
            f"(page: {result['pagination']['page']}, filters: status={args.get('status') or 'all'}, "
            f"method={args.get('paymentMethod') or 'all'})"
        )
        return result, 200

    @jwt_required()
    @api.expect(payment_model)
    @api.response(201, 'Payment created successfully')
    @api.response(400, 'Validation error or event not found')
    def post(self):
        """Create a new payment; a paid payment with a date is booked as income"""
        try:
            payment_data = payment_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return validation_error(err, 'Invalid payment data')

        event = db.session.get(Event, payment_data['event_id'])
        if event is None:
            return {'error': 'Event not found'}, 400

        try:
            payment = Payment(**payment_data)
            db.session.add(payment)

            if payment.status == PaymentStatus.PAID and payment.payment_date:
                # Flush to obtain the payment id for the ledger reference
                db.session.flush()
                record_payment_income(payment, event.title, payment.payment_date)

            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('create payment', e)

        logger.info(
            f"Created new payment for event: {event.title} (payment_id: {payment.id}, "
            f"amount: {payment.amount}, status: {payment.status.value})"
        )
        return {'data': payment_schema.dump(payment)}, 201

@api.route('/<int:id>')
class PaymentDetail(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    @api.response(404, 'Payment not found')
    def get(self, id):
        """Get a payment by ID, with its event and client"""
        payment = db.session.get(Payment, id)
        if payment is None:
            return not_found('Payment')
        return {'data': payment_schema.dump(payment)}, 200

    @jwt_required()
    @api.expect(payment_model)
    @api.response(200, 'Payment updated successfully')
    @api.response(400, 'Validation error')
    @api.response(404, 'Payment not found')
    def put(self, id):
        """Update a payment (partial), keeping the cash-flow ledger consistent"""
        try:
            update_data = payment_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return validation_error(err, 'Invalid payment data')

        payment = db.session.get(Payment, id)
        if payment is None:
            return not_found('Payment')

        new_event = None
        if 'event_id' in update_data:
            new_event = db.session.get(Event, update_data['event_id'])
            if new_event is None:
                return {'error': 'Event not found'}, 400

        was_paid = payment.status == PaymentStatus.PAID
        status_change = 'no status change'

        try:
            for key, value in update_data.items():
                setattr(payment, key, value)
            if new_event is not None:
                # Keep the loaded relationship in step with the new event_id
                payment.event = new_event

            is_paid = payment.status == PaymentStatus.PAID
            if not was_paid and is_paid and payment.payment_date:
                if not payment_income_exists(payment.id):
                    record_payment_income(payment, payment.event.title, payment.payment_date)
                status_change = 'marked as paid'
            elif was_paid and not is_paid:
                remove_payment_entries(payment.id)
                status_change = 'paid status reverted'
            elif was_paid and is_paid:
                if sync_payment_income(payment) is None and payment.payment_date:
                    record_payment_income(payment, payment.event.title, payment.payment_date)

            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('update payment', e)

        logger.info(
            f"Updated payment (payment_id: {id}, changes: {', '.join(update_data) or 'none'}, "
            f"status_change: {status_change})"
        )
        return {'data': payment_schema.dump(payment)}, 200

    @jwt_required()
    @api.response(204, 'Payment deleted successfully')
    @api.response(404, 'Payment not found')
    def delete(self, id):
        """Delete a payment together with its cash-flow entries"""
        payment = db.session.get(Payment, id)
        if payment is None:
            return not_found('Payment')

        try:
            removed = remove_payment_entries(id)
            db.session.delete(payment)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('delete payment', e)

        logger.info(f"Deleted payment (payment_id: {id}, cash_flow_entries_removed: {removed})")
        return '', 204

@api.route('/event/<int:event_id>')
class EventPayments(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    def get(self, event_id):
        """Get the payments of one event with paid/pending totals"""
        payments = (
            Payment.query.filter_by(event_id=event_id)
            .order_by(Payment.due_date, Payment.id)
            .all()
        )
        summary = event_payment_summary(payments)

        logger.info(
            f"Retrieved {len(payments)} payments for event (event_id: {event_id}, "
            f"total: {summary['total_amount']}, paid: {summary['paid_amount']}, pending: {summary['pending_amount']})"
        )
        return {'payments': event_payments_schema.dump(payments), 'summary': summary}, 200

@api.route('/analytics/summary')
class PaymentAnalyticsSummary(Resource):
    @jwt_required()
    @api.expect(summary_parser)
    @api.response(200, 'Success')
    def get(self):
        """Payment status/method distribution over the last N days"""
        days = summary_parser.parse_args()['period']
        if days < 1:
            return {'error': 'period must be a positive number of days'}, 400

        start = datetime.combine(date.today() - timedelta(days=days), time.min)

        recent = Payment.query.filter(Payment.created_at >= start).all()
        overdue = Payment.query.filter(
            Payment.status == PaymentStatus.OVERDUE,
            Payment.due_date <= date.today()
        ).all()

        logger.info(f"Retrieved payment analytics for {days} days")
        return payment_analytics_summary(recent, overdue, days), 200

@api.route('/analytics/detailed')
class PaymentAnalyticsDetailed(Resource):
    @jwt_required()
    @api.expect(detailed_parser)
    @api.response(200, 'Success')
    def get(self):
        """Detailed payment analytics with client ranking and monthly breakdown"""
        args = detailed_parser.parse_args()

        (date_from, date_to), error = parse_date_args(args, 'dateFrom', 'dateTo')
        if error:
            return error, 400

        query = _joined_payments()

        # created_at is a timestamp; make the date bounds inclusive whole days
        if date_from:
            query = query.filter(Payment.created_at >= datetime.combine(date_from, time.min))
        if date_to:
            query = query.filter(Payment.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

        if args.get('status'):
            query = query.filter(Payment.status == PaymentStatus(args['status']))

        if args.get('paymentMethod'):
            query = query.filter(Payment.payment_method == PaymentMethod(args['paymentMethod']))

        client_id = args.get('clientId')
        if client_id and client_id != 'all':
            if not client_id.isdigit():
                return {'error': "clientId must be a numeric id or 'all'"}, 400
            query = query.filter(Event.client_id == int(client_id))

        payments = query.all()
        analytics = detailed_payment_analytics(payments)
        analytics['filters'] = {
            'date_from': args.get('dateFrom'),
            'date_to': args.get('dateTo'),
            'client_id': client_id,
            'status': args.get('status'),
            'payment_method': args.get('paymentMethod'),
            'record_count': len(payments),
        }

        logger.info(f"Retrieved detailed payment analytics ({len(payments)} records)")
        return analytics, 200
