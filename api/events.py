from calendar import monthrange
from datetime import date

from flask import request
from flask_restx import Namespace, Resource, fields, reqparse
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
from models.client import Client
from models.event import Event, EventStatus
from schemas.event import EventSchema, CalendarEventSchema
from app import db
from api.errors import validation_error, not_found, server_error
from utils.pagination import paginate
from utils.query import search_filter, apply_sort, date_range_filter, parse_date_args
from utils.scheduling import ScheduleError, validate_time_window, find_conflicting_event
import logging

logger = logging.getLogger(__name__)

# Setting up API namespace
api = Namespace('events', description='Event (party booking) operations')

# Define models for swagger
event_model = api.model('Event', {
    'client_id': fields.Integer(required=True, description='Client ID'),
    'title': fields.String(required=True, description='Event title'),
    'date': fields.Date(required=True, description='Event date'),
    'start_time': fields.String(required=True, description='Start time (HH:MM)'),
    'end_time': fields.String(required=True, description='End time (HH:MM)'),
    'guests_count': fields.Integer(required=True, description='Number of guests'),
    'package_type': fields.String(required=True, description='Package type'),
    'total_value': fields.String(required=True, description='Total value'),
    'status': fields.String(description='Event status', enum=[s.value for s in EventStatus]),
    'notes': fields.String(description='Additional notes')
})

# Set up schemas
event_schema = EventSchema()
events_schema = EventSchema(many=True)
calendar_events_schema = CalendarEventSchema(many=True)

SORT_COLUMNS = {
    'date': Event.date,
    'title': Event.title,
    'createdAt': Event.created_at,
    'totalValue': Event.total_value,
}

# Query parameter parser
event_parser = reqparse.RequestParser()
event_parser.add_argument('page', type=int, location='args', help='Page number')
event_parser.add_argument('limit', type=int, location='args', help='Items per page')
event_parser.add_argument('search', type=str, location='args', help='Search title, package or notes')
event_parser.add_argument('status', type=str, location='args', choices=[s.value for s in EventStatus],
                          help='Filter by status')
event_parser.add_argument('clientId', type=int, location='args', help='Filter by client ID')
event_parser.add_argument('dateFrom', type=str, location='args', help='Filter by date from (YYYY-MM-DD)')
event_parser.add_argument('dateTo', type=str, location='args', help='Filter by date to (YYYY-MM-DD)')
event_parser.add_argument('sortBy', type=str, location='args', choices=tuple(SORT_COLUMNS),
                          default='date', help='Sort field')
event_parser.add_argument('sortOrder', type=str, location='args', choices=('asc', 'desc'),
                          default='asc', help='Sort direction')


def _conflict_response(conflicting_event):
    return {
        'error': 'Time conflict with existing event',
        'conflicting_event': event_schema.dump(conflicting_event),
    }, 409


@api.route('')
class EventList(Resource):
    @jwt_required()
    @api.expect(event_parser)
    @api.response(200, 'Success')
    def get(self):
        """Get all events with optional filtering and pagination"""
        args = event_parser.parse_args()

        (date_from, date_to), error = parse_date_args(args, 'dateFrom', 'dateTo')
        if error:
            return error, 400

        # Base query, client joined for the embedded summary
        query = Event.query.options(joinedload(Event.client))

        # Apply filters
        if args.get('search'):
            query = query.filter(search_filter(args['search'], Event.title, Event.package_type, Event.notes))

        if args.get('status'):
            query = query.filter(Event.status == EventStatus(args['status']))

        if args.get('clientId'):
            query = query.filter(Event.client_id == args['clientId'])

        date_condition = date_range_filter(Event.date, date_from, date_to)
        if date_condition is not None:
            query = query.filter(date_condition)

        # Apply sorting
        query = apply_sort(query, SORT_COLUMNS[args['sortBy']], args['sortOrder'])
        query = query.order_by(Event.start_time, Event.id)

        result = paginate(query, args.get('page'), args.get('limit'), events_schema)

        logger.info(
            f"Listed events: {len(result['data'])} of {result['pagination']['total']} total "
            f"(page: {result['pagination']['page']}, filters: status={args.get('status') or 'all'}, "
            f"client={args.get('clientId') or 'all'})"
        )
        return result, 200

    @jwt_required()
    @api.expect(event_model)
    @api.response(201, 'Event created successfully')
    @api.response(400, 'Validation error')
    @api.response(409, 'Time conflict with existing event')
    def post(self):
        """Create a new event, rejecting overlaps with events on the same date"""
        try:
            event_data = event_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return validation_error(err, 'Invalid event data')

        if db.session.get(Client, event_data['client_id']) is None:
            return {'error': 'Client not found'}, 400

        try:
            validate_time_window(event_data['start_time'], event_data['end_time'])
        except ScheduleError as e:
            return {'error': str(e)}, 400

        conflict = find_conflicting_event(event_data['date'], event_data['start_time'], event_data['end_time'])
        if conflict is not None:
            logger.info(f"Rejected event '{event_data['title']}': overlaps event_id {conflict.id} on {conflict.date}")
            return _conflict_response(conflict)

        try:
            event = Event(**event_data)
            db.session.add(event)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('create event', e)

        logger.info(f"Created new event: {event.title} (event_id: {event.id}, client_id: {event.client_id})")
        return {'data': event_schema.dump(event)}, 201

@api.route('/<int:id>')
class EventDetail(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    @api.response(404, 'Event not found')
    def get(self, id):
        """Get an event by ID, with its client"""
        event = db.session.get(Event, id)
        if event is None:
            return not_found('Event')
        return {'data': event_schema.dump(event)}, 200

    @jwt_required()
    @api.expect(event_model)
    @api.response(200, 'Event updated successfully')
    @api.response(400, 'Validation error')
    @api.response(404, 'Event not found')
    @api.response(409, 'Time conflict with existing event')
    def put(self, id):
        """Update an event (partial), re-checking its time window"""
        try:
            update_data = event_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return validation_error(err, 'Invalid event data')

        event = db.session.get(Event, id)
        if event is None:
            return not_found('Event')

        if 'client_id' in update_data and db.session.get(Client, update_data['client_id']) is None:
            return {'error': 'Client not found'}, 400

        event_date = update_data.get('date', event.date)
        start_time = update_data.get('start_time', event.start_time)
        end_time = update_data.get('end_time', event.end_time)

        if 'start_time' in update_data or 'end_time' in update_data:
            try:
                validate_time_window(start_time, end_time)
            except ScheduleError as e:
                return {'error': str(e)}, 400

        if {'date', 'start_time', 'end_time'} & update_data.keys():
            conflict = find_conflicting_event(event_date, start_time, end_time, exclude_id=id)
            if conflict is not None:
                return _conflict_response(conflict)

        try:
            for key, value in update_data.items():
                setattr(event, key, value)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('update event', e)

        logger.info(f"Updated event: {event.title} (event_id: {id}, changes: {', '.join(update_data) or 'none'})")
        return {'data': event_schema.dump(event)}, 200

    @jwt_required()
    @api.response(204, 'Event deleted successfully')
    @api.response(404, 'Event not found')
    @api.response(409, 'Event has payments and cannot be deleted')
    def delete(self, id):
        """Delete an event"""
        event = db.session.get(Event, id)
        if event is None:
            return not_found('Event')

        if event.payments:
            return {'error': 'Event has payments and cannot be deleted'}, 409

        try:
            db.session.delete(event)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('delete event', e)

        logger.info(f"Deleted event: {event.title} (event_id: {id})")
        return '', 204

@api.route('/calendar/<int:year>/<int:month>')
class EventCalendar(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    @api.response(400, 'Invalid year or month')
    def get(self, year, month):
        """Get every event of a month for the calendar view"""
        if month < 1 or month > 12 or year < 1:
            return {'error': 'Invalid year or month'}, 400

        start_date = date(year, month, 1)
        end_date = date(year, month, monthrange(year, month)[1])

        events = (
            Event.query.options(joinedload(Event.client))
            .filter(Event.date.between(start_date, end_date))
            .order_by(Event.date, Event.start_time)
            .all()
        )

        logger.info(f"Retrieved calendar events for {year}-{month:02d}: {len(events)} events")
        return {
            'year': year,
            'month': month,
            'events': calendar_events_schema.dump(events),
        }, 200
