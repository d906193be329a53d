from flask import request
from flask_restx import Namespace, Resource, fields, reqparse
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from models.client import Client
from models.event import Event
from schemas.client import ClientSchema
from schemas.event import EventSchema
from app import db
from api.errors import validation_error, not_found, conflict, server_error
from utils.pagination import paginate
from utils.query import search_filter, apply_sort
import logging

logger = logging.getLogger(__name__)

# Setting up API namespace
api = Namespace('clients', description='Client operations')

# Define models for swagger
client_model = api.model('Client', {
    'name': fields.String(required=True, description='Client name'),
    'phone': fields.String(description='Client phone number'),
    'email': fields.String(description='Client email'),
    'address': fields.String(description='Client address'),
    'notes': fields.String(description='Additional notes')
})

# Set up schemas
client_schema = ClientSchema()
clients_schema = ClientSchema(many=True)
events_schema = EventSchema(many=True, exclude=('client',))

SORT_COLUMNS = {
    'name': Client.name,
    'createdAt': Client.created_at,
    'updatedAt': Client.updated_at,
}

# Query parameter parser
client_parser = reqparse.RequestParser()
client_parser.add_argument('page', type=int, location='args', help='Page number')
client_parser.add_argument('limit', type=int, location='args', help='Items per page')
client_parser.add_argument('search', type=str, location='args', help='Search name, email or phone')
client_parser.add_argument('sortBy', type=str, location='args', choices=tuple(SORT_COLUMNS),
                           default='createdAt', help='Sort field')
client_parser.add_argument('sortOrder', type=str, location='args', choices=('asc', 'desc'),
                           default='desc', help='Sort direction')


def _email_taken(email, exclude_id=None):
    query = Client.query.filter(Client.email == email)
    if exclude_id is not None:
        query = query.filter(Client.id != exclude_id)
    return db.session.query(query.exists()).scalar()


@api.route('')
class ClientList(Resource):
    @jwt_required()
    @api.expect(client_parser)
    @api.response(200, 'Success')
    def get(self):
        """Get all clients with optional search, sorting and pagination"""
        args = client_parser.parse_args()

        # Base query
        query = Client.query

        # Apply filters
        if args.get('search'):
            query = query.filter(search_filter(args['search'], Client.name, Client.email, Client.phone))

        # Apply sorting; id keeps pages stable when the sort column ties
        query = apply_sort(query, SORT_COLUMNS[args['sortBy']], args['sortOrder']).order_by(Client.id)

        # Apply pagination
        result = paginate(query, args.get('page'), args.get('limit'), clients_schema)

        logger.info(
            f"Listed clients: {len(result['data'])} of {result['pagination']['total']} total "
            f"(page: {result['pagination']['page']}, search: {args.get('search') or 'none'}, "
            f"sort: {args['sortBy']} {args['sortOrder']})"
        )
        return result, 200

    @jwt_required()
    @api.expect(client_model)
    @api.response(201, 'Client created successfully')
    @api.response(400, 'Validation error')
    @api.response(409, 'Email already exists')
    def post(self):
        """Create a new client"""
        try:
            client_data = client_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return validation_error(err, 'Invalid client data')

        if client_data.get('email') and _email_taken(client_data['email']):
            return {'error': 'Email already exists'}, 409

        try:
            client = Client(**client_data)
            db.session.add(client)
            db.session.commit()
        except IntegrityError as e:
            return conflict({'error': 'Email already exists'}, e)
        except SQLAlchemyError as e:
            return server_error('create client', e)

        logger.info(f"Created new client: {client.name} (client_id: {client.id}, email: {client.email or 'none'})")
        return {'data': client_schema.dump(client)}, 201

@api.route('/<int:id>')
class ClientDetail(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    @api.response(404, 'Client not found')
    def get(self, id):
        """Get a client by ID"""
        client = db.session.get(Client, id)
        if client is None:
            return not_found('Client')
        return {'data': client_schema.dump(client)}, 200

    @jwt_required()
    @api.expect(client_model)
    @api.response(200, 'Client updated successfully')
    @api.response(400, 'Validation error')
    @api.response(404, 'Client not found')
    @api.response(409, 'Email already exists')
    def put(self, id):
        """Update a client (partial)"""
        try:
            update_data = client_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return validation_error(err, 'Invalid client data')

        client = db.session.get(Client, id)
        if client is None:
            return not_found('Client')

        new_email = update_data.get('email')
        if new_email and new_email != client.email and _email_taken(new_email, exclude_id=id):
            return {'error': 'Email already exists'}, 409

        try:
            for key, value in update_data.items():
                setattr(client, key, value)
            db.session.commit()
        except IntegrityError as e:
            return conflict({'error': 'Email already exists'}, e)
        except SQLAlchemyError as e:
            return server_error('update client', e)

        logger.info(f"Updated client: {client.name} (client_id: {id}, changes: {', '.join(update_data) or 'none'})")
        return {'data': client_schema.dump(client)}, 200

    @jwt_required()
    @api.response(204, 'Client deleted successfully')
    @api.response(404, 'Client not found')
    @api.response(409, 'Client has events and cannot be deleted')
    def delete(self, id):
        """Delete a client"""
        client = db.session.get(Client, id)
        if client is None:
            return not_found('Client')

        # Check if client has associated events
        if client.events:
            return {'error': 'Client has events and cannot be deleted'}, 409

        try:
            db.session.delete(client)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('delete client', e)

        logger.info(f"Deleted client: {client.name} (client_id: {id})")
        return '', 204

@api.route('/<int:id>/events')
class ClientEvents(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    @api.response(404, 'Client not found')
    def get(self, id):
        """Get all events booked by a client"""
        if db.session.get(Client, id) is None:
            return not_found('Client')

        events = Event.query.filter_by(client_id=id).order_by(Event.date, Event.start_time).all()
        return {'data': events_schema.dump(events)}, 200
