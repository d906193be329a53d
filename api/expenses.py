from decimal import Decimal

from flask import request
from flask_restx import Namespace, Resource, fields, reqparse
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from models.expense import Expense
from schemas.expense import ExpenseSchema
from app import db
from api.errors import validation_error, not_found, server_error
from utils.ledger import record_expense, sync_expense_entry, remove_expense_entries
from utils.pagination import paginate
from utils.query import search_filter, apply_sort, date_range_filter, parse_date_args
import logging

logger = logging.getLogger(__name__)

# Setting up API namespace
api = Namespace('expenses', description='Expense operations')

# Define models for swagger
expense_model = api.model('Expense', {
    'title': fields.String(required=True, description='Expense title'),
    'description': fields.String(description='Expense description'),
    'amount': fields.String(required=True, description='Expense amount'),
    'category': fields.String(required=True, description='Expense category'),
    'expense_date': fields.Date(required=True, description='Expense date')
})

# Set up schemas
expense_schema = ExpenseSchema()
expenses_schema = ExpenseSchema(many=True)

SORT_COLUMNS = {
    'expenseDate': Expense.expense_date,
    'amount': Expense.amount,
    'createdAt': Expense.created_at,
}

# Query parameter parser
expense_parser = reqparse.RequestParser()
expense_parser.add_argument('page', type=int, location='args', help='Page number')
expense_parser.add_argument('limit', type=int, location='args', help='Items per page')
expense_parser.add_argument('search', type=str, location='args', help='Search title or description')
expense_parser.add_argument('category', type=str, location='args', help='Filter by category')
expense_parser.add_argument('dateFrom', type=str, location='args', help='Filter by date from (YYYY-MM-DD)')
expense_parser.add_argument('dateTo', type=str, location='args', help='Filter by date to (YYYY-MM-DD)')
expense_parser.add_argument('sortBy', type=str, location='args', choices=tuple(SORT_COLUMNS),
                            default='expenseDate', help='Sort field')
expense_parser.add_argument('sortOrder', type=str, location='args', choices=('asc', 'desc'),
                            default='desc', help='Sort direction')

@api.route('')
class ExpenseList(Resource):
    @jwt_required()
    @api.expect(expense_parser)
    @api.response(200, 'Success')
    def get(self):
        """Get all expenses with optional filtering, pagination and the filtered total"""
        args = expense_parser.parse_args()

        (date_from, date_to), error = parse_date_args(args, 'dateFrom', 'dateTo')
        if error:
            return error, 400

        # Base query
        query = Expense.query

        # Apply filters
        if args.get('search'):
            query = query.filter(search_filter(args['search'], Expense.title, Expense.description))

        if args.get('category'):
            query = query.filter(Expense.category == args['category'])

        date_condition = date_range_filter(Expense.expense_date, date_from, date_to)
        if date_condition is not None:
            query = query.filter(date_condition)

        # Calculate total before pagination
        total_amount = query.with_entities(func.coalesce(func.sum(Expense.amount), 0)).scalar()

        # Apply sorting
        query = apply_sort(query, SORT_COLUMNS[args['sortBy']], args['sortOrder']).order_by(Expense.id)

        result = paginate(query, args.get('page'), args.get('limit'), expenses_schema)
        result['total_amount'] = f"{Decimal(total_amount or 0):.2f}"

        logger.info(
            f"Listed expenses: {len(result['data'])} of {result['pagination']['total']} total "
            f"(category: {args.get('category') or 'all'}, total_amount: {result['total_amount']})"
        )
        return result, 200

    @jwt_required()
    @api.expect(expense_model)
    @api.response(201, 'Expense created successfully')
    @api.response(400, 'Validation error')
    def post(self):
        """Create a new expense and book it in the cash flow"""
        try:
            expense_data = expense_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return validation_error(err, 'Invalid expense data')

        try:
            expense = Expense(**expense_data)
            db.session.add(expense)
            # Flush to obtain the expense id for the ledger reference
            db.session.flush()
            record_expense(expense)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('create expense', e)

        logger.info(f"Created new expense: {expense.title} (expense_id: {expense.id}, amount: {expense.amount})")
        return {'data': expense_schema.dump(expense)}, 201

@api.route('/<int:id>')
class ExpenseDetail(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    @api.response(404, 'Expense not found')
    def get(self, id):
        """Get an expense by ID"""
        expense = db.session.get(Expense, id)
        if expense is None:
            return not_found('Expense')
        return {'data': expense_schema.dump(expense)}, 200

    @jwt_required()
    @api.expect(expense_model)
    @api.response(200, 'Expense updated successfully')
    @api.response(400, 'Validation error')
    @api.response(404, 'Expense not found')
    def put(self, id):
        """Update an expense (partial) and its cash-flow entry"""
        try:
            update_data = expense_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return validation_error(err, 'Invalid expense data')

        expense = db.session.get(Expense, id)
        if expense is None:
            return not_found('Expense')

        try:
            for key, value in update_data.items():
                setattr(expense, key, value)
            sync_expense_entry(expense)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('update expense', e)

        logger.info(f"Updated expense: {expense.title} (expense_id: {id}, changes: {', '.join(update_data) or 'none'})")
        return {'data': expense_schema.dump(expense)}, 200

    @jwt_required()
    @api.response(204, 'Expense deleted successfully')
    @api.response(404, 'Expense not found')
    def delete(self, id):
        """Delete an expense together with its cash-flow entry"""
        expense = db.session.get(Expense, id)
        if expense is None:
            return not_found('Expense')

        try:
            remove_expense_entries(id)
            db.session.delete(expense)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('delete expense', e)

        logger.info(f"Deleted expense: {expense.title} (expense_id: {id})")
        return '', 204
