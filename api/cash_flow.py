from datetime import date, timedelta
from decimal import Decimal

from flask_restx import Namespace, Resource, reqparse
from flask_jwt_extended import jwt_required
from sqlalchemy import case, func
from models.cash_flow import CashFlowEntry, CashFlowType, ReferenceType
from models.expense import Expense
from models.payment import Payment, PaymentStatus
from schemas.cash_flow import CashFlowEntrySchema
from utils.analytics import cash_flow_summary, expense_categories
from utils.pagination import paginate
from utils.query import search_filter, apply_sort, date_range_filter, parse_date_args
import logging

logger = logging.getLogger(__name__)

# Setting up API namespace
api = Namespace('cash-flow', description='Cash flow operations')

PERIODS = (7, 30, 90, 365)

# Set up schemas
entries_schema = CashFlowEntrySchema(many=True)

SORT_COLUMNS = {
    'transactionDate': CashFlowEntry.transaction_date,
    'amount': CashFlowEntry.amount,
    'createdAt': CashFlowEntry.created_at,
}

# Query parameter parser
cash_flow_parser = reqparse.RequestParser()
cash_flow_parser.add_argument('page', type=int, location='args', help='Page number')
cash_flow_parser.add_argument('limit', type=int, location='args', help='Items per page')
cash_flow_parser.add_argument('search', type=str, location='args', help='Search description')
cash_flow_parser.add_argument('type', type=str, location='args', choices=[t.value for t in CashFlowType],
                              help='Filter by entry type')
cash_flow_parser.add_argument('referenceType', type=str, location='args',
                              choices=[r.value for r in ReferenceType], help='Filter by reference type')
cash_flow_parser.add_argument('dateFrom', type=str, location='args', help='Filter by date from (YYYY-MM-DD)')
cash_flow_parser.add_argument('dateTo', type=str, location='args', help='Filter by date to (YYYY-MM-DD)')
cash_flow_parser.add_argument('sortBy', type=str, location='args', choices=tuple(SORT_COLUMNS),
                              default='transactionDate', help='Sort field')
cash_flow_parser.add_argument('sortOrder', type=str, location='args', choices=('asc', 'desc'),
                              default='desc', help='Sort direction')

summary_parser = reqparse.RequestParser()
summary_parser.add_argument('period', type=int, location='args', choices=PERIODS, default=30,
                            help='Window in days (7, 30, 90 or 365)')


def _as_money(value):
    return f"{Decimal(value or 0):.2f}"


@api.route('')
class CashFlowList(Resource):
    @jwt_required()
    @api.expect(cash_flow_parser)
    @api.response(200, 'Success')
    def get(self):
        """Get cash-flow entries with filtering, pagination and totals"""
        args = cash_flow_parser.parse_args()

        (date_from, date_to), error = parse_date_args(args, 'dateFrom', 'dateTo')
        if error:
            return error, 400

        query = CashFlowEntry.query

        # Apply filters
        if args.get('search'):
            query = query.filter(search_filter(args['search'], CashFlowEntry.description))

        if args.get('type'):
            query = query.filter(CashFlowEntry.type == CashFlowType(args['type']))

        if args.get('referenceType'):
            query = query.filter(CashFlowEntry.reference_type == ReferenceType(args['referenceType']))

        date_condition = date_range_filter(CashFlowEntry.transaction_date, date_from, date_to)
        if date_condition is not None:
            query = query.filter(date_condition)

        # Totals over the filtered set, before pagination
        income, expenses = query.with_entities(
            func.coalesce(func.sum(case((CashFlowEntry.type == CashFlowType.INCOME, CashFlowEntry.amount),
                                        else_=0)), 0),
            func.coalesce(func.sum(case((CashFlowEntry.type == CashFlowType.EXPENSE, CashFlowEntry.amount),
                                        else_=0)), 0),
        ).one()

        query = apply_sort(query, SORT_COLUMNS[args['sortBy']], args['sortOrder']).order_by(CashFlowEntry.id)

        result = paginate(query, args.get('page'), args.get('limit'), entries_schema)
        result['totals'] = {
            'income': _as_money(income),
            'expenses': _as_money(expenses),
            'net': _as_money(Decimal(income or 0) - Decimal(expenses or 0)),
        }

        logger.info(
            f"Listed cash flow: {len(result['data'])} of {result['pagination']['total']} entries "
            f"(type: {args.get('type') or 'all'}, net: {result['totals']['net']})"
        )
        return result, 200

@api.route('/summary')
class CashFlowSummary(Resource):
    @jwt_required()
    @api.expect(summary_parser)
    @api.response(200, 'Success')
    def get(self):
        """Income, expenses, pending income and a daily chart for the last N days"""
        days = summary_parser.parse_args()['period']
        end_date = date.today()
        start_date = end_date - timedelta(days=days - 1)

        entries = CashFlowEntry.query.filter(
            CashFlowEntry.transaction_date.between(start_date, end_date)
        ).all()
        pending = Payment.query.filter(
            Payment.status != PaymentStatus.PAID,
            Payment.due_date.between(start_date, end_date)
        ).all()
        expenses = Expense.query.filter(Expense.expense_date.between(start_date, end_date)).all()

        summary = cash_flow_summary(entries, pending, start_date, end_date)
        summary['period'] = days
        summary['expense_categories'] = expense_categories(expenses)

        logger.info(
            f"Retrieved cash flow summary for {days} days "
            f"(income: {summary['total_income']}, expenses: {summary['total_expenses']})"
        )
        return summary, 200
