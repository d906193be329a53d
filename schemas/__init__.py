# Import all schemas to make them accessible from schemas package
from schemas.user import UserSchema, LoginSchema
from schemas.client import ClientSchema, ClientSummarySchema
from schemas.event import EventSchema, CalendarEventSchema
from schemas.payment import PaymentSchema, EventPaymentSchema
from schemas.expense import ExpenseSchema
from schemas.cash_flow import CashFlowEntrySchema
from schemas.document import DocumentSchema
