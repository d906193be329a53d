# Import all models to make them accessible from models package
from models.user import User, UserRole
from models.client import Client
from models.event import Event, EventStatus
from models.payment import Payment, PaymentStatus, PaymentMethod
from models.document import Document
from models.expense import Expense
from models.cash_flow import CashFlowEntry, CashFlowType, ReferenceType
