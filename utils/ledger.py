"""
Cash-flow bookkeeping for payments and expenses.

These helpers only stage rows on the session; the caller commits (or rolls
back) together with the payment or expense write that triggered them.
"""
from app import db
from models.cash_flow import CashFlowEntry, CashFlowType, ReferenceType


def payment_income_exists(payment_id):
    return db.session.query(
        CashFlowEntry.query.filter_by(
            reference_id=payment_id,
            reference_type=ReferenceType.PAYMENT,
            type=CashFlowType.INCOME,
        ).exists()
    ).scalar()


def record_payment_income(payment, event_title, transaction_date):
    """Stage the income entry for a payment that has just been marked paid."""
    entry = CashFlowEntry(
        type=CashFlowType.INCOME,
        amount=payment.amount,
        description=f"Payment received - {event_title or 'Event'}"[:200],
        reference_id=payment.id,
        reference_type=ReferenceType.PAYMENT,
        transaction_date=transaction_date,
    )
    db.session.add(entry)
    return entry


def remove_payment_entries(payment_id):
    return CashFlowEntry.query.filter_by(
        reference_id=payment_id,
        reference_type=ReferenceType.PAYMENT,
    ).delete(synchronize_session=False)


def record_expense(expense):
    entry = CashFlowEntry(
        type=CashFlowType.EXPENSE,
        amount=expense.amount,
        description=f"Expense - {expense.title}"[:200],
        reference_id=expense.id,
        reference_type=ReferenceType.EXPENSE,
        transaction_date=expense.expense_date,
    )
    db.session.add(entry)
    return entry


def sync_expense_entry(expense):
    """Keep the expense's ledger row in step with an edited expense."""
    entry = CashFlowEntry.query.filter_by(
        reference_id=expense.id,
        reference_type=ReferenceType.EXPENSE,
    ).first()
    if entry is None:
        return record_expense(expense)
    entry.amount = expense.amount
    entry.transaction_date = expense.expense_date
    entry.description = f"Expense - {expense.title}"[:200]
    return entry


def remove_expense_entries(expense_id):
    return CashFlowEntry.query.filter_by(
        reference_id=expense_id,
        reference_type=ReferenceType.EXPENSE,
    ).delete(synchronize_session=False)


def sync_payment_income(payment):
    """Carry amount/date edits of an already-paid payment onto its income entry."""
    entry = CashFlowEntry.query.filter_by(
        reference_id=payment.id,
        reference_type=ReferenceType.PAYMENT,
        type=CashFlowType.INCOME,
    ).first()
    if entry is None:
        return None
    entry.amount = payment.amount
    entry.description = f"Payment received - {payment.event.title if payment.event else 'Event'}"[:200]
    if payment.payment_date:
        entry.transaction_date = payment.payment_date
    return entry
