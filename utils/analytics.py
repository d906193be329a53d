"""
Aggregations behind the payments, cash-flow and dashboard reports.

Everything here works on already-loaded model instances so the same code
runs on PostgreSQL and on the SQLite test database.
"""
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from models.cash_flow import CashFlowType
from models.event import EventStatus
from models.payment import PaymentStatus

TOP_CLIENTS = 10
TOP_PACKAGES = 5
REVENUE_MONTHS = 6
ACTIVE_CLIENT_MONTHS = 6
REVENUE_STATUSES = (EventStatus.CONFIRMED, EventStatus.COMPLETED)


def money(value):
    """Decimal (or number) to a JSON-friendly float rounded to cents."""
    return float(round(Decimal(value or 0), 2))


def percentage(part, whole):
    return round(float(part) / float(whole) * 100, 2) if whole else 0.0


def _sum(items, attr='amount'):
    return sum((getattr(item, attr) or Decimal('0') for item in items), Decimal('0'))


def distribution(items, key):
    """``{key(item): {"count": n, "amount": total}}`` over ``items``."""
    buckets = defaultdict(lambda: {'count': 0, 'amount': Decimal('0')})
    for item in items:
        bucket = buckets[key(item)]
        bucket['count'] += 1
        bucket['amount'] += item.amount
    return {name: {'count': b['count'], 'amount': money(b['amount'])} for name, b in buckets.items()}


def event_payment_summary(payments):
    paid = [p for p in payments if p.status == PaymentStatus.PAID]
    total_amount = _sum(payments)
    paid_amount = _sum(paid)
    return {
        'total_amount': money(total_amount),
        'paid_amount': money(paid_amount),
        'pending_amount': money(total_amount - paid_amount),
        'total_payments': len(payments),
        'paid_payments': len(paid),
        'pending_payments': sum(1 for p in payments if p.status == PaymentStatus.PENDING),
        'overdue_payments': sum(1 for p in payments if p.status == PaymentStatus.OVERDUE),
    }


def payment_analytics_summary(recent_payments, overdue_payments, days):
    paid = [p for p in recent_payments if p.status == PaymentStatus.PAID]
    return {
        'period': f'{days} days',
        'total_payments': len(recent_payments),
        'payments_by_status': distribution(recent_payments, lambda p: p.status.value),
        'payments_by_method': distribution(paid, lambda p: p.payment_method.value),
        'overdue_payments': {
            'count': len(overdue_payments),
            'total_amount': money(_sum(overdue_payments)),
        },
    }


def detailed_payment_analytics(payments):
    total_amount = _sum(payments)
    paid_amount = _sum(p for p in payments if p.status == PaymentStatus.PAID)
    pending_amount = _sum(p for p in payments if p.status == PaymentStatus.PENDING)

    clients = {}
    months = {}
    for payment in payments:
        client = payment.event.client if payment.event else None
        client_key = client.id if client else None
        stats = clients.setdefault(client_key, {
            'client_id': client_key,
            'client_name': client.name if client else 'Unknown client',
            'total_amount': Decimal('0'),
            'paid_amount': Decimal('0'),
            'payment_count': 0,
            'event_ids': set(),
        })
        stats['total_amount'] += payment.amount
        stats['payment_count'] += 1
        stats['event_ids'].add(payment.event_id)

        month = payment.created_at.strftime('%Y-%m')
        bucket = months.setdefault(month, {
            'month': month,
            'total_amount': Decimal('0'),
            'paid_amount': Decimal('0'),
            'payment_count': 0,
            'paid_count': 0,
        })
        bucket['total_amount'] += payment.amount
        bucket['payment_count'] += 1

        if payment.status == PaymentStatus.PAID:
            stats['paid_amount'] += payment.amount
            bucket['paid_amount'] += payment.amount
            bucket['paid_count'] += 1

    top_clients = sorted(clients.values(), key=lambda c: c['total_amount'], reverse=True)[:TOP_CLIENTS]

    return {
        'summary': {
            'total_payments': len(payments),
            'total_amount': money(total_amount),
            'paid_amount': money(paid_amount),
            'pending_amount': money(pending_amount),
            'payment_rate': percentage(paid_amount, total_amount),
            'average_payment': money(total_amount / len(payments)) if payments else 0.0,
        },
        'distributions': {
            'by_status': distribution(payments, lambda p: p.status.value),
            'by_method': distribution(payments, lambda p: p.payment_method.value),
        },
        'top_clients': [
            {
                'client_id': c['client_id'],
                'client_name': c['client_name'],
                'total_amount': money(c['total_amount']),
                'paid_amount': money(c['paid_amount']),
                'payment_count': c['payment_count'],
                'event_count': len(c['event_ids']),
                'payment_rate': percentage(c['paid_amount'], c['total_amount']),
                'average_payment': money(c['total_amount'] / c['payment_count']),
            }
            for c in top_clients
        ],
        'monthly_breakdown': [
            dict(m, total_amount=money(m['total_amount']), paid_amount=money(m['paid_amount']))
            for _, m in sorted(months.items())
        ],
    }


def cash_flow_summary(entries, pending_payments, start_date, end_date):
    """
    Totals plus one chart point per day in ``[start_date, end_date]``.

    ``pending_payments`` are unpaid payments falling in the window; they
    count as expected income, not as cash received.
    """
    income = _sum(e for e in entries if e.type == CashFlowType.INCOME)
    expenses = _sum(e for e in entries if e.type == CashFlowType.EXPENSE)

    daily = defaultdict(lambda: {'income': Decimal('0'), 'expenses': Decimal('0')})
    for entry in entries:
        column = 'income' if entry.type == CashFlowType.INCOME else 'expenses'
        daily[entry.transaction_date][column] += entry.amount

    chart_data = []
    day = start_date
    while day <= end_date:
        point = daily.get(day, {'income': Decimal('0'), 'expenses': Decimal('0')})
        chart_data.append({
            'date': day.isoformat(),
            'income': money(point['income']),
            'expenses': money(point['expenses']),
            'net_flow': money(point['income'] - point['expenses']),
        })
        day += timedelta(days=1)

    return {
        'total_income': money(income),
        'total_expenses': money(expenses),
        'net_cash_flow': money(income - expenses),
        'pending_income': money(_sum(pending_payments)),
        'chart_data': chart_data,
    }


def expense_categories(expenses):
    totals = defaultdict(Decimal)
    for expense in expenses:
        totals[expense.category] += expense.amount
    return [
        {'name': name, 'value': money(value)}
        for name, value in sorted(totals.items(), key=lambda item: item[1], reverse=True)
    ]


def dashboard_metrics(events, clients, payments, today):
    """KPIs for the dashboard home screen."""
    month_start = today.replace(day=1)
    six_months_ago = today - relativedelta(months=ACTIVE_CLIENT_MONTHS)

    revenue_events = [e for e in events if e.status in REVENUE_STATUSES]
    monthly_events = [e for e in events if e.date >= month_start]
    total_revenue = _sum(revenue_events, 'total_value')
    monthly_revenue = _sum((e for e in monthly_events if e.status in REVENUE_STATUSES), 'total_value')
    projected_revenue = _sum(
        (e for e in events if e.status in (EventStatus.CONFIRMED, EventStatus.PENDING) and e.date > today),
        'total_value',
    )

    paid_amount = _sum(p for p in payments if p.status == PaymentStatus.PAID)
    pending_amount = _sum(p for p in payments if p.status == PaymentStatus.PENDING)
    overdue_amount = _sum(
        p for p in payments
        if p.status == PaymentStatus.OVERDUE
        or (p.status == PaymentStatus.PENDING and p.due_date and p.due_date < today)
    )

    events_by_status = {status.value: 0 for status in EventStatus}
    for event in events:
        events_by_status[event.status.value] += 1

    packages = defaultdict(lambda: {'count': 0, 'revenue': Decimal('0')})
    for event in events:
        packages[event.package_type]['count'] += 1
        packages[event.package_type]['revenue'] += event.total_value
    popular_packages = sorted(packages.items(), key=lambda item: item[1]['revenue'], reverse=True)[:TOP_PACKAGES]

    revenue_by_month = []
    for offset in range(REVENUE_MONTHS - 1, -1, -1):
        start = month_start - relativedelta(months=offset)
        end = start + relativedelta(months=1)
        in_month = [e for e in revenue_events if start <= e.date < end]
        revenue_by_month.append({
            'month': start.strftime('%Y-%m'),
            'revenue': money(_sum(in_month, 'total_value')),
            'events': len(in_month),
        })

    paid = [p for p in payments if p.status == PaymentStatus.PAID]
    method_distribution = distribution(paid, lambda p: p.payment_method.value)

    active_client_ids = {e.client_id for e in events if e.date >= six_months_ago}
    new_clients = [c for c in clients if c.created_at.date() >= month_start]

    return {
        'financial': {
            'total_revenue': money(total_revenue),
            'monthly_revenue': money(monthly_revenue),
            'projected_revenue': money(projected_revenue),
            'pending_payments': money(pending_amount),
            'overdue_payments': money(overdue_amount),
            'payment_rate': percentage(paid_amount, total_revenue),
            'average_event_value': money(_sum(events, 'total_value') / len(events)) if events else 0.0,
        },
        'events': {
            'total_events': len(events),
            'monthly_events': len(monthly_events),
            'by_status': events_by_status,
            'average_guests_per_event': round(sum(e.guests_count for e in events) / len(events), 1) if events else 0.0,
        },
        'clients': {
            'total_clients': len(clients),
            'new_clients_this_month': len(new_clients),
            'active_clients': len(active_client_ids),
            'client_retention_rate': percentage(len(active_client_ids), len(clients)),
        },
        'popular_packages': [
            {'package': name, 'count': data['count'], 'revenue': money(data['revenue'])}
            for name, data in popular_packages
        ],
        'revenue_by_month': revenue_by_month,
        'payment_method_distribution': [
            {'method': method, **stats} for method, stats in sorted(method_distribution.items())
        ],
    }
