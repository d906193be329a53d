import datetime

from app import db
from models import CashFlowEntry, CashFlowType, ReferenceType, Payment

def _payment(event_id, **overrides):
    payload = {
        'event_id': event_id,
        'amount': '100.00',
        'payment_method': 'pix',
        'due_date': '2025-01-10',
    }
    payload.update(overrides)
    return payload

def _income_entries(app, payment_id):
    with app.app_context():
        return CashFlowEntry.query.filter_by(
            reference_id=payment_id,
            reference_type=ReferenceType.PAYMENT
        ).all()

def test_create_pending_payment(client, auth_headers, event_id, app):
    response = client.post('/api/payments', json=_payment(event_id), headers=auth_headers)

    assert response.status_code == 201

    data = response.get_json()['data']
    assert data['status'] == 'pending'
    assert data['amount'] == '100.00'
    assert data['event']['title'] == 'Ana 5th Birthday'
    assert data['client']['name'] == 'Maria Silva'

    # Pending payments are not cash received
    assert _income_entries(app, data['id']) == []

def test_create_paid_payment_books_income(client, auth_headers, event_id, app):
    response = client.post('/api/payments', json=_payment(event_id, status='paid', payment_date='2025-01-05'),
                           headers=auth_headers)
    assert response.status_code == 201
    payment_id = response.get_json()['data']['id']

    entries = _income_entries(app, payment_id)
    assert len(entries) == 1
    assert entries[0].type == CashFlowType.INCOME
    assert str(entries[0].amount) == '100.00'
    assert entries[0].transaction_date == datetime.date(2025, 1, 5)
    assert entries[0].description == 'Payment received - Ana 5th Birthday'

def test_create_payment_unknown_event(client, auth_headers):
    response = client.post('/api/payments', json=_payment(999), headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Event not found'

def test_create_payment_validation(client, auth_headers, event_id):
    response = client.post('/api/payments', json=_payment(event_id, amount='0', payment_method='cheque'),
                           headers=auth_headers)

    assert response.status_code == 400
    details = response.get_json()['details']
    assert 'amount' in details
    assert 'payment_method' in details

def test_mark_paid_creates_single_income_entry(client, auth_headers, event_id, app):
    """Marking a 100.00 payment paid on 2025-01-05 books exactly one income entry"""
    payment_id = client.post('/api/payments', json=_payment(event_id),
                             headers=auth_headers).get_json()['data']['id']

    response = client.put(f'/api/payments/{payment_id}', json={
        'status': 'paid',
        'payment_date': '2025-01-05'
    }, headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'paid'

    entries = _income_entries(app, payment_id)
    assert len(entries) == 1
    assert entries[0].type == CashFlowType.INCOME
    assert str(entries[0].amount) == '100.00'
    assert entries[0].transaction_date == datetime.date(2025, 1, 5)

    # Saving the paid payment again does not book it twice
    client.put(f'/api/payments/{payment_id}', json={'status': 'paid', 'notes': 'receipt sent'},
               headers=auth_headers)
    assert len(_income_entries(app, payment_id)) == 1

def test_mark_paid_uses_new_amount(client, auth_headers, event_id, app):
    payment_id = client.post('/api/payments', json=_payment(event_id),
                             headers=auth_headers).get_json()['data']['id']

    client.put(f'/api/payments/{payment_id}', json={
        'status': 'paid',
        'amount': '150.00',
        'payment_date': '2025-01-06'
    }, headers=auth_headers)

    entries = _income_entries(app, payment_id)
    assert [str(e.amount) for e in entries] == ['150.00']

def test_mark_paid_without_date_books_nothing(client, auth_headers, event_id, app):
    payment_id = client.post('/api/payments', json=_payment(event_id),
                             headers=auth_headers).get_json()['data']['id']

    client.put(f'/api/payments/{payment_id}', json={'status': 'paid'}, headers=auth_headers)
    assert _income_entries(app, payment_id) == []

    # The date arriving later completes the booking
    client.put(f'/api/payments/{payment_id}', json={'payment_date': '2025-01-07'}, headers=auth_headers)
    entries = _income_entries(app, payment_id)
    assert len(entries) == 1
    assert entries[0].transaction_date == datetime.date(2025, 1, 7)

def test_reverting_paid_removes_income(client, auth_headers, event_id, app):
    payment_id = client.post('/api/payments', json=_payment(event_id, status='paid', payment_date='2025-01-05'),
                             headers=auth_headers).get_json()['data']['id']

    response = client.put(f'/api/payments/{payment_id}', json={'status': 'pending'}, headers=auth_headers)

    assert response.status_code == 200
    assert _income_entries(app, payment_id) == []

def test_editing_paid_amount_updates_income(client, auth_headers, event_id, app):
    payment_id = client.post('/api/payments', json=_payment(event_id, status='paid', payment_date='2025-01-05'),
                             headers=auth_headers).get_json()['data']['id']

    client.put(f'/api/payments/{payment_id}', json={'amount': '120.00'}, headers=auth_headers)

    entries = _income_entries(app, payment_id)
    assert [str(e.amount) for e in entries] == ['120.00']

def test_moving_paid_payment_renames_income(client, auth_headers, event_id, client_id, app):
    """The income entry follows a paid payment onto its new event"""
    other_event = client.post('/api/events', json={
        'client_id': client_id,
        'title': 'Lucas 3rd Birthday',
        'date': '2025-06-07',
        'start_time': '10:00',
        'end_time': '12:00',
        'guests_count': 20,
        'package_type': 'Basic',
        'total_value': '1500.00',
    }, headers=auth_headers).get_json()['data']['id']
    payment_id = client.post('/api/payments', json=_payment(event_id, status='paid', payment_date='2025-01-05'),
                             headers=auth_headers).get_json()['data']['id']

    response = client.put(f'/api/payments/{payment_id}', json={'event_id': other_event}, headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()['data']['event']['title'] == 'Lucas 3rd Birthday'
    entries = _income_entries(app, payment_id)
    assert [e.description for e in entries] == ['Payment received - Lucas 3rd Birthday']

def test_delete_payment_removes_income(client, auth_headers, event_id, app):
    payment_id = client.post('/api/payments', json=_payment(event_id, status='paid', payment_date='2025-01-05'),
                             headers=auth_headers).get_json()['data']['id']

    response = client.delete(f'/api/payments/{payment_id}', headers=auth_headers)
    assert response.status_code == 204

    assert _income_entries(app, payment_id) == []
    with app.app_context():
        assert db.session.get(Payment, payment_id) is None

def test_update_missing_payment(client, auth_headers):
    response = client.put('/api/payments/999', json={'status': 'paid'}, headers=auth_headers)
    assert response.status_code == 404

def test_list_payments_filters(client, auth_headers, event_id):
    client.post('/api/payments', json=_payment(event_id, amount='200.00', due_date='2025-02-01'),
                headers=auth_headers)
    client.post('/api/payments', json=_payment(event_id, payment_method='cash', status='paid',
                                               payment_date='2025-01-05'), headers=auth_headers)

    response = client.get('/api/payments', headers=auth_headers)
    data = response.get_json()
    assert data['pagination']['total'] == 2
    # Default order is by due date
    assert [p['due_date'] for p in data['data']] == ['2025-01-10', '2025-02-01']

    response = client.get('/api/payments?status=paid', headers=auth_headers)
    assert [p['payment_method'] for p in response.get_json()['data']] == ['cash']

    response = client.get('/api/payments?dueDateFrom=2025-01-15', headers=auth_headers)
    assert [p['amount'] for p in response.get_json()['data']] == ['200.00']

    response = client.get('/api/payments?search=maria', headers=auth_headers)
    assert response.get_json()['pagination']['total'] == 2

    response = client.get('/api/payments?sortBy=amount&sortOrder=desc', headers=auth_headers)
    assert [p['amount'] for p in response.get_json()['data']] == ['200.00', '100.00']

def test_event_payments_summary(client, auth_headers, event_id):
    client.post('/api/payments', json=_payment(event_id, amount='1000.00', status='paid',
                                               payment_date='2025-01-05'), headers=auth_headers)
    client.post('/api/payments', json=_payment(event_id, amount='2500.00'), headers=auth_headers)

    response = client.get(f'/api/payments/event/{event_id}', headers=auth_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert len(data['payments']) == 2
    assert data['summary']['total_amount'] == 3500.0
    assert data['summary']['paid_amount'] == 1000.0
    assert data['summary']['pending_amount'] == 2500.0
    assert data['summary']['paid_payments'] == 1
    assert data['summary']['pending_payments'] == 1

def test_analytics_summary(client, auth_headers, event_id):
    client.post('/api/payments', json=_payment(event_id, status='paid', payment_date='2025-01-05'),
                headers=auth_headers)
    client.post('/api/payments', json=_payment(event_id, amount='50.00'), headers=auth_headers)

    response = client.get('/api/payments/analytics/summary?period=30', headers=auth_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert data['period'] == '30 days'
    assert data['total_payments'] == 2
    assert data['payments_by_status']['paid'] == {'count': 1, 'amount': 100.0}
    assert data['payments_by_status']['pending'] == {'count': 1, 'amount': 50.0}
    assert data['payments_by_method'] == {'pix': {'count': 1, 'amount': 100.0}}

def test_analytics_summary_rejects_zero_period(client, auth_headers):
    response = client.get('/api/payments/analytics/summary?period=0', headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()['error'] == 'period must be a positive number of days'

def test_detailed_analytics(client, auth_headers, event_id, client_id):
    client.post('/api/payments', json=_payment(event_id, status='paid', payment_date='2025-01-05'),
                headers=auth_headers)
    client.post('/api/payments', json=_payment(event_id, amount='300.00'), headers=auth_headers)

    response = client.get(f'/api/payments/analytics/detailed?clientId={client_id}', headers=auth_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert data['summary']['total_payments'] == 2
    assert data['summary']['total_amount'] == 400.0
    assert data['summary']['payment_rate'] == 25.0
    assert data['top_clients'][0]['client_name'] == 'Maria Silva'
    assert data['top_clients'][0]['event_count'] == 1
    assert len(data['monthly_breakdown']) == 1

    response = client.get('/api/payments/analytics/detailed?clientId=999', headers=auth_headers)
    assert response.get_json()['summary']['total_payments'] == 0
