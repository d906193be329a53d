import datetime
from math import ceil

import pytest

from utils.pagination import pagination_meta
from utils.query import parse_date

@pytest.mark.parametrize('page, limit, total', [
    (1, 10, 0),
    (1, 10, 10),
    (1, 10, 11),
    (2, 10, 11),
    (3, 7, 50),
    (8, 7, 50),
])
def test_pagination_meta_is_consistent(page, limit, total):
    meta = pagination_meta(page, limit, total)

    assert meta['total_pages'] == ceil(total / limit)
    assert meta['has_next'] == (page < meta['total_pages'])
    assert meta['has_prev'] == (page > 1)
    assert ('next_page' in meta) == meta['has_next']
    assert ('prev_page' in meta) == meta['has_prev']

def test_pagination_meta_middle_page():
    meta = pagination_meta(2, 10, 25)

    assert meta['total_pages'] == 3
    assert meta['prev_page'] == 1
    assert meta['next_page'] == 3

def test_list_sanitizes_page_and_limit(client, auth_headers):
    for i in range(12):
        client.post('/api/clients', json={'name': f'Client {i:02d}'}, headers=auth_headers)

    response = client.get('/api/clients?page=0&limit=500', headers=auth_headers)
    pagination = response.get_json()['pagination']
    assert pagination['page'] == 1
    assert pagination['limit'] == 100

    response = client.get('/api/clients?page=2&limit=5&sortBy=name&sortOrder=asc', headers=auth_headers)
    data = response.get_json()
    assert data['pagination']['total'] == 13
    assert data['pagination']['total_pages'] == 3
    assert [c['name'] for c in data['data']] == [f'Client {i:02d}' for i in range(5, 10)]

def test_page_past_the_end_is_empty(client, auth_headers):
    response = client.get('/api/clients?page=5', headers=auth_headers)
    data = response.get_json()

    assert data['data'] == []
    assert data['pagination']['has_next'] is False
    assert data['pagination']['has_prev'] is True

@pytest.mark.parametrize('value, expected', [
    ('2025-01-05', datetime.date(2025, 1, 5)),
    ('2025-01-05T13:45:00Z', datetime.date(2025, 1, 5)),
    ('', None),
    (None, None),
])
def test_parse_date(value, expected):
    assert parse_date(value) == expected

def test_parse_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_date('05/01/2025')
