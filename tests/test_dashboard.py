"""
Test the dashboard upload and export endpoints
"""
import io
import json

import pytest

from dashboard import app, get_pipeline

MONZO_CSV = (
    "Transaction ID,Date,Time,Type,Name,Category,Amount,Notes and #tags\n"
    "tx_1,15/01/2024,08:00:00,Direct Debit,NETFLIX.COM,Entertainment,-9.99,\n"
    "tx_2,15/02/2024,08:00:00,Direct Debit,NETFLIX.COM,Entertainment,-9.99,\n"
    "tx_3,15/03/2024,08:00:00,Direct Debit,NETFLIX.COM,Entertainment,-9.99,\n"
    "tx_4,16/03/2024,12:30:00,Card payment,Tesco Stores 1234,Groceries,-24.50,\n"
).encode('utf-8')


@pytest.fixture
def client(monkeypatch):
    for name in ('BUDGET_CATEGORY_RULES', 'BUDGET_EXCLUSION_RULES', 'BUDGET_FUZZY_WORKERS'):
        monkeypatch.delenv(name, raising=False)
    get_pipeline.cache_clear()
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
    get_pipeline.cache_clear()


def post_files(client, endpoint, content=MONZO_CSV, filename='personal.csv', **form):
    data = {'files': (io.BytesIO(content), filename)}
    data.update(form)
    return client.post(endpoint, data=data, content_type='multipart/form-data')


def upload(client, **kwargs):
    return post_files(client, '/upload', **kwargs)


def test_index(client):
    response = client.get('/')
    assert response.status_code == 200
    data = response.get_json()
    assert data['timeframes'] == ['this_month', 'last_3', 'all']


def test_upload_without_files(client):
    response = client.post('/upload', data={}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_upload_rejects_non_csv(client):
    response = upload(client, filename='statement.pdf')
    assert response.status_code == 400
    data = response.get_json()
    assert data['error'] == 'No valid CSV files'
    assert data['details'][0]['filename'] == 'statement.pdf'


def test_upload_processes_csv(client):
    response = upload(client, timeframe='last_3')
    assert response.status_code == 200
    data = response.get_json()

    assert data['success'] is True
    assert data['files_processed'] == 1
    assert data['errors'] is None
    assert data['stats']['raw_count'] == 4

    bills = data['bills']['bills']
    assert [b['payee_normalized'] for b in bills] == ['netflix com']
    assert bills[0]['required_exact'] == 9.99
    assert bills[0]['typical_day'] == 15
    assert data['bills']['total_monthly'] == 9.99

    assert data['variable']['timeframe'] == 'last_3'
    assert [c['category'] for c in data['variable']['categories']] == ['Groceries (non-Spar)']


def test_upload_applies_payee_overrides(client):
    response = upload(client, payee_overrides=json.dumps({'Tesco Stores 1234': 'Food Shop'}))
    assert response.status_code == 200
    categories = response.get_json()['variable']['categories']
    assert [c['category'] for c in categories] == ['Food Shop']


def test_upload_reject_bill_override(client):
    overrides = [{'payee_normalized': 'netflix com', 'action': 'reject'}]
    response = upload(client, bill_overrides=json.dumps(overrides))
    assert response.status_code == 200
    data = response.get_json()
    assert data['bills']['bills'] == []
    assert data['bills']['total_monthly'] == 0.0


@pytest.mark.parametrize('form', [
    {'timeframe': 'fortnight'},
    {'payee_overrides': '{not json'},
    {'payee_overrides': '["a list"]'},
    {'bill_overrides': json.dumps([{'payee_normalized': 'netflix com', 'action': 'snooze'}])},
])
def test_upload_invalid_options(client, form):
    response = upload(client, **form)
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_upload_without_valid_dates(client):
    content = b"Transaction ID,Date,Name,Amount\ntx_1,2024-01-15,Shop,-1.00\n"
    response = upload(client, content=content)
    assert response.status_code == 400


def test_upload_with_missing_rules_file(client, monkeypatch, tmp_path):
    monkeypatch.setenv('BUDGET_CATEGORY_RULES', str(tmp_path / 'missing.json'))
    get_pipeline.cache_clear()
    response = upload(client)
    assert response.status_code == 500
    assert 'Configuration error' in response.get_json()['error']


def test_export_csv(client):
    transactions = upload(client).get_json()['transactions']
    response = post_files(client, '/export/csv')
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'

    lines = response.data.decode('utf-8').strip().splitlines()
    assert lines[0].startswith('id,date,month_key')
    assert len(lines) == len(transactions) + 1
    assert 'netflix com' in lines[1]
    assert lines[1].endswith(',active,9.99,15')


def test_export_csv_applies_overrides(client):
    response = post_files(client, '/export/csv', payee_overrides=json.dumps({'Tesco Stores 1234': 'Food Shop'}))
    assert response.status_code == 200
    assert 'Food Shop' in response.data.decode('utf-8')


def test_export_json_matches_upload(client):
    uploaded = upload(client, timeframe='last_3').get_json()
    response = post_files(client, '/export/json', timeframe='last_3')
    assert response.status_code == 200
    assert response.mimetype == 'application/json'

    data = json.loads(response.data)
    assert set(data) == {'stats', 'transactions', 'bills', 'variable'}
    assert data['transactions'] == uploaded['transactions']
    assert data['bills'] == uploaded['bills']
    assert data['variable']['timeframe'] == 'last_3'


@pytest.mark.parametrize('endpoint', ['/export/csv', '/export/json'])
def test_export_rejects_bad_uploads(client, endpoint):
    response = client.post(endpoint, data={}, content_type='multipart/form-data')
    assert response.status_code == 400

    response = post_files(client, endpoint, filename='statement.pdf')
    assert response.status_code == 400
    assert response.get_json()['details'][0]['filename'] == 'statement.pdf'

    response = post_files(client, endpoint, timeframe='fortnight')
    assert response.status_code == 400
    assert 'error' in response.get_json()
