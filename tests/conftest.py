"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta

import pytest
from flask import g

from contractor_hub.app import create_app
from contractor_hub.client.api import ApiClient
from contractor_hub.client.cache import ResponseCache
from contractor_hub.models import (
    db as _db, User, Contact, Quote, QuoteItem, Contract, Invoice, Job, JobFile, PortalToken
)

BASE_URL = "http://hub.test"
PORTAL_TOKEN = "portal-token-123"
STAFF_USERNAME = "office"
STAFF_PASSWORD = "office-pass"


class FakeEmailService:
    """Records outgoing mail instead of talking to SMTP"""

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    @property
    def configured(self):
        return True

    def send(self, to, subject, text):
        self.sent.append({'to': to, 'subject': subject, 'text': text})
        if self.succeed:
            return True, 'Email sent'
        return False, 'Email failed: connection refused'


class _AdapterResponse:
    """Gives a Werkzeug test response the parts of requests.Response ApiClient reads"""

    def __init__(self, response):
        self._response = response
        self.status_code = response.status_code
        self.ok = response.status_code < 400
        self.content = response.data
        self.reason = response.status

    def json(self):
        body = self._response.get_json(silent=True)
        if body is None and self.content:
            raise ValueError("Response is not JSON")
        return body


class FlaskSessionAdapter:
    """requests.Session stand-in that routes ApiClient calls to the Flask test client"""

    def __init__(self, client, base_url=BASE_URL):
        self.client = client
        self.base_url = base_url
        self.calls = []

    def request(self, method, url, json=None, params=None, timeout=None):
        path = url[len(self.base_url):] if url.startswith(self.base_url) else url
        self.calls.append((method, path, json))
        response = self.client.open(path, method=method, json=json, query_string=params)
        return _AdapterResponse(response)


@pytest.fixture
def app(tmp_path):
    """Application wired to an in-memory database and a temp upload folder."""
    app = create_app('testing', overrides={'UPLOAD_FOLDER': str(tmp_path / 'uploads')})
    app.extensions['email_service'] = FakeEmailService()

    # Requests reuse the fixture's app context (and its g), so drop Flask-Login's
    # cached user after each request to keep test clients' sessions independent.
    @app.teardown_request
    def _reset_login_cache(exc):
        g.pop('_login_user', None)

    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def email_service(app):
    return app.extensions['email_service']


@pytest.fixture
def seed(db):
    """
    One of everything the portal walks: contact -> quote -> contract -> job,
    with two files, an invoice and a live portal token.
    """
    staff = User(username=STAFF_USERNAME, email='office@example.com', role='admin',
                 first_name='Olive', last_name='Office')
    staff.set_password(STAFF_PASSWORD)

    contact = Contact(first_name='Casey', last_name='Client', email='casey@example.com',
                      phone='555-0100', type='customer')
    db.session.add_all([staff, contact])
    db.session.flush()

    quote = Quote(contact_id=contact.id, total=0, status='draft',
                  valid_until=datetime.utcnow() + timedelta(days=30))
    db.session.add(quote)
    db.session.flush()
    db.session.add(QuoteItem(quote_id=quote.id, description='Oak hardwood install',
                             unit_price=1200.0, quantity=2, material_type='hardwood',
                             service_type='installation'))

    approved_quote = Quote(contact_id=contact.id, total=3000.0, status='approved',
                           approved_at=datetime.utcnow(), signature='Casey Client')
    db.session.add(approved_quote)
    db.session.flush()

    contract = Contract(quote_id=approved_quote.id, status='active',
                        signed_url='https://files.example.com/contract.pdf')
    db.session.add(contract)
    db.session.flush()

    job = Job(contract_id=contract.id, title='Kitchen floor', site_address='1 Main St',
              stage='in_progress', start_date=datetime(2024, 5, 20), end_date=datetime(2024, 6, 15))
    db.session.add(job)
    db.session.flush()

    photo = JobFile(job_id=job.id, url='https://files.example.com/before.jpg', filename='before.jpg',
                    mimetype='image/jpeg', filesize=2048, label='Before',
                    thumbnail_url='https://files.example.com/thumb_before.jpg',
                    created_at=datetime(2024, 5, 21, 9, 0))
    document = JobFile(job_id=job.id, url='https://files.example.com/permit.pdf', filename='permit.pdf',
                       mimetype='application/pdf', filesize=4096,
                       created_at=datetime(2024, 5, 22, 9, 0))
    invoice = Invoice(contract_id=contract.id, amount_due=1500.0, status='sent',
                      due_date=datetime(2024, 6, 1))
    token = PortalToken(job_id=job.id, token=PORTAL_TOKEN,
                        expires_at=datetime.utcnow() + timedelta(days=30))
    db.session.add_all([photo, document, invoice, token])
    db.session.commit()

    return {
        'staff': staff,
        'contact': contact,
        'quote': quote,
        'approved_quote': approved_quote,
        'contract': contract,
        'job': job,
        'photo': photo,
        'document': document,
        'invoice': invoice,
        'token': token,
    }


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def staff_client(client, seed):
    """Test client with a logged-in staff session."""
    response = client.post('/api/auth/login', json={'username': STAFF_USERNAME, 'password': STAFF_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def api(staff_client):
    """ApiClient talking to the app through the staff session."""
    return ApiClient(base_url=BASE_URL, session=FlaskSessionAdapter(staff_client))


@pytest.fixture
def anonymous_api(client, seed):
    return ApiClient(base_url=BASE_URL, session=FlaskSessionAdapter(client))


@pytest.fixture
def cache(api):
    return ResponseCache(api.get)
