"""Auth, health, contacts and jobs endpoints."""

import pytest
from sqlalchemy import text

from contractor_hub.models import Message

from .conftest import STAFF_PASSWORD, STAFF_USERNAME


def test_index(client):
    data = client.get('/').get_json()
    assert data['status'] == 'running'
    assert '/api/portal' in data['endpoints']


def test_unknown_api_route_is_json_404(client):
    response = client.get('/api/nothing-here')
    assert response.status_code == 404
    assert response.get_json()['code'] == 'NOT_FOUND'


# --- Auth ---

def test_login_rejects_bad_password(client, seed):
    response = client.post('/api/auth/login', json={'username': STAFF_USERNAME, 'password': 'nope'})
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid username or password'


def test_login_requires_body(client, seed):
    assert client.post('/api/auth/login').status_code == 400


def test_staff_endpoints_require_login(client, seed):
    response = client.get('/api/jobs')
    assert response.status_code == 401
    assert response.get_json()['code'] == 'UNAUTHORIZED'


def test_me_and_logout(staff_client):
    me = staff_client.get('/api/auth/me').get_json()
    assert me['username'] == STAFF_USERNAME
    assert me['display_name'] == 'Olive Office'
    assert me['is_admin'] is True
    assert me['last_login'] is not None
    assert staff_client.post('/api/auth/logout').status_code == 200
    assert staff_client.get('/api/auth/me').status_code == 401


def test_change_password(staff_client, client):
    response = staff_client.post('/api/auth/change-password', json={
        'current_password': STAFF_PASSWORD, 'new_password': 'fresh-pass',
    })
    assert response.status_code == 200

    staff_client.post('/api/auth/logout')
    response = client.post('/api/auth/login', json={'username': STAFF_USERNAME, 'password': 'fresh-pass'})
    assert response.status_code == 200


def test_admin_creates_users(staff_client):
    response = staff_client.post('/api/auth/users', json={'username': 'crew1', 'password': 'crew-pass', 'role': 'field'})
    assert response.status_code == 201
    assert staff_client.post('/api/auth/users', json={'username': 'crew1', 'password': 'crew-pass'}).status_code == 409
    assert 'crew1' in [u['username'] for u in staff_client.get('/api/auth/users').get_json()]


def test_non_admin_cannot_manage_users(app, staff_client):
    staff_client.post('/api/auth/users', json={'username': 'crew2', 'password': 'crew-pass', 'role': 'field'})
    crew = app.test_client()
    crew.post('/api/auth/login', json={'username': 'crew2', 'password': 'crew-pass'})
    assert crew.get('/api/auth/users').status_code == 403


# --- Health ---

def test_health(client):
    response = client.get('/api/health')
    data = response.get_json()
    assert response.status_code == 200
    assert data['checks']['database']['status'] == 'healthy'
    assert data['checks']['storage']['backend'] == 'local'
    assert data['checks']['application']['blueprints']['missing_critical'] == []


def test_simple_health(client):
    assert client.get('/api/health/simple').status_code == 200


# --- Contacts ---

def test_contact_validation(staff_client, seed):
    assert staff_client.post('/api/contacts', json={'email': 'bad-address', 'first_name': 'X'}).status_code == 400
    assert staff_client.post('/api/contacts', json={'email': 'x@example.com'}).status_code == 400
    assert staff_client.post('/api/contacts', json={'first_name': 'X', 'type': 'friend'}).status_code == 400


def test_duplicate_contact_email(staff_client, seed):
    response = staff_client.post('/api/contacts', json={'first_name': 'Casey', 'email': 'casey@example.com'})
    assert response.status_code == 409


def test_contact_crud(staff_client, seed):
    created = staff_client.post('/api/contacts', json={'company_name': 'Tile Supply Co', 'type': 'supplier'})
    assert created.status_code == 201
    contact_id = created.get_json()['id']

    updated = staff_client.put(f'/api/contacts/{contact_id}', json={'phone': '555-0199'}).get_json()
    assert updated['phone'] == '555-0199'

    assert staff_client.delete(f'/api/contacts/{contact_id}').status_code == 200
    assert staff_client.get(f'/api/contacts/{contact_id}').status_code == 404


def test_contact_quotes(staff_client, seed):
    quotes = staff_client.get(f"/api/contacts/{seed['contact'].id}/quotes").get_json()
    assert len(quotes) == 2


# --- Jobs ---

def test_job_stage_update_allows_moving_back(staff_client, seed):
    job_id = seed['job'].id
    response = staff_client.put(f'/api/jobs/{job_id}/stage', json={'stage': 'planning'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['stage'] == 'planning'
    assert data['progress'] == 10
    assert data['stage_label'] == 'Planning'


def test_job_stage_must_be_known(staff_client, seed):
    response = staff_client.put(f"/api/jobs/{seed['job'].id}/stage", json={'stage': 'archived'})
    assert response.status_code == 400


def test_job_timeline_endpoint(staff_client, seed):
    events = staff_client.get(f"/api/jobs/{seed['job'].id}/timeline").get_json()
    assert events[3]['id'] == 'work_in_progress'
    assert events[3]['status'] == 'in-progress'
    assert events[3]['date'] == '2024-05-20T00:00:00'


def test_job_files_newest_first(staff_client, seed):
    files = staff_client.get(f"/api/jobs/{seed['job'].id}/files").get_json()
    assert [f['filename'] for f in files] == ['permit.pdf', 'before.jpg']


def test_job_notes(staff_client, seed):
    job_id = seed['job'].id
    assert staff_client.post(f'/api/jobs/{job_id}/notes', json={'content': ''}).status_code == 400
    note = staff_client.post(f'/api/jobs/{job_id}/notes', json={'content': 'Subfloor is level'}).get_json()
    assert note['created_by'] == STAFF_USERNAME
    assert [n['content'] for n in staff_client.get(f'/api/jobs/{job_id}/notes').get_json()] == ['Subfloor is level']


def test_create_job_requires_title(staff_client, seed):
    assert staff_client.post('/api/jobs', json={'stage': 'planning'}).status_code == 400


@pytest.fixture
def enforce_foreign_keys(db):
    """SQLite ignores foreign keys unless asked; production databases do not"""
    db.session.commit()
    db.session.execute(text('PRAGMA foreign_keys=ON'))
    assert db.session.execute(text('PRAGMA foreign_keys')).scalar() == 1
    yield
    db.session.rollback()
    db.session.execute(text('PRAGMA foreign_keys=OFF'))
    db.session.commit()


def test_delete_job_keeps_its_messages(staff_client, seed, db, enforce_foreign_keys):
    job_id = seed['job'].id
    message = Message(contact_id=seed['contact'].id, job_id=job_id, body='Crew arrives at 8',
                      type='message', direction='outbound')
    db.session.add(message)
    db.session.commit()
    message_id = message.id

    response = staff_client.delete(f'/api/jobs/{job_id}')

    assert response.status_code == 200
    db.session.expire_all()
    kept = db.session.get(Message, message_id)
    assert kept is not None
    assert kept.job_id is None
