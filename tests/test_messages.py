from unittest.mock import MagicMock

import pytest

from contractor_hub.services.email_service import EmailService

from .conftest import FakeEmailService


def test_message_body_is_required(staff_client, seed):
    response = staff_client.post('/api/messages', json={'contact_id': seed['contact'].id, 'body': ' '})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Message body is required'


def test_email_needs_subject(staff_client, seed, email_service):
    response = staff_client.post('/api/messages', json={
        'contact_id': seed['contact'].id, 'body': 'Hi', 'type': 'email',
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Email subject is required'
    assert email_service.sent == []


def test_outbound_email_needs_contact_address(staff_client, db, seed):
    seed['contact'].email = None
    db.session.commit()

    response = staff_client.post('/api/messages', json={
        'contact_id': seed['contact'].id, 'body': 'Hi', 'subject': 'Hello', 'type': 'email',
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Contact has no email address'


def test_undelivered_email_is_still_stored(app, staff_client, seed):
    app.extensions['email_service'] = FakeEmailService(succeed=False)

    response = staff_client.post('/api/messages', json={
        'contact_id': seed['contact'].id, 'body': 'Hi', 'subject': 'Hello', 'type': 'email',
    })
    assert response.status_code == 201
    assert response.get_json()['delivered'] is False


def test_inbound_messages_start_unread_and_can_be_marked_read(staff_client, seed):
    created = staff_client.post('/api/messages', json={
        'contact_id': seed['contact'].id, 'body': 'When do you start?', 'direction': 'inbound',
    }).get_json()
    assert created['read_status'] is False

    unread = staff_client.get('/api/messages?unread=1').get_json()
    assert [m['id'] for m in unread] == [created['id']]

    marked = staff_client.put(f"/api/messages/{created['id']}/read", json={}).get_json()
    assert marked['read_status'] is True
    assert staff_client.get('/api/messages?unread=1').get_json() == []


def test_message_for_unknown_job(staff_client, seed):
    response = staff_client.post('/api/messages', json={'body': 'Hi', 'job_id': 424242})
    assert response.status_code == 404


def test_job_messages(staff_client, seed):
    job_id = seed['job'].id
    staff_client.post('/api/messages', json={'contact_id': seed['contact'].id, 'job_id': job_id, 'body': 'Tile arrived'})
    messages = staff_client.get(f'/api/jobs/{job_id}/messages').get_json()
    assert [m['body'] for m in messages] == ['Tile arrived']


def test_test_email_endpoint(staff_client, seed, email_service):
    response = staff_client.post('/api/test-email', json={'to': 'ops@example.com'})
    assert response.status_code == 200
    assert response.get_json()['sent_to'] == 'ops@example.com'
    assert email_service.sent[-1]['to'] == 'ops@example.com'


def test_test_email_endpoint_reports_failure(app, staff_client, seed):
    app.extensions['email_service'] = FakeEmailService(succeed=False)
    response = staff_client.post('/api/test-email', json={})
    assert response.status_code == 502
    assert response.get_json()['success'] is False


# --- EmailService ---

def test_unconfigured_service_does_not_send():
    service = EmailService(host=None)
    assert service.send('casey@example.com', 'Hi', 'Body') == (False, 'Email service not configured')
    assert service.send('', 'Hi', 'Body') == (False, 'No recipient address')


@pytest.fixture
def smtp(monkeypatch):
    server = MagicMock()
    factory = MagicMock()
    factory.return_value.__enter__.return_value = server
    monkeypatch.setattr('contractor_hub.services.email_service.smtplib.SMTP', factory)
    return factory, server


def test_configured_service_uses_starttls_and_login(smtp):
    factory, server = smtp
    service = EmailService(host='smtp.example.com', port=2525, user='office', password='secret',
                           sender='office@example.com')

    assert service.send('casey@example.com', 'Quote', 'Body') == (True, 'Email sent')
    factory.assert_called_once_with('smtp.example.com', 2525, timeout=30)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with('office', 'secret')
    sent = server.send_message.call_args[0][0]
    assert sent['To'] == 'casey@example.com'
    assert sent['From'] == 'office@example.com'


def test_smtp_failure_is_reported(smtp):
    import smtplib

    _, server = smtp
    server.send_message.side_effect = smtplib.SMTPException('mailbox full')
    service = EmailService(host='smtp.example.com')

    success, detail = service.send('casey@example.com', 'Quote', 'Body')
    assert success is False
    assert 'mailbox full' in detail
