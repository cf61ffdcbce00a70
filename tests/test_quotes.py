from datetime import datetime, timedelta

from contractor_hub.client.quotes import QuoteActions
from contractor_hub.models import Contact, Contract, Quote


def test_create_quote_with_items_totals_lines(staff_client, seed):
    response = staff_client.post('/api/quotes', json={
        'contact_id': seed['contact'].id,
        'valid_until': '2030-01-31',
        'items': [
            {'description': 'Laminate', 'unit_price': 4.5, 'quantity': 100, 'width': 10, 'length': 10},
            {'description': 'Trim', 'unit_price': 150},
        ],
    })
    assert response.status_code == 201
    quote = response.get_json()
    assert quote['status'] == 'draft'
    assert quote['total'] == 600.0

    items = staff_client.get(f"/api/quotes/{quote['id']}/items").get_json()
    assert items[0]['sqft'] == 100.0
    assert items[1]['quantity'] == 1


def test_create_quote_rejects_bad_item(staff_client, seed):
    response = staff_client.post('/api/quotes', json={
        'contact_id': seed['contact'].id,
        'items': [{'description': 'Tile', 'unit_price': 'lots'}],
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Item numbers must be numeric'


def test_send_quote_emails_contact(api, cache, seed, email_service):
    actions = QuoteActions(api, cache)
    quote_id = seed['quote'].id
    assert cache.read(f"/api/quotes/{quote_id}")['status'] == 'draft'

    result = actions.send(quote_id)

    assert result['quote']['status'] == 'sent'
    assert result['quote']['sent_at'] is not None
    assert result['email_sent'] is True
    assert email_service.sent[0]['to'] == 'casey@example.com'
    assert 'Oak hardwood install' in email_service.sent[0]['text']
    assert actions.notices[-1].title == 'Quote sent'
    assert cache.read(f"/api/quotes/{quote_id}")['status'] == 'sent'


def test_send_approved_quote_conflicts(staff_client, seed):
    response = staff_client.post(f"/api/quotes/{seed['approved_quote'].id}/send")
    assert response.status_code == 409


def test_approve_creates_pending_contract(api, cache, seed, client):
    actions = QuoteActions(api, cache)
    quote_id = seed['quote'].id
    actions.send(quote_id)

    result = actions.approve(quote_id, 'Casey Client')

    assert result['quote']['status'] == 'approved'
    assert result['quote']['signed'] is True
    assert result['contract']['status'] == 'pending'
    assert result['contract']['quote_id'] == quote_id
    assert client.get(f"/api/quotes/{quote_id}/contract").get_json()['id'] == result['contract']['id']


def test_approve_needs_signature(api, cache, seed):
    actions = QuoteActions(api, cache)
    calls_before = len(api.session.calls)

    assert actions.approve(seed['quote'].id, '  ') is None
    assert len(api.session.calls) == calls_before

    response = api.session.client.post(f"/api/quotes/{seed['quote'].id}/approve", json={})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Signature is required'


def test_approve_draft_quote_conflicts(api, cache, seed):
    actions = QuoteActions(api, cache)
    assert actions.approve(seed['quote'].id, 'Casey Client') is None
    assert actions.notices[-1].title == 'Error approving quote'


def test_approve_after_valid_until_expires_quote(staff_client, seed, db):
    quote_id = seed['quote'].id
    staff_client.post(f"/api/quotes/{quote_id}/send")
    quote = db.session.get(Quote, quote_id)
    quote.valid_until = datetime.utcnow() - timedelta(days=1)
    db.session.commit()

    response = staff_client.post(f"/api/quotes/{quote_id}/approve", json={'signature': 'Casey Client'})

    assert response.status_code == 409
    assert response.get_json()['error'] == 'Quote has expired'
    db.session.expire_all()
    assert db.session.get(Quote, quote_id).status == 'expired'


def test_approved_quote_cannot_be_deleted_or_reopened(staff_client, seed):
    quote_id = seed['approved_quote'].id
    assert staff_client.delete(f"/api/quotes/{quote_id}").status_code == 409
    assert staff_client.put(f"/api/quotes/{quote_id}", json={'status': 'draft'}).status_code == 409


def test_quote_item_edit_recalculates_total(staff_client, seed):
    quote_id = seed['quote'].id
    item_id = staff_client.get(f"/api/quotes/{quote_id}/items").get_json()[0]['id']

    response = staff_client.put(f"/api/quote-items/{item_id}", json={'quantity': 3})
    assert response.status_code == 200
    assert staff_client.get(f"/api/quotes/{quote_id}").get_json()['total'] == 3600.0


def test_load_details(api, cache, seed):
    details = QuoteActions(api, cache).load_details(seed['quote'].id)
    assert details['quote']['id'] == seed['quote'].id
    assert [i['description'] for i in details['items']] == ['Oak hardwood install']
    assert details['contact']['email'] == 'casey@example.com'


def test_contract_requires_approved_quote(staff_client, seed):
    response = staff_client.post('/api/contracts', json={'quote_id': seed['quote'].id})
    assert response.status_code == 409


def test_quote_pdf(staff_client, seed):
    response = staff_client.get(f"/api/quotes/{seed['quote'].id}/pdf")
    assert response.status_code == 200
    assert response.headers['Content-Type'] == 'application/pdf'
    assert response.data.startswith(b'%PDF')


def _portal_client(app, staff_client, contact, password='client-pass'):
    """A fresh client logged in to the portal as the given contact"""
    staff_client.post('/api/portal/enable', json={'contact_id': contact.id, 'password': password})
    portal = app.test_client()
    response = portal.post('/api/portal/login', json={'email': contact.email, 'password': password})
    assert response.status_code == 200
    return portal


def test_anonymous_caller_cannot_approve(app, staff_client, seed, db):
    quote_id = seed['quote'].id
    staff_client.post(f"/api/quotes/{quote_id}/send")

    response = app.test_client().post(f"/api/quotes/{quote_id}/approve", json={'signature': 'Mallory'})

    assert response.status_code == 401
    db.session.expire_all()
    assert db.session.get(Quote, quote_id).status == 'sent'
    assert Contract.query.filter_by(quote_id=quote_id).count() == 0


def test_portal_contact_approves_own_quote(app, staff_client, seed):
    quote_id = seed['quote'].id
    staff_client.post(f"/api/quotes/{quote_id}/send")
    portal = _portal_client(app, staff_client, seed['contact'])

    response = portal.post(f"/api/quotes/{quote_id}/approve", json={'signature': 'Casey Client'})

    assert response.status_code == 200
    assert response.get_json()['quote']['status'] == 'approved'


def test_portal_contact_cannot_approve_someone_elses_quote(app, staff_client, seed, db):
    quote_id = seed['quote'].id
    staff_client.post(f"/api/quotes/{quote_id}/send")
    neighbour = Contact(first_name='Nico', last_name='Neighbour', email='nico@example.com', type='customer')
    db.session.add(neighbour)
    db.session.commit()
    portal = _portal_client(app, staff_client, neighbour)

    response = portal.post(f"/api/quotes/{quote_id}/approve", json={'signature': 'Nico Neighbour'})

    assert response.status_code == 403
    db.session.expire_all()
    assert db.session.get(Quote, quote_id).status == 'sent'
