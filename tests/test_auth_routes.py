import otp
from models import Client, Designer

from conftest import make_client


def test_send_otp_requires_valid_email(client):
    assert client.post('/api/auth/send-otp', json={}).status_code == 400

    response = client.post('/api/auth/send-otp', json={'email': 'not-an-email'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Please enter a valid email address'

    response = client.post('/api/auth/send-otp', json={'email': 12345})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'email must be text'
    assert client.post('/api/auth/verify-otp', json={'email': ['a@example.com'], 'token': '123456'}).status_code == 400


def test_login_requires_existing_client(client):
    response = client.post('/api/auth/send-otp', json={'email': 'new@example.com', 'isLogin': True})

    assert response.status_code == 400
    assert 'No account found' in response.get_json()['error']


def test_send_otp_cooldown(app, client):
    app.config['OTP_COOLDOWN_SECONDS'] = 60

    assert client.post('/api/auth/send-otp', json={'email': 'a@example.com'}).status_code == 200
    assert client.post('/api/auth/send-otp', json={'email': 'a@example.com'}).status_code == 429


def test_send_otp_fails_when_email_cannot_be_sent(client, monkeypatch):
    from emails import email_service
    monkeypatch.setattr(email_service, 'send_otp', lambda *a, **kw: {'success': False, 'message_id': None, 'error': 'x'})

    response = client.post('/api/auth/send-otp', json={'email': 'a@example.com'})

    assert response.status_code == 500


def test_failed_send_does_not_start_cooldown(app, client, monkeypatch):
    from emails import email_service
    app.config['OTP_COOLDOWN_SECONDS'] = 60
    monkeypatch.setattr(email_service, 'send_otp', lambda *a, **kw: {'success': False, 'message_id': None, 'error': 'x'})

    assert client.post('/api/auth/send-otp', json={'email': 'a@example.com'}).status_code == 500

    monkeypatch.undo()
    assert client.post('/api/auth/send-otp', json={'email': 'a@example.com'}).status_code == 200
    assert client.post('/api/auth/send-otp', json={'email': 'a@example.com'}).status_code == 429


def test_signup_creates_client_and_sends_welcome(client, login, outbox):
    data = login('New@Example.com')

    assert data['success']
    assert data['isNewUser']
    assert data['user']['email'] == 'new@example.com'
    assert data['client']['match_credits'] == 0
    assert Client.query.filter_by(email='new@example.com').count() == 1
    assert [m['tags']['type'] for m in outbox] == ['otp', 'welcome']

    assert client.get('/api/client/profile').status_code == 200


def test_existing_client_login(app, client, login):
    make_client('old@example.com', credits=4)

    data = login('old@example.com')

    assert not data['isNewUser']
    assert data['client']['match_credits'] == 4


def test_verify_rejects_bad_code(client):
    client.post('/api/auth/send-otp', json={'email': 'a@example.com'})

    assert client.post('/api/auth/verify-otp', json={'email': 'a@example.com'}).status_code == 400
    response = client.post('/api/auth/verify-otp', json={'email': 'a@example.com', 'token': 'nope'})
    assert response.status_code == 401


def test_protected_routes_need_login(client):
    assert client.get('/api/client/profile').status_code == 401
    assert client.get('/api/designer/profile').status_code == 401
    assert client.get('/api/admin/stats').status_code == 401


def test_client_cannot_use_designer_routes(client, login):
    login('client@example.com')

    assert client.get('/api/designer/profile').status_code == 401


def test_designer_signup_is_verified_draft(client, login):
    data = login('maya@example.com', role='designer')

    designer = Designer.query.filter_by(email='maya@example.com').one()
    assert data['isNewUser']
    assert designer.is_verified
    assert designer.status == 'draft'
    assert not designer.is_approved

    session = client.get('/api/designer/auth/session').get_json()
    assert session['authenticated']
    assert session['designer']['email'] == 'maya@example.com'


def test_admin_login_only_for_admin_email(client, login):
    response = client.post('/api/admin/auth/send-otp', json={'email': 'someone@example.com'})
    assert response.status_code == 403

    login('admin@example.com', role='admin')
    assert client.get('/api/admin/stats').status_code == 200


def test_admin_verify_rejects_wrong_code(client, monkeypatch):
    monkeypatch.setattr(otp, 'generate_code', lambda length=6: '424242')
    client.post('/api/admin/auth/send-otp', json={'email': 'admin@example.com'})

    response = client.post('/api/admin/auth/verify', json={'email': 'admin@example.com', 'token': '000000'})

    assert response.status_code == 401
