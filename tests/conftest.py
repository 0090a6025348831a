import pytest

import otp
from app import create_app
from config import TestConfig
from emails import email_service
from models import Brief, Client, Designer, db


@pytest.fixture
def app():
    otp.reset_state()
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(app):
    return email_service.outbox


def make_designer(**overrides):
    fields = dict(
        email='designer@example.com',
        first_name='Maya',
        last_name='Chen',
        title='Product Designer',
        city='Berlin',
        country='Germany',
        timezone='Europe/Berlin',
        years_experience=3,
        rating=4.0,
        styles=['minimal'],
        industries=['Healthcare'],
        project_types=['Web design'],
        availability='available',
        is_verified=True,
        is_approved=True,
        status='approved',
    )
    fields.update(overrides)
    designer = Designer(**fields)
    db.session.add(designer)
    db.session.commit()
    return designer


def make_client(email='client@example.com', credits=0):
    client = Client(email=email, match_credits=credits)
    db.session.add(client)
    db.session.commit()
    return client


def make_brief(client, **overrides):
    fields = dict(
        client_id=client.id,
        project_type='Web design',
        industry='SaaS',
        timeline='1 month',
        styles=['minimal'],
    )
    fields.update(overrides)
    brief = Brief(**fields)
    db.session.add(brief)
    db.session.commit()
    return brief


@pytest.fixture
def designer_factory(app):
    return make_designer


@pytest.fixture
def login(client, monkeypatch):
    """Log the test client in through the OTP endpoints"""

    codes = iter(str(100000 + i) for i in range(1000))

    def _login(email, role='client'):
        code = next(codes)
        monkeypatch.setattr(otp, 'generate_code', lambda length=6: code)
        prefix = {
            'client': '/api/auth',
            'designer': '/api/designer/auth',
            'admin': '/api/admin/auth',
        }[role]
        response = client.post(f'{prefix}/send-otp', json={'email': email})
        assert response.status_code == 200, response.get_json()

        verify = f'{prefix}/verify' if role == 'admin' else f'{prefix}/verify-otp'
        response = client.post(verify, json={'email': email, 'token': code})
        assert response.status_code == 200, response.get_json()
        return response.get_json()

    return _login
