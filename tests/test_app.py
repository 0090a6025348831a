from models import db


def test_health(client):
    data = client.get('/api/health').get_json()

    assert data == {'status': 'ok', 'ai_enabled': False}


def test_landing_page(client):
    response = client.get('/')

    assert response.status_code == 200
    assert b'OneDesigner' in response.data


def test_unknown_api_route_is_json(client):
    response = client.get('/api/nope')

    assert response.status_code == 404
    assert 'error' in response.get_json()


def test_unexpected_error_is_logged_500(app, client, caplog):
    @app.route('/api/boom')
    def boom():
        raise RuntimeError('kaboom')

    response = client.get('/api/boom')

    assert response.status_code == 500
    assert response.get_json() == {'error': 'Internal server error'}
    assert 'Unhandled error on GET /api/boom' in caplog.text
    assert db.session.is_active
