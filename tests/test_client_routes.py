import pytest

from models import Client, Match, MatchUnlock, ProjectRequest, db

from conftest import make_designer

BRIEF = {
    'projectType': 'Web design',
    'industry': 'SaaS',
    'timeline': '1 month',
    'budget': '$5k',
    'styles': ['minimal'],
    'requirements': 'Marketing site and dashboard',
}


@pytest.fixture
def client_user(client, login):
    login('client@example.com')
    return Client.query.filter_by(email='client@example.com').one()


def _create_brief(client, **overrides):
    response = client.post('/api/briefs/create', json=dict(BRIEF, **overrides))
    assert response.status_code == 200, response.get_json()
    return response.get_json()


def test_create_brief_returns_brief_and_matches(client, client_user):
    make_designer(email='saas@example.com', industries=['SaaS'])

    data = _create_brief(client)

    assert data['success']
    assert data['brief']['id']
    assert data['brief']['industry'] == 'SaaS'
    assert data['matches'][0]['score'] == 85
    assert data['matches'][0]['designer']['firstName'] == 'Maya'
    assert 'email' not in data['matches'][0]['designer']
    assert data['match']['status'] == 'pending'


def test_create_brief_requires_fields(client, client_user):
    response = client.post('/api/briefs/create', json={'projectType': 'Branding'})

    assert response.status_code == 400
    assert 'industry' in response.get_json()['error']


def test_create_brief_rejects_non_text_values(client, client_user):
    response = client.post('/api/briefs/create',
                           json={'projectType': 5, 'industry': 'SaaS', 'timeline': '1 month'})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'projectType must be text'
    assert client.post('/api/briefs/create', json=dict(BRIEF, styles=7)).status_code == 400
    assert client.get('/api/briefs').get_json()['briefs'] == []


def test_create_brief_without_designers(client, client_user):
    data = _create_brief(client)

    assert data['matches'] == []
    assert data['match'] is None


def test_find_match_persists_best_match(client, client_user):
    brief_id = _create_brief(client)['brief']['id']
    designer = make_designer(email='late@example.com', industries=['SaaS'])

    response = client.post('/api/match/find', json={'briefId': brief_id})

    assert response.status_code == 200
    data = response.get_json()
    assert data['match']['designer']['id'] == designer.id
    match = Match.query.filter_by(brief_id=brief_id).one()
    assert match.status == 'pending'
    assert match.expires_at is not None


def test_find_match_errors(client, client_user):
    assert client.post('/api/match/find', json={}).status_code == 400
    assert client.post('/api/match/find', json={'briefId': 999}).status_code == 404

    brief_id = _create_brief(client)['brief']['id']
    response = client.post('/api/match/find', json={'briefId': brief_id})
    assert response.status_code == 404
    assert response.get_json()['error'] == 'No available designers found'


def _pending_match(client):
    make_designer(email='maya@example.com', industries=['SaaS'], phone='+49 123')
    data = _create_brief(client)
    return db.session.get(Match, data['match']['id'])


def test_unlock_needs_credit(client, client_user):
    match = _pending_match(client)

    response = client.post(f'/api/client/matches/{match.id}/unlock')

    assert response.status_code == 400
    assert 'Insufficient credits' in response.get_json()['error']
    assert match.status == 'pending'


def test_unlock_deducts_credit_and_reveals_contact(client, client_user, outbox):
    match = _pending_match(client)
    client_user.match_credits = 2
    db.session.commit()

    response = client.post(f'/api/client/matches/{match.id}/unlock')

    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'remainingCredits': 1}
    assert match.status == 'unlocked'
    assert MatchUnlock.query.filter_by(match_id=match.id).count() == 1
    assert outbox[-1]['tags']['type'] == 'unlock'

    detail = client.get(f'/api/client/matches/{match.id}').get_json()['match']
    assert detail['designer']['email'] == 'maya@example.com'
    assert detail['designer']['phone'] == '+49 123'

    again = client.post(f'/api/client/matches/{match.id}/unlock').get_json()
    assert again['alreadyUnlocked']
    assert client_user.match_credits == 1


def test_unlock_unavailable_match(client, client_user):
    match = _pending_match(client)
    match.status = 'expired'
    client_user.match_credits = 1
    db.session.commit()

    response = client.post(f'/api/client/matches/{match.id}/unlock')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Match unavailable'
    assert client_user.match_credits == 1


def test_unlock_unknown_match(client, client_user):
    assert client.post('/api/client/matches/404/unlock').status_code == 404


def test_contact_designer(client, client_user, outbox):
    match = _pending_match(client)

    assert client.post(f'/api/client/matches/{match.id}/contact', json={'message': 'Hi'}).status_code == 400

    match.status = 'unlocked'
    db.session.commit()
    response = client.post(f'/api/client/matches/{match.id}/contact', json={'message': 'Hi Maya'})

    assert response.status_code == 200
    request_row = ProjectRequest.query.filter_by(match_id=match.id).one()
    assert request_row.brief_snapshot['industry'] == 'SaaS'
    assert request_row.client_email == 'client@example.com'
    assert outbox[-1]['to'] == ['maya@example.com']
    assert 'Hi Maya' in outbox[-1]['text']

    second = client.post(f'/api/client/matches/{match.id}/contact', json={'message': 'Again'})
    assert second.status_code == 400


def test_list_matches_hides_contact_until_unlocked(client, client_user):
    _pending_match(client)

    matches = client.get('/api/client/matches').get_json()['matches']

    assert len(matches) == 1
    assert 'email' not in matches[0]['designer']


def test_free_credits_with_testing_code(client, client_user):
    response = client.post('/api/credits/add-free', json={'packageId': 'GROWTH_PACK', 'discountCode': 'osama'})

    assert response.status_code == 200
    assert response.get_json()['totalCredits'] == 10
    assert client_user.match_credits == 10


def test_invalid_discount_code(client, client_user):
    response = client.post('/api/credits/add-free', json={'packageId': 'STARTER_PACK', 'discountCode': 'FREESTUFF'})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid discount code'

    assert client.post('/api/credits/add-free', json={'packageId': 'STARTER_PACK'}).status_code == 400
    response = client.post('/api/credits/add-free', json={'packageId': 'MEGA_PACK', 'discountCode': 'OSAMA'})
    assert response.status_code == 400


def test_free_credits_reject_non_text_values(client, client_user):
    response = client.post('/api/credits/add-free', json={'packageId': 1, 'discountCode': 'OSAMA'})
    assert response.status_code == 400

    response = client.post('/api/credits/add-free', json={'packageId': 'STARTER_PACK', 'discountCode': 100})
    assert response.status_code == 400
    assert client_user.match_credits == 0


def test_pricing_is_public(client):
    packages = client.get('/api/pricing').get_json()['packages']

    assert [p['id'] for p in packages] == ['STARTER_PACK', 'GROWTH_PACK', 'SCALE_PACK']
    assert packages[1]['popular']
    assert packages[0]['price_per_match'] == 1.67
