import pytest

from models import Designer, Match, ProjectRequest, db

from conftest import make_brief, make_client

APPLICATION = {
    'firstName': 'Maya',
    'lastName': 'Chen',
    'title': 'Product Designer',
    'yearsExperience': '6',
    'city': 'Berlin',
    'country': 'Germany',
    'timezone': 'Europe/Berlin',
    'styles': ['minimal', 'modern'],
    'projectTypes': ['Web design'],
    'industries': ['SaaS'],
    'bio': 'I design calm interfaces for B2B products.',
}


@pytest.fixture
def designer_user(client, login):
    login('maya@example.com', role='designer')
    return Designer.query.filter_by(email='maya@example.com').one()


def test_apply_sets_pending(client, designer_user):
    response = client.post('/api/designer/apply', json=APPLICATION)

    assert response.status_code == 200
    assert designer_user.status == 'pending'
    assert not designer_user.is_approved
    assert designer_user.years_experience == 6
    assert designer_user.last_initial == 'C'
    assert designer_user.styles == ['minimal', 'modern']


def test_apply_requires_fields(client, designer_user):
    response = client.post('/api/designer/apply', json={'firstName': 'Maya'})

    assert response.status_code == 400
    assert 'bio' in response.get_json()['error']


def test_approved_designer_cannot_reapply(client, designer_user):
    designer_user.is_approved = True
    designer_user.status = 'approved'
    db.session.commit()

    assert client.post('/api/designer/apply', json=APPLICATION).status_code == 400


def test_rejected_designer_can_resubmit(client, designer_user):
    designer_user.status = 'rejected'
    designer_user.rejection_reason = 'Add more work'
    db.session.commit()

    assert client.post('/api/designer/apply', json=APPLICATION).status_code == 200
    assert designer_user.status == 'pending'


def test_profile_edit_of_reviewed_field_needs_review(client, designer_user):
    client.post('/api/designer/apply', json=APPLICATION)
    designer_user.is_approved = True
    designer_user.status = 'approved'
    db.session.commit()

    response = client.put('/api/designer/profile', json={'availability': 'busy', 'phone': '+49 1'})
    assert response.status_code == 200
    assert not response.get_json()['needsReview']
    assert designer_user.is_approved

    response = client.put('/api/designer/profile', json={'bio': 'New bio'})
    assert response.get_json()['needsReview']
    assert designer_user.status == 'pending'
    assert not designer_user.is_approved


def test_profile_rejects_bad_availability(client, designer_user):
    assert client.put('/api/designer/profile', json={'availability': 'sleeping'}).status_code == 400


def _project_request(designer):
    client_row = make_client('founder@example.com')
    brief = make_brief(client_row)
    match = Match(brief_id=brief.id, designer_id=designer.id, client_id=client_row.id, score=80, status='unlocked')
    db.session.add(match)
    db.session.commit()
    row = ProjectRequest(match_id=match.id, client_id=client_row.id, designer_id=designer.id,
                         message='Can you help?', client_email=client_row.email, brief_snapshot=brief.to_dict())
    db.session.add(row)
    db.session.commit()
    return row


def test_list_and_view_project_requests(client, designer_user):
    row = _project_request(designer_user)

    requests = client.get('/api/designer/project-requests').get_json()['requests']
    assert [r['id'] for r in requests] == [row.id]
    assert requests[0]['client_email'] is None
    assert requests[0]['brief']['industry'] == 'SaaS'

    response = client.post(f'/api/designer/project-requests/{row.id}/view')
    assert response.status_code == 200
    assert row.viewed_at is not None


def test_approve_project_request(client, designer_user, outbox):
    row = _project_request(designer_user)

    response = client.post(f'/api/designer/project-requests/{row.id}/respond', json={'action': 'approve'})

    assert response.status_code == 200
    assert response.get_json()['request']['client_email'] == 'founder@example.com'
    assert row.status == 'approved'
    assert row.match.status == 'accepted'
    assert outbox[-1]['to'] == ['founder@example.com']
    assert outbox[-1]['tags']['type'] == 'project-approved'

    again = client.post(f'/api/designer/project-requests/{row.id}/respond', json={'action': 'reject'})
    assert again.status_code == 400


def test_reject_project_request(client, designer_user, outbox):
    row = _project_request(designer_user)

    response = client.post(f'/api/designer/project-requests/{row.id}/respond',
                           json={'action': 'reject', 'rejectionReason': 'Fully booked'})

    assert response.status_code == 200
    assert row.status == 'rejected'
    assert row.rejection_reason == 'Fully booked'
    assert row.match.status == 'declined'
    assert 'Fully booked' in outbox[-1]['text']


def test_respond_needs_valid_action(client, designer_user):
    row = _project_request(designer_user)

    response = client.post(f'/api/designer/project-requests/{row.id}/respond', json={'action': 'maybe'})

    assert response.status_code == 400


def test_other_designers_requests_are_hidden(client, designer_user):
    other = Designer(email='other@example.com', is_verified=True)
    db.session.add(other)
    db.session.commit()
    row = _project_request(other)

    assert client.post(f'/api/designer/project-requests/{row.id}/view').status_code == 404


def test_expired_project_request_cannot_be_answered(client, designer_user):
    row = _project_request(designer_user)
    row.status = 'expired'
    db.session.commit()

    response = client.post(f'/api/designer/project-requests/{row.id}/respond', json={'action': 'approve'})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'This request has expired'
    assert row.match.status == 'unlocked'


def test_profile_rejects_wrong_value_types(client, designer_user):
    for body in ({'styles': 5}, {'styles': ['minimal', 3]}, {'bio': 42},
                 {'yearsExperience': True}, {'yearsExperience': 'lots'}):
        assert client.put('/api/designer/profile', json=body).status_code == 400

    # Nothing was applied by the rejected updates
    assert designer_user.bio is None
    assert designer_user.styles in (None, [])
