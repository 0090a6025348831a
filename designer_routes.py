import logging

from flask import Blueprint, abort, jsonify, request
from flask_login import current_user

from auth import designer_required
from emails import email_service
from models import ProjectRequest, db, utcnow
from validators import list_field, text_field

logger = logging.getLogger(__name__)

designer_bp = Blueprint('designer', __name__)

APPLY_REQUIRED = ('firstName', 'lastName', 'title', 'yearsExperience', 'city',
                  'country', 'timezone', 'styles', 'projectTypes', 'bio')

# request key -> (column, is list)
PROFILE_FIELDS = {
    'firstName': ('first_name', False),
    'lastName': ('last_name', False),
    'title': ('title', False),
    'bio': ('bio', False),
    'city': ('city', False),
    'country': ('country', False),
    'timezone': ('timezone', False),
    'yearsExperience': ('years_experience', False),
    'styles': ('styles', True),
    'industries': ('industries', True),
    'projectTypes': ('project_types', True),
    'tools': ('tools', True),
    'portfolioImages': ('portfolio_images', True),
    'avatarUrl': ('avatar_url', False),
    'phone': ('phone', False),
    'website': ('website', False),
    'portfolioUrl': ('portfolio_url', False),
    'availability': ('availability', False),
}

# Changing any of these on an approved profile needs a new review
REVIEWED_FIELDS = {'firstName', 'lastName', 'title', 'bio', 'city', 'country',
                   'yearsExperience', 'styles', 'industries', 'projectTypes', 'portfolioImages'}

AVAILABILITY = ('available', 'busy', 'unavailable')


def _clean(data, key, is_list):
    if is_list:
        return list_field(data, key)
    if key == 'yearsExperience':
        value = data[key]
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            abort(400, description='yearsExperience must be a number')
        try:
            return max(0, int(value))
        except ValueError:
            abort(400, description='yearsExperience must be a number')
    value = text_field(data, key)
    if key == 'availability' and value not in AVAILABILITY:
        abort(400, description='Invalid availability')
    return value


def apply_fields(designer, data):
    """Copy known profile keys onto the designer, returning the changed keys"""

    # Validate everything before touching the row
    cleaned = {key: _clean(data, key, is_list)
               for key, (_, is_list) in PROFILE_FIELDS.items() if key in data}

    changed = set()
    for key, value in cleaned.items():
        column = PROFILE_FIELDS[key][0]
        if getattr(designer, column) != value:
            setattr(designer, column, value)
            changed.add(key)

    if designer.last_name:
        designer.last_initial = designer.last_name[:1].upper()
    return changed


@designer_bp.route('/api/designer/apply', methods=['POST'])
@designer_required
def apply():
    designer = current_user
    if designer.is_approved:
        abort(400, description='Your profile is already approved')

    data = request.get_json(silent=True) or {}
    missing = [key for key in APPLY_REQUIRED if data.get(key) in (None, '', [])]
    if missing:
        abort(400, description=f"Missing required fields: {', '.join(missing)}")

    apply_fields(designer, data)
    designer.status = 'pending'
    designer.is_approved = False
    designer.rejection_seen = True
    db.session.commit()
    logger.info('Designer %s submitted application', designer.id)

    return jsonify({'success': True, 'designer': designer.to_admin_dict()})


@designer_bp.route('/api/designer/profile', methods=['GET'])
@designer_required
def get_profile():
    return jsonify({'designer': current_user.to_admin_dict()})


@designer_bp.route('/api/designer/profile', methods=['PUT'])
@designer_required
def update_profile():
    designer = current_user
    data = request.get_json(silent=True) or {}

    changed = apply_fields(designer, data)
    needs_review = designer.is_approved and bool(changed & REVIEWED_FIELDS)
    if needs_review:
        designer.is_approved = False
        designer.status = 'pending'
        logger.info('Designer %s edited reviewed fields, back to pending', designer.id)
    db.session.commit()

    return jsonify({
        'success': True,
        'needsReview': needs_review,
        'designer': designer.to_admin_dict(),
    })


@designer_bp.route('/api/designer/project-requests', methods=['GET'])
@designer_required
def list_project_requests():
    rows = (ProjectRequest.query
            .filter_by(designer_id=current_user.id)
            .order_by(ProjectRequest.created_at.desc())
            .all())
    return jsonify({'requests': [r.to_dict() for r in rows]})


def _own_request(request_id):
    row = ProjectRequest.query.filter_by(id=request_id, designer_id=current_user.id).first()
    if row is None:
        abort(404, description='Project request not found')
    return row


@designer_bp.route('/api/designer/project-requests/<int:request_id>/view', methods=['POST'])
@designer_required
def view_project_request(request_id):
    row = _own_request(request_id)
    if row.viewed_at is None:
        row.viewed_at = utcnow()
        db.session.commit()
    return jsonify({'success': True, 'request': row.to_dict()})


@designer_bp.route('/api/designer/project-requests/<int:request_id>/respond', methods=['POST'])
@designer_required
def respond_project_request(request_id):
    data = request.get_json(silent=True) or {}
    action = data.get('action')
    if action not in ('approve', 'reject'):
        abort(400, description="Action must be 'approve' or 'reject'")
    reason = text_field(data, 'rejectionReason') or None

    row = _own_request(request_id)
    if row.status == 'expired':
        abort(400, description='This request has expired')
    if row.status != 'pending':
        abort(400, description='This request has already been responded to')

    designer = current_user
    row.responded_at = utcnow()
    if action == 'approve':
        row.status = 'approved'
        row.match.status = 'accepted'
    else:
        row.status = 'rejected'
        row.rejection_reason = reason
        row.match.status = 'declined'
    db.session.commit()
    logger.info('Designer %s %s project request %s', designer.id, row.status, row.id)

    if action == 'approve':
        email_service.send_project_approved(row.client_email, designer)
    else:
        email_service.send_project_rejected(row.client_email, designer, row.rejection_reason)

    return jsonify({'success': True, 'request': row.to_dict()})
