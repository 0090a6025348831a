import logging

from flask import Blueprint, abort, jsonify, request

from auth import admin_required
from emails import email_service
from models import Brief, Client, Designer, Match, Payment, ProjectRequest, db, utcnow
from validators import text_field

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')

STATUSES = ('pending', 'approved', 'rejected')


def _designer_or_404(designer_id):
    designer = db.session.get(Designer, designer_id)
    if designer is None:
        abort(404, description='Designer not found')
    return designer


@admin_bp.route('/designers', methods=['GET'])
@admin_required
def list_designers():
    status = request.args.get('status', 'pending')
    query = Designer.query
    if status in STATUSES:
        query = query.filter_by(status=status)
    elif status != 'all':
        abort(400, description='Invalid status filter')

    designers = query.order_by(Designer.created_at.desc()).all()
    return jsonify({'designers': [d.to_admin_dict() for d in designers]})


@admin_bp.route('/designers/<int:designer_id>/approve', methods=['POST'])
@admin_required
def approve_designer(designer_id):
    designer = _designer_or_404(designer_id)
    designer.is_approved = True
    designer.is_verified = True
    designer.status = 'approved'
    designer.rejection_reason = None
    designer.approved_at = utcnow()
    db.session.commit()
    logger.info('Designer %s approved', designer.id)

    email_service.send_designer_approved(designer)
    return jsonify({'success': True, 'designer': designer.to_admin_dict()})


@admin_bp.route('/designers/<int:designer_id>/reject', methods=['POST'])
@admin_required
def reject_designer(designer_id):
    data = request.get_json(silent=True) or {}
    reason = text_field(data, 'reason')
    if not reason:
        abort(400, description='Rejection reason is required')

    designer = _designer_or_404(designer_id)
    designer.is_approved = False
    designer.status = 'rejected'
    designer.rejection_reason = reason
    designer.rejection_count = (designer.rejection_count or 0) + 1
    designer.rejection_seen = False
    designer.last_rejection_at = utcnow()
    db.session.commit()
    logger.info('Designer %s rejected (%d times)', designer.id, designer.rejection_count)

    result = email_service.send_designer_rejected(designer, reason)
    if not result['success']:
        logger.warning('Rejection email to designer %s failed: %s', designer.id, result['error'])

    return jsonify({
        'success': True,
        'emailSent': result['success'],
        'designer': designer.to_admin_dict(),
    })


@admin_bp.route('/stats', methods=['GET'])
@admin_required
def stats():
    designers = {status: Designer.query.filter_by(status=status).count() for status in STATUSES}
    designers['total'] = Designer.query.count()
    return jsonify({
        'clients': Client.query.count(),
        'designers': designers,
        'briefs': Brief.query.count(),
        'matches': Match.query.count(),
        'unlockedMatches': Match.query.filter(Match.status.in_(('unlocked', 'accepted'))).count(),
        'projectRequests': ProjectRequest.query.count(),
        'payments': Payment.query.filter_by(status='completed').count(),
    })
