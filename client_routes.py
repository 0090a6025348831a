import logging

from flask import Blueprint, abort, current_app, jsonify, request
from flask_login import current_user

from auth import client_required
from emails import email_service
from match_narrator import match_narrator
from matching import SimpleMatcher
from models import Brief, Match, MatchUnlock, ProjectRequest, db
from payments import (InsufficientCreditsError, add_credits, deduct_credit, get_package,
                      list_packages, validate_discount)
from validators import id_field, list_field, text_field

logger = logging.getLogger(__name__)

client_bp = Blueprint('client', __name__)

BRIEF_REQUIRED = ('projectType', 'industry', 'timeline')


def _ranked_to_dict(result):
    return {
        'designer': result['designer'].to_dict(),
        'score': result['score'],
        'reasons': result['reasons'],
        'ai_summary': result.get('ai_summary'),
        'personalized_reasons': result.get('personalized_reasons', []),
    }


def _persist_best(brief, best):
    """Store the top result as a pending match, reusing an existing pair"""

    match = Match.query.filter_by(brief_id=brief.id, designer_id=best['designer'].id).first()
    if match is None:
        match = Match(
            brief_id=brief.id,
            designer_id=best['designer'].id,
            client_id=brief.client_id,
            status='pending',
        )
        match.set_expiry(current_app.config['MATCH_EXPIRY_DAYS'])
        db.session.add(match)

    match.score = best['score']
    match.reasons = best['reasons']
    match.ai_summary = best.get('ai_summary')
    db.session.commit()
    return match


def run_matching(brief):
    ranked = SimpleMatcher().find_matches(brief)
    if not ranked:
        return None, []

    match_narrator.enrich(ranked, brief)
    match = _persist_best(brief, ranked[0])
    logger.info('Brief %s matched with designer %s (score %s)', brief.id, match.designer_id, match.score)
    return match, [_ranked_to_dict(r) for r in ranked]


def _own_match(match_id):
    match = Match.query.filter_by(id=match_id, client_id=current_user.id).first()
    if match is None:
        abort(404, description='Match not found')
    return match


@client_bp.route('/api/client/profile', methods=['GET'])
@client_required
def profile():
    return jsonify({
        'client': current_user.to_dict(),
        'briefs': Brief.query.filter_by(client_id=current_user.id).count(),
        'matches': Match.query.filter_by(client_id=current_user.id).count(),
    })


@client_bp.route('/api/briefs/create', methods=['POST'])
@client_required
def create_brief():
    data = request.get_json(silent=True) or {}

    values = {field: text_field(data, field) for field in BRIEF_REQUIRED}
    missing = [field for field, value in values.items() if not value]
    if missing:
        abort(400, description=f"Missing required fields: {', '.join(missing)}")

    brief = Brief(
        client_id=current_user.id,
        project_type=values['projectType'],
        industry=values['industry'],
        timeline=values['timeline'],
        budget=text_field(data, 'budget') or None,
        styles=list_field(data, 'styles'),
        inspiration=text_field(data, 'inspiration') or None,
        requirements=text_field(data, 'requirements') or None,
        timezone=text_field(data, 'timezone') or None,
        communication=list_field(data, 'communication') or ['email'],
    )
    db.session.add(brief)
    db.session.commit()
    logger.info('Client %s created brief %s', current_user.id, brief.id)

    match, matches = run_matching(brief)
    return jsonify({
        'success': True,
        'brief': brief.to_dict(),
        'match': match.to_dict() if match else None,
        'matches': matches,
    })


@client_bp.route('/api/briefs', methods=['GET'])
@client_required
def list_briefs():
    briefs = Brief.query.filter_by(client_id=current_user.id).order_by(Brief.created_at.desc()).all()
    return jsonify({'briefs': [b.to_dict() for b in briefs]})


@client_bp.route('/api/match/find', methods=['POST'])
@client_required
def find_match():
    data = request.get_json(silent=True) or {}
    brief_id = id_field(data, 'briefId')
    if not brief_id:
        abort(400, description='Brief ID is required')

    brief = Brief.query.filter_by(id=brief_id, client_id=current_user.id).first()
    if brief is None:
        abort(404, description='Brief not found')

    match, matches = run_matching(brief)
    if match is None:
        abort(404, description='No available designers found')

    return jsonify({'match': match.to_dict(), 'matches': matches})


@client_bp.route('/api/client/matches', methods=['GET'])
@client_required
def list_matches():
    matches = Match.query.filter_by(client_id=current_user.id).order_by(Match.created_at.desc()).all()
    return jsonify({'matches': [m.to_dict() for m in matches]})


@client_bp.route('/api/client/matches/<int:match_id>', methods=['GET'])
@client_required
def get_match(match_id):
    match = _own_match(match_id)
    data = match.to_dict()
    data['brief'] = match.brief.to_dict()
    request_row = ProjectRequest.query.filter_by(match_id=match.id).first()
    data['project_request'] = request_row.to_dict() if request_row else None
    return jsonify({'match': data})


@client_bp.route('/api/client/matches/<int:match_id>/unlock', methods=['POST'])
@client_required
def unlock_match(match_id):
    match = _own_match(match_id)
    client = current_user

    if match.is_unlocked:
        return jsonify({
            'success': True,
            'alreadyUnlocked': True,
            'remainingCredits': client.match_credits,
        })
    if match.status != 'pending':
        abort(400, description='Match unavailable')

    try:
        remaining = deduct_credit(client)
    except InsufficientCreditsError as e:
        abort(400, description=str(e))

    match.status = 'unlocked'
    db.session.add(MatchUnlock(match_id=match.id, client_id=client.id, amount=0))
    db.session.commit()
    logger.info('Client %s unlocked match %s, %d credits left', client.id, match.id, remaining)

    email_service.send_match_unlocked(match.designer, match.brief)

    return jsonify({'success': True, 'remainingCredits': remaining})


@client_bp.route('/api/client/matches/<int:match_id>/contact', methods=['POST'])
@client_required
def contact_designer(match_id):
    match = _own_match(match_id)
    if not match.is_unlocked:
        abort(400, description='Unlock this match before contacting the designer')

    if ProjectRequest.query.filter_by(match_id=match.id).first():
        abort(400, description='You have already contacted this designer')

    data = request.get_json(silent=True) or {}
    message = text_field(data, 'message')
    snapshot = match.brief.to_dict()

    project_request = ProjectRequest(
        match_id=match.id,
        client_id=current_user.id,
        designer_id=match.designer_id,
        message=message,
        client_email=current_user.email,
        brief_snapshot=snapshot,
    )
    db.session.add(project_request)
    db.session.commit()
    logger.info('Client %s sent project request %s', current_user.id, project_request.id)

    email_service.send_project_request(match.designer, snapshot, message)

    return jsonify({'success': True, 'projectRequest': project_request.to_dict()})


@client_bp.route('/api/credits/add-free', methods=['POST'])
@client_required
def add_free_credits():
    data = request.get_json(silent=True) or {}
    package_id = text_field(data, 'packageId')
    code = text_field(data, 'discountCode')
    if not package_id or not code:
        abort(400, description='Package and discount code are required')

    package = get_package(package_id)
    if package is None:
        abort(400, description='Invalid package selected')

    discount = validate_discount(code, package['id'])
    if discount is None:
        abort(400, description='Invalid discount code')
    if discount['discount'] < 100:
        abort(400, description='This discount code requires checkout')

    total = add_credits(current_user, package['credits'])
    db.session.commit()
    logger.info('Client %s redeemed %s for %s (%d credits)', current_user.id, code.upper(), package['id'], package['credits'])

    return jsonify({
        'success': True,
        'creditsAdded': package['credits'],
        'totalCredits': total,
    })


@client_bp.route('/api/pricing', methods=['GET'])
def pricing():
    return jsonify({'packages': list_packages()})
