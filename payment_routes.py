import logging

from flask import Blueprint, abort, current_app, jsonify, request
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from auth import client_required
from models import Match, db
from payments import PaymentError, create_checkout, get_package, process_webhook_event, verify_webhook_signature
from validators import id_field, text_field

logger = logging.getLogger(__name__)

payment_bp = Blueprint('payments', __name__)


@payment_bp.route('/api/checkout/create', methods=['POST'])
@client_required
def checkout():
    data = request.get_json(silent=True) or {}
    package = get_package(data.get('packageId'))
    if package is None:
        abort(400, description='Invalid package selected')

    match_id = id_field(data, 'matchId')
    if match_id and not Match.query.filter_by(id=match_id, client_id=current_user.id).first():
        abort(404, description='Match not found')

    try:
        url = create_checkout(package['id'], current_user.email, current_user.id, match_id=match_id,
                              redirect_url=text_field(data, 'redirectUrl') or None)
    except PaymentError as e:
        abort(500, description=str(e))

    logger.info('Checkout created for client %s (%s)', current_user.id, package['id'])
    return jsonify({'checkoutUrl': url})


@payment_bp.route('/api/webhooks/lemonsqueezy', methods=['POST'])
def lemonsqueezy_webhook():
    payload = request.get_data()
    secret = current_app.config.get('LEMONSQUEEZY_WEBHOOK_SECRET')

    if secret:
        if not verify_webhook_signature(payload, request.headers.get('X-Signature'), secret):
            logger.warning('Rejected LemonSqueezy webhook with a bad signature')
            abort(401, description='Invalid signature')
    else:
        logger.warning('LEMONSQUEEZY_WEBHOOK_SECRET not set, skipping signature verification')

    event = request.get_json(force=True, silent=True)
    if not isinstance(event, dict):
        abort(400, description='Invalid payload')

    try:
        result = process_webhook_event(event)
    except (PaymentError, SQLAlchemyError, ValueError, TypeError) as e:
        db.session.rollback()
        logger.error('Webhook processing failed: %s', e)
        abort(500, description='Webhook processing failed')

    logger.info('LemonSqueezy %s: %s', (event.get('meta') or {}).get('event_name'), result)
    return jsonify({'received': True})
