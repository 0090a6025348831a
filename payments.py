# payments.py
import hashlib
import hmac
import logging

import requests
from flask import current_app

from models import Client, Match, MatchUnlock, Payment, db

logger = logging.getLogger(__name__)

LEMONSQUEEZY_API = 'https://api.lemonsqueezy.com/v1'

CREDIT_PACKAGES = {
    'STARTER_PACK': {
        'name': 'Starter Pack',
        'description': 'Perfect for trying out',
        'price': 5,
        'credits': 3,
        'features': ['3 designer matches', 'AI-powered matching', 'Direct contact info',
                     '48-hour guarantee', 'No platform fees'],
        'popular': False,
    },
    'GROWTH_PACK': {
        'name': 'Growth Pack',
        'description': 'Most founders choose this',
        'price': 15,
        'credits': 10,
        'features': ['10 designer matches', 'Everything in Starter', 'Priority matching',
                     'Bulk project briefs', 'Save 10% per match'],
        'popular': True,
    },
    'SCALE_PACK': {
        'name': 'Scale Pack',
        'description': 'Best value for agencies',
        'price': 30,
        'credits': 25,
        'features': ['25 designer matches', 'Everything in Growth', 'Dedicated support',
                     'Team access (3 seats)', 'Save 28% per match'],
        'popular': False,
    },
}

DISCOUNT_CODES = {
    'OSAMA': {
        'discount': 100,  # completely free
        'description': 'Free matches for end-to-end testing',
        'active': True,
        'is_testing_code': True,
        'applies_to': ['STARTER_PACK', 'GROWTH_PACK', 'SCALE_PACK'],
    },
}

RELEVANT_EVENTS = ('order_created', 'order_refunded')


class PaymentError(Exception):
    pass


class InsufficientCreditsError(PaymentError):
    pass


def get_package(package_id):
    if not isinstance(package_id, str):
        return None
    package = CREDIT_PACKAGES.get(package_id.strip().upper())
    if not package:
        return None
    return dict(package, id=package_id.strip().upper(), price_per_match=round(package['price'] / package['credits'], 2))


def list_packages():
    return [get_package(package_id) for package_id in CREDIT_PACKAGES]


def validate_discount(code, package_id):
    """Return the discount for a code usable on the package, else None"""

    if not isinstance(code, str) or not isinstance(package_id, str):
        return None
    discount = DISCOUNT_CODES.get(code.strip().upper())
    if not discount or not discount['active']:
        return None
    if package_id.strip().upper() not in discount['applies_to']:
        return None
    return discount


def add_credits(client, credits):
    client.match_credits = (client.match_credits or 0) + int(credits)
    return client.match_credits


def deduct_credit(client, amount=1):
    current = client.match_credits or 0
    if current < amount:
        raise InsufficientCreditsError('Insufficient credits. Please purchase more credits.')
    client.match_credits = current - amount
    return client.match_credits


def create_checkout(package_id, email, client_id, match_id=None, redirect_url=None):
    """Create a LemonSqueezy checkout and return its URL"""

    package = get_package(package_id)
    if not package:
        raise PaymentError('Invalid package selected')

    config = current_app.config
    variant_id = config['LEMONSQUEEZY_VARIANTS'].get(package['id'])
    if not variant_id or not config.get('LEMONSQUEEZY_API_KEY') or not config.get('LEMONSQUEEZY_STORE_ID'):
        raise PaymentError(f"Checkout is not configured for {package['id']}")

    app_url = config['APP_URL'].rstrip('/')
    body = {
        'data': {
            'type': 'checkouts',
            'attributes': {
                'custom_data': {
                    'client_id': str(client_id),
                    'match_id': str(match_id) if match_id else '',
                    'product_key': package['id'],
                    'credits': str(package['credits']),
                },
                'product_options': {
                    'name': package['name'],
                    'description': f"Get {package['credits']} designer matches for your projects",
                    'redirect_url': redirect_url or f'{app_url}/payment/success',
                    'receipt_button_text': 'View Your Matches',
                    'receipt_link_url': f'{app_url}/client/dashboard',
                },
                'checkout_data': {'email': email},
            },
            'relationships': {
                'store': {'data': {'type': 'stores', 'id': str(config['LEMONSQUEEZY_STORE_ID'])}},
                'variant': {'data': {'type': 'variants', 'id': str(variant_id)}},
            },
        }
    }

    try:
        response = requests.post(
            f'{LEMONSQUEEZY_API}/checkouts',
            json=body,
            headers={
                'Accept': 'application/vnd.api+json',
                'Content-Type': 'application/vnd.api+json',
                'Authorization': f"Bearer {config['LEMONSQUEEZY_API_KEY']}",
            },
            timeout=45,
        )
    except requests.RequestException as e:
        logger.error('LemonSqueezy checkout request failed: %s', e)
        raise PaymentError('Failed to create checkout session') from e

    if not response.ok:
        try:
            detail = response.json()['errors'][0]['detail']
        except (ValueError, KeyError, IndexError, TypeError):
            detail = f'HTTP {response.status_code}'
        logger.error('LemonSqueezy checkout error: %s', detail)
        raise PaymentError('Failed to create checkout session')

    return response.json()['data']['attributes']['url']


def verify_webhook_signature(payload, signature, secret):
    """HMAC-SHA256 of the raw body, hex encoded, compared in constant time"""

    if not signature or not secret:
        return False
    if isinstance(payload, str):
        payload = payload.encode()
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest, signature)


def _order_created(event):
    order = event.get('data') or {}
    attributes = order.get('attributes') or {}
    custom = (event.get('meta') or {}).get('custom_data') or {}
    order_id = str(order.get('id') or '')

    try:
        client_id = int(custom.get('client_id'))
        credits = int(custom.get('credits'))
    except (TypeError, ValueError):
        client_id = credits = 0

    # Unusable custom data is acknowledged without changes
    if client_id < 1 or credits < 1 or not order_id:
        logger.error('Missing custom data in order webhook: %s', event.get('meta'))
        return {'processed': False, 'reason': 'missing custom data'}

    if Payment.query.filter_by(order_id=order_id).first():
        logger.info('Order %s already processed', order_id)
        return {'processed': False, 'reason': 'duplicate'}

    client = db.session.get(Client, client_id)
    if not client:
        raise PaymentError(f'Client not found: {client_id}')

    add_credits(client, credits)

    db.session.add(Payment(
        client_id=client.id,
        order_id=order_id,
        amount=attributes.get('total') or 0,
        currency=attributes.get('currency'),
        status='completed',
        product_name=((attributes.get('first_order_item') or {}).get('product_name')) or 'Unknown Product',
        credits_purchased=credits,
        raw=order,
    ))

    # The purchase may have been started from a specific match
    match_id = str(custom.get('match_id') or '')
    if match_id.isdigit():
        match = Match.query.filter_by(id=int(match_id), client_id=client.id).first()
        if match and match.status == 'pending':
            deduct_credit(client)
            match.status = 'unlocked'
            db.session.add(MatchUnlock(
                match_id=match.id,
                client_id=client.id,
                payment_id=order_id,
                amount=attributes.get('total') or 0,
            ))
            logger.info('Match %s unlocked by order %s', match.id, order_id)
        elif not match:
            logger.warning('Match %s not found, credits added without unlock', match_id)

    db.session.commit()
    logger.info('Order %s processed: %d credits added to client %s (now %d)', order_id, credits, client.id, client.match_credits)
    return {'processed': True, 'credits_added': credits, 'total_credits': client.match_credits}


def _order_refunded(event):
    order_id = str((event.get('data') or {}).get('id') or '')
    payment = Payment.query.filter_by(order_id=order_id).first()
    if not payment:
        logger.warning('Refund for unknown order %s', order_id)
        return {'processed': False, 'reason': 'unknown order'}
    if payment.status == 'refunded':
        return {'processed': False, 'reason': 'duplicate'}

    client = db.session.get(Client, payment.client_id)
    if client:
        client.match_credits = max(0, (client.match_credits or 0) - (payment.credits_purchased or 0))
    payment.status = 'refunded'
    db.session.commit()

    logger.info('Order %s refunded, removed %s credits', order_id, payment.credits_purchased)
    return {'processed': True}


def process_webhook_event(event):
    event_name = (event.get('meta') or {}).get('event_name')
    if event_name not in RELEVANT_EVENTS:
        return {'processed': False, 'reason': f'ignored {event_name}'}

    if event_name == 'order_created':
        return _order_created(event)
    return _order_refunded(event)
