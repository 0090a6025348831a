"""Passwordless (OTP) login for clients, designers and the admin."""
import logging
import re

from flask import Blueprint, abort, current_app, jsonify, request
from flask_login import current_user, login_user, logout_user

from auth import AdminUser, designer_required
from emails import email_service
from models import Client, Designer, db
from otp import check_cooldown, clear_cooldown, create_otp, verify_otp
from validators import text_field

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def read_email(data):
    email = text_field(data, 'email').lower()
    if not email:
        abort(400, description='Email is required')
    if not EMAIL_RE.match(email):
        abort(400, description='Please enter a valid email address')
    return email


def send_code(email, user_type, purpose):
    wait = check_cooldown(email, user_type)
    if wait:
        abort(429, description=f'Please wait {wait} seconds before requesting another code')

    code = create_otp(email, user_type)
    result = email_service.send_otp(email, code, user_type, purpose)
    if not result['success']:
        # An undelivered code does not start the cooldown
        clear_cooldown(email, user_type)
        if current_app.debug:
            logger.warning('OTP email failed for %s, continuing in debug mode', email)
            return
        abort(500, description='Failed to send verification email. Please try again.')


def read_code(data):
    email = text_field(data, 'email').lower()
    key = 'token' if data.get('token') not in (None, '') else 'code'
    token = data.get(key)
    # Codes are digits, so a JSON number is accepted too
    if isinstance(token, int) and not isinstance(token, bool):
        token = str(token)
    else:
        token = text_field(data, key)
    if not email or not token:
        abort(400, description='Email and token are required')
    return email, token


# Clients

@auth_bp.route('/api/auth/send-otp', methods=['POST'])
def client_send_otp():
    data = request.get_json(silent=True) or {}
    email = read_email(data)
    is_login = bool(data.get('isLogin'))

    if is_login and not Client.query.filter_by(email=email).first():
        abort(400, description='No account found with this email. Please sign up first.')

    send_code(email, 'client', 'login' if is_login else 'signup')
    return jsonify({'success': True})


@auth_bp.route('/api/auth/verify-otp', methods=['POST'])
def client_verify_otp():
    email, token = read_code(request.get_json(silent=True) or {})

    if not verify_otp(email, token, 'client'):
        abort(401, description='Invalid or expired code')

    client = Client.query.filter_by(email=email).first()
    is_new = client is None
    if is_new:
        client = Client(email=email, match_credits=0)
        db.session.add(client)
        db.session.commit()
        logger.info('New client %s signed up', client.id)
        email_service.send_welcome_client(client)

    login_user(client, remember=True)
    return jsonify({
        'success': True,
        'isNewUser': is_new,
        'user': {'id': client.id, 'email': client.email},
        'client': client.to_dict(),
    })


@auth_bp.route('/api/auth/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'success': True})


# Designers

@auth_bp.route('/api/designer/auth/send-otp', methods=['POST'])
def designer_send_otp():
    data = request.get_json(silent=True) or {}
    email = read_email(data)
    is_login = bool(data.get('isLogin'))

    if is_login and not Designer.query.filter_by(email=email).first():
        abort(400, description='No designer account found with this email. Please apply first.')

    send_code(email, 'designer', 'login' if is_login else 'signup')
    return jsonify({'success': True})


@auth_bp.route('/api/designer/auth/verify-otp', methods=['POST'])
def designer_verify_otp():
    email, token = read_code(request.get_json(silent=True) or {})

    if not verify_otp(email, token, 'designer'):
        abort(401, description='Invalid or expired code')

    designer = Designer.query.filter_by(email=email).first()
    is_new = designer is None
    if is_new:
        designer = Designer(email=email, is_verified=True, status='draft')
        db.session.add(designer)
    else:
        designer.is_verified = True
    db.session.commit()

    login_user(designer, remember=True)
    return jsonify({
        'success': True,
        'isNewUser': is_new,
        'designer': designer.to_admin_dict(),
    })


@auth_bp.route('/api/designer/auth/session', methods=['GET'])
@designer_required
def designer_session():
    return jsonify({
        'authenticated': True,
        'designer': current_user.to_admin_dict(),
    })


# Admin

@auth_bp.route('/api/admin/auth/send-otp', methods=['POST'])
def admin_send_otp():
    email = read_email(request.get_json(silent=True) or {})

    if email != current_app.config['ADMIN_EMAIL'].lower():
        logger.warning('Admin login attempt for %s', email)
        abort(403, description='Unauthorized email address')

    send_code(email, 'admin', 'login')
    return jsonify({'success': True})


@auth_bp.route('/api/admin/auth/verify', methods=['POST'])
def admin_verify():
    email, token = read_code(request.get_json(silent=True) or {})

    if email != current_app.config['ADMIN_EMAIL'].lower() or not verify_otp(email, token, 'admin'):
        abort(401, description='Invalid or expired code')

    login_user(AdminUser(current_app.config['ADMIN_EMAIL']))
    return jsonify({'success': True, 'admin': {'email': email}})
