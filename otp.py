"""One-time passcodes for passwordless login.

Codes are stored hashed in ``auth_tokens``; only the newest unused,
unexpired code for an (email, user type) pair can verify, and only once.
Request cooldowns and failed-attempt counters live in process memory.
"""
import logging
import secrets
import threading
import time
from datetime import timedelta

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from models import AuthToken, db, utcnow

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_last_requests = {}
_failed_attempts = {}


def _key(email, user_type):
    return f'{email.strip().lower()}:{user_type}'


def generate_code(length=6):
    """Numeric code of exactly `length` digits"""
    low = 10 ** (length - 1)
    high = 10 ** length
    return str(low + secrets.randbelow(high - low))


def check_cooldown(email, user_type, now=None):
    """Return seconds to wait before another code may be sent (0 = allowed)"""
    cooldown = current_app.config['OTP_COOLDOWN_SECONDS']
    now = time.monotonic() if now is None else now
    key = _key(email, user_type)

    with _lock:
        last = _last_requests.get(key)
        if last is not None and cooldown > 0:
            elapsed = now - last
            if elapsed < cooldown:
                return int(cooldown - elapsed) + 1
        _last_requests[key] = now
    return 0


def clear_cooldown(email, user_type):
    """Forget the last request so a failed send can be retried at once"""
    with _lock:
        _last_requests.pop(_key(email, user_type), None)


def create_otp(email, user_type):
    email = email.strip().lower()
    code = generate_code(current_app.config['OTP_LENGTH'])
    expires_at = utcnow() + timedelta(minutes=current_app.config['OTP_EXPIRY_MINUTES'])

    # Only one live code per email and account type
    AuthToken.query.filter_by(email=email, type='otp', user_type=user_type).delete()
    db.session.add(AuthToken(
        email=email,
        token_hash=generate_password_hash(code),
        type='otp',
        user_type=user_type,
        expires_at=expires_at,
    ))
    db.session.commit()

    with _lock:
        _failed_attempts.pop(_key(email, user_type), None)

    logger.info('OTP created for %s (%s), expires %s', email, user_type, expires_at.isoformat())
    return code


def verify_otp(email, code, user_type):
    email = email.strip().lower()
    code = (code or '').strip()
    key = _key(email, user_type)
    max_attempts = current_app.config['OTP_MAX_ATTEMPTS']

    with _lock:
        if _failed_attempts.get(key, 0) >= max_attempts:
            logger.warning('OTP attempts exhausted for %s (%s)', email, user_type)
            return False

    token = AuthToken.query.filter(
        AuthToken.email == email,
        AuthToken.type == 'otp',
        AuthToken.user_type == user_type,
        AuthToken.used_at.is_(None),
        AuthToken.expires_at > utcnow(),
    ).order_by(AuthToken.created_at.desc(), AuthToken.id.desc()).first()

    if not token or not code or not check_password_hash(token.token_hash, code):
        with _lock:
            _failed_attempts[key] = _failed_attempts.get(key, 0) + 1
        logger.info('OTP rejected for %s (%s)', email, user_type)
        return False

    token.used_at = utcnow()
    db.session.commit()

    with _lock:
        _failed_attempts.pop(key, None)
    return True


def cleanup_expired_tokens():
    """Delete expired or already used tokens, returning how many went"""
    removed = AuthToken.query.filter(
        db.or_(AuthToken.expires_at <= utcnow(), AuthToken.used_at.isnot(None))
    ).delete(synchronize_session=False)
    db.session.commit()
    return removed


def reset_state():
    with _lock:
        _last_requests.clear()
        _failed_attempts.clear()
