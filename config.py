import os
from dotenv import load_dotenv

load_dotenv()


def _bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-key-change-this')
    APP_URL = os.getenv('APP_URL', 'http://localhost:5000')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Absolute path to database folder, works even if the project is moved
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    DB_PATH = os.path.join(BASE_DIR, "database", "onedesigner.db")

    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL', f"sqlite:///{DB_PATH.replace(os.sep, '/')}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Groq
    GROQ_API_KEY = os.getenv('GROQ_API_KEY')
    GROQ_MODEL = os.getenv('GROQ_MODEL', 'llama-3.3-70b-versatile')

    # AI request queue and match cache
    AI_RATE_LIMIT_PER_MINUTE = int(os.getenv('AI_RATE_LIMIT_PER_MINUTE', 60))
    AI_DELAY_BETWEEN_REQUESTS = float(os.getenv('AI_DELAY_BETWEEN_REQUESTS', 1.0))
    AI_MAX_RETRIES = int(os.getenv('AI_MAX_RETRIES', 2))
    MATCH_CACHE_TTL = int(os.getenv('MATCH_CACHE_TTL', 3600))
    MATCH_CACHE_MAX_SIZE = int(os.getenv('MATCH_CACHE_MAX_SIZE', 500))

    # OTP
    OTP_LENGTH = int(os.getenv('OTP_LENGTH', 6))
    OTP_EXPIRY_MINUTES = int(os.getenv('OTP_EXPIRY_MINUTES', 10))
    OTP_COOLDOWN_SECONDS = int(os.getenv('OTP_COOLDOWN_SECONDS', 60))
    OTP_MAX_ATTEMPTS = int(os.getenv('OTP_MAX_ATTEMPTS', 5))

    # Resend
    RESEND_API_KEY = os.getenv('RESEND_API_KEY')
    EMAIL_FROM = os.getenv('EMAIL_FROM', 'OneDesigner <hello@onedesigner.app>')
    EMAIL_REPLY_TO = os.getenv('EMAIL_REPLY_TO')
    # Without an API key emails are only logged
    EMAIL_SUPPRESS_SEND = _bool('EMAIL_SUPPRESS_SEND', default=not RESEND_API_KEY)

    # LemonSqueezy
    LEMONSQUEEZY_API_KEY = os.getenv('LEMONSQUEEZY_API_KEY')
    LEMONSQUEEZY_STORE_ID = os.getenv('LEMONSQUEEZY_STORE_ID')
    LEMONSQUEEZY_WEBHOOK_SECRET = os.getenv('LEMONSQUEEZY_WEBHOOK_SECRET')
    LEMONSQUEEZY_VARIANTS = {
        'STARTER_PACK': os.getenv('LEMONSQUEEZY_STARTER_VARIANT_ID'),
        'GROWTH_PACK': os.getenv('LEMONSQUEEZY_GROWTH_VARIANT_ID'),
        'SCALE_PACK': os.getenv('LEMONSQUEEZY_SCALE_VARIANT_ID'),
    }

    # App Settings
    ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', 'admin@onedesigner.app')
    MATCH_EXPIRY_DAYS = int(os.getenv('MATCH_EXPIRY_DAYS', 7))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    APP_URL = 'http://testserver'

    GROQ_API_KEY = None
    AI_DELAY_BETWEEN_REQUESTS = 0.0

    OTP_COOLDOWN_SECONDS = 0

    RESEND_API_KEY = None
    EMAIL_SUPPRESS_SEND = True

    LEMONSQUEEZY_API_KEY = 'test-lemon-key'
    LEMONSQUEEZY_STORE_ID = '1234'
    LEMONSQUEEZY_WEBHOOK_SECRET = 'test-webhook-secret'
    LEMONSQUEEZY_VARIANTS = {
        'STARTER_PACK': '111',
        'GROWTH_PACK': '222',
        'SCALE_PACK': '333',
    }

    ADMIN_EMAIL = 'admin@example.com'
