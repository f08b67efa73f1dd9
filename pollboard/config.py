# pollboard/config.py

import os
from datetime import timedelta


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'change-me-in-production')

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL', 'sqlite:///' + os.path.join(os.getcwd(), 'data', 'pollboard.db')
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_INIT_DB = _env_bool('AUTO_INIT_DB', True)

    # Sessions are signed JWTs carried in a cookie
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'change-me-in-production-pollboard-jwt')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.environ.get('SESSION_LIFETIME_SECONDS', '3600')))
    JWT_TOKEN_LOCATION = ['cookies']
    JWT_COOKIE_CSRF_PROTECT = False
    JWT_ACCESS_COOKIE_PATH = '/'
    JWT_COOKIE_SECURE = _env_bool('JWT_COOKIE_SECURE', False)

    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', True)
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    LOGIN_RATE_LIMIT = os.environ.get('LOGIN_RATE_LIMIT', '10/minute')
    VOTE_RATE_LIMIT = os.environ.get('VOTE_RATE_LIMIT', '30/minute')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    AUDIT_LOG_DIR = os.environ.get('AUDIT_LOG_DIR', 'logs')
    # PEM file holding the Ed25519 audit key; defaults to a file inside AUDIT_LOG_DIR
    AUDIT_SIGNING_KEY_PATH = os.environ.get('AUDIT_SIGNING_KEY_PATH') or None

    # Optional shared key required (in addition to the admin role) to reset the poll
    RESET_KEY = os.environ.get('RESET_KEY') or None

    # Argon2id cost parameters
    ARGON2_TIME_COST = int(os.environ.get('ARGON2_TIME_COST', '3'))
    ARGON2_MEMORY_COST = int(os.environ.get('ARGON2_MEMORY_COST', '65536'))
    ARGON2_PARALLELISM = int(os.environ.get('ARGON2_PARALLELISM', '4'))

    DEFAULT_CHOICES = ['HTML', 'JavaScript', 'CSS']
    SEED_DEFAULT_USERS = _env_bool('SEED_DEFAULT_USERS', True)
    SEED_ADMIN_PASSWORD = os.environ.get('SEED_ADMIN_PASSWORD', 'admin')
    SEED_USER_PASSWORD = os.environ.get('SEED_USER_PASSWORD', '123456')

    RECENT_LOG_LIMIT = 20

    ERROR_MESSAGE = 'Whoops! Error connecting to the database, please try again!'
    SETUP_MESSAGE = 'No poll choices are set up yet. Run "flask --app pollboard init-db" to seed them.'
