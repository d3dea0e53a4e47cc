"""
Application configuration with fail-fast validation.

Values come from the environment (and .env) through ``config_validator`` and are
validated once, at import.
"""
from decimal import Decimal

from jackpot_be.config_validator import DEFAULT_SYMBOL_TABLE, validate_production_config
from jackpot_be.dto import PayoutConfig
from jackpot_be.utils.house_advantage import DEFAULT_HOUSE_ADVANTAGE_TIERS


class Config:
    """Configuration built from validated environment values."""

    _validated_config = validate_production_config()

    APP_ENV = _validated_config['APP_ENV']
    DEBUG = _validated_config['DEBUG']

    # Game
    PAYOUT_CONFIG = _validated_config['PAYOUT_CONFIG']
    GAME_INITIAL_CREDITS = _validated_config['GAME_INITIAL_CREDITS']
    HOUSE_ADVANTAGE_ENABLED = _validated_config['HOUSE_ADVANTAGE_ENABLED']
    HOUSE_ADVANTAGE_TIERS = _validated_config['HOUSE_ADVANTAGE_TIERS']
    SESSION_REACTIVATE_CLOSED = _validated_config['SESSION_REACTIVATE_CLOSED']

    # Persistence
    SESSION_STORE = _validated_config['SESSION_STORE']
    SQLALCHEMY_DATABASE_URI = _validated_config['SQLALCHEMY_DATABASE_URI']
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Rate limiting
    RATELIMIT_STORAGE_URI = _validated_config['RATELIMIT_STORAGE_URI']
    RATELIMIT_DEFAULT = "2000 per hour"
    SPIN_RATE_LIMIT = "60 per minute"

    # CORS
    CORS_ORIGINS_LIST = _validated_config['CORS_ORIGINS']


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SESSION_STORE = 'memory'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    RATELIMIT_ENABLED = False
    CORS_ORIGINS_LIST = []
    # Pinned so tests do not depend on the developer's environment
    PAYOUT_CONFIG = PayoutConfig.from_table(
        DEFAULT_SYMBOL_TABLE, reels_count=3, rows_count=1,
        min_bet=Decimal('1.00'), max_bet=Decimal('5.00')
    )
    GAME_INITIAL_CREDITS = Decimal('10.00')
    HOUSE_ADVANTAGE_ENABLED = False
    HOUSE_ADVANTAGE_TIERS = DEFAULT_HOUSE_ADVANTAGE_TIERS
    SESSION_REACTIVATE_CLOSED = False
