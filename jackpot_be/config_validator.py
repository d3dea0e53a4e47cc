"""
Configuration validation and startup checks.

Every game setting is parsed once from the environment into typed values. Malformed
input is a hard failure: a payout table that cannot be parsed never silently turns
into the defaults or into an empty table.
"""

import json
import os
import sys
import warnings
from decimal import Decimal
from typing import List, Optional, Tuple

from jackpot_be.dto import PayoutConfig, to_money
from jackpot_be.utils.house_advantage import DEFAULT_HOUSE_ADVANTAGE_TIERS, parse_tiers

DEFAULT_SYMBOL_TABLE = {
    'Cherry': Decimal('10'),
    'Lemon': Decimal('20'),
    'Orange': Decimal('30'),
    'Watermelon': Decimal('40'),
}

KNOWN_ENVIRONMENTS = ('development', 'testing', 'production')
KNOWN_STORES = ('memory', 'sql')
TRUTHY = ('true', '1', 't', 'yes')


class ConfigValidationError(Exception):
    """Raised when critical configuration is missing or invalid."""
    pass


def _is_truthy(value: str) -> bool:
    return value.strip().lower() in TRUTHY


class ConfigValidator:
    """Validates application configuration and enforces production requirements."""

    def __init__(self, app_env: str = None, environ=None):
        """
        Args:
            app_env: Overrides APP_ENV detection when given.
            environ: Mapping to read variables from; defaults to ``os.environ``.
        """
        self.environ = os.environ if environ is None else environ
        app_env = (app_env or self.environ.get('APP_ENV', 'development')).strip().lower()
        if app_env not in KNOWN_ENVIRONMENTS:
            raise ConfigValidationError(
                f"APP_ENV must be one of {', '.join(KNOWN_ENVIRONMENTS)}, got '{app_env}'"
            )
        self.app_env = app_env
        self.is_production = app_env == 'production'
        self.is_testing = app_env == 'testing'
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def _get(self, var_name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.environ.get(var_name)
        if value is None or not value.strip():
            return default
        return value.strip()

    def _get_int(self, var_name: str, default: int) -> int:
        raw = self._get(var_name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigValidationError(f"{var_name} must be an integer, got '{raw}'")

    def _get_money(self, var_name: str, default: str) -> Decimal:
        raw = self._get(var_name, default)
        try:
            return to_money(raw)
        except ValueError:
            raise ConfigValidationError(f"{var_name} must be a decimal amount, got '{raw}'")

    def _get_json(self, var_name: str):
        raw = self._get(var_name)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"{var_name} is not valid JSON: {e.msg} (col {e.colno})")

    def validate_symbols_config(self) -> dict:
        """Parses GAME_SYMBOLS_SETTINGS ({"names": [...], "values": [...]}) into a symbol table."""
        settings = self._get_json('GAME_SYMBOLS_SETTINGS')
        if settings is None or settings == {}:
            return dict(DEFAULT_SYMBOL_TABLE)

        if not isinstance(settings, dict):
            raise ConfigValidationError("GAME_SYMBOLS_SETTINGS must be a JSON object")
        names = settings.get('names')
        values = settings.get('values')
        if not isinstance(names, list) or not isinstance(values, list):
            raise ConfigValidationError("GAME_SYMBOLS_SETTINGS requires 'names' and 'values' lists")
        if not names:
            raise ConfigValidationError("GAME_SYMBOLS_SETTINGS 'names' must not be empty")
        if len(names) != len(values):
            raise ConfigValidationError(
                f"GAME_SYMBOLS_SETTINGS has {len(names)} names but {len(values)} values"
            )

        table = {}
        for name, value in zip(names, values):
            if not isinstance(name, str) or not name.strip():
                raise ConfigValidationError(f"Symbol names must be non-empty strings, got {name!r}")
            if name in table:
                raise ConfigValidationError(f"Duplicate symbol name '{name}' in GAME_SYMBOLS_SETTINGS")
            if isinstance(value, bool) or not isinstance(value, (int, float, str)):
                raise ConfigValidationError(f"Payout for '{name}' must be numeric, got {value!r}")
            try:
                table[name] = Decimal(str(value))
            except ArithmeticError:
                raise ConfigValidationError(f"Payout for '{name}' must be numeric, got {value!r}")
        return table

    def validate_game_config(self) -> Tuple[PayoutConfig, Decimal]:
        """Validate reel layout, bet bounds, payout table and initial credits."""
        table = self.validate_symbols_config()
        try:
            payout_config = PayoutConfig.from_table(
                table,
                reels_count=self._get_int('GAME_REELS_COUNT', 3),
                rows_count=self._get_int('GAME_ROWS_COUNT', 1),
                min_bet=self._get_money('GAME_MIN_BET', '1.00'),
                max_bet=self._get_money('GAME_MAX_BET', '5.00'),
            )
        except ValueError as e:
            raise ConfigValidationError(f"Invalid game configuration: {e}") from e

        initial_credits = self._get_money('GAME_INITIAL_CREDITS', '10.00')
        if initial_credits <= 0:
            raise ConfigValidationError("GAME_INITIAL_CREDITS must be positive")
        if initial_credits < payout_config.min_bet:
            self.warnings.append(
                f"GAME_INITIAL_CREDITS ({initial_credits}) is below the minimum bet ({payout_config.min_bet})"
            )
        return payout_config, initial_credits

    def validate_house_advantage_config(self) -> Tuple[bool, tuple]:
        enabled = _is_truthy(self._get('GAME_HOUSE_ADVANTAGE_ENABLED', 'False'))
        raw = self._get_json('GAME_HOUSE_ADVANTAGE_CONFIG')
        if raw is None or raw == {}:
            return enabled, DEFAULT_HOUSE_ADVANTAGE_TIERS
        if not isinstance(raw, dict):
            raise ConfigValidationError("GAME_HOUSE_ADVANTAGE_CONFIG must be a JSON object")
        try:
            tiers = parse_tiers(raw.get('thresholds'), raw.get('chances'))
        except ValueError as e:
            raise ConfigValidationError(f"Invalid GAME_HOUSE_ADVANTAGE_CONFIG: {e}") from e
        return enabled, tiers

    def validate_store_config(self) -> Tuple[str, str]:
        store = self._get('SESSION_STORE', 'memory').lower()
        if store not in KNOWN_STORES:
            raise ConfigValidationError(
                f"SESSION_STORE must be one of {', '.join(KNOWN_STORES)}, got '{store}'"
            )

        database_url = self._get('DATABASE_URL')
        if self.is_production:
            if store != 'sql':
                self.errors.append(
                    "CRITICAL: SESSION_STORE=memory keeps balances in a single process. "
                    "Set SESSION_STORE=sql in production."
                )
            if not database_url:
                self.errors.append("CRITICAL: DATABASE_URL must be set in production")
        if database_url and not database_url.startswith(('postgresql', 'mysql', 'sqlite://')):
            self.errors.append("CRITICAL: DATABASE_URL must use a supported database driver")

        if not database_url:
            database_url = 'sqlite:///jackpot.db'
            if store == 'sql':
                self.warnings.append("DATABASE_URL not set - using development database sqlite:///jackpot.db")
        return store, database_url

    def validate_rate_limiting_config(self) -> str:
        rate_limit_uri = self._get('RATELIMIT_STORAGE_URI', 'memory://')
        if rate_limit_uri == 'memory://' and self.is_production:
            self.warnings.append(
                "Rate limiting uses memory:// storage in production. "
                "Set RATELIMIT_STORAGE_URI to a Redis URL for multi-process deployments."
            )
        return rate_limit_uri

    def validate_cors_config(self) -> List[str]:
        cors_origins = self._get('CORS_ORIGINS', '')
        origins = [origin.strip() for origin in cors_origins.split(',') if origin.strip()]
        for origin in origins:
            if not origin.startswith(('http://', 'https://')):
                self.warnings.append(f"CORS origin '{origin}' should include protocol (http:// or https://)")
        return origins

    def validate_all(self) -> dict:
        """
        Validate all configuration settings.

        Returns:
            Dictionary containing validated configuration values

        Raises:
            ConfigValidationError: If any setting is malformed, or production requirements are unmet
        """
        config = {'APP_ENV': self.app_env}

        try:
            config['PAYOUT_CONFIG'], config['GAME_INITIAL_CREDITS'] = self.validate_game_config()
            config['HOUSE_ADVANTAGE_ENABLED'], config['HOUSE_ADVANTAGE_TIERS'] = self.validate_house_advantage_config()
            config['SESSION_STORE'], config['SQLALCHEMY_DATABASE_URI'] = self.validate_store_config()
            config['RATELIMIT_STORAGE_URI'] = self.validate_rate_limiting_config()
            config['CORS_ORIGINS'] = self.validate_cors_config()
            config['SESSION_REACTIVATE_CLOSED'] = _is_truthy(self._get('SESSION_REACTIVATE_CLOSED', 'False'))
            config['DEBUG'] = _is_truthy(self._get('FLASK_DEBUG', 'False'))

            if self.is_production and config['DEBUG']:
                self.errors.append("CRITICAL: DEBUG mode must be disabled in production (set FLASK_DEBUG=False)")

            if self.errors:
                error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in self.errors)
                if self.warnings:
                    error_msg += "\n\nWarnings:\n" + "\n".join(f"  - {warning}" for warning in self.warnings)
                raise ConfigValidationError(error_msg)

            for warning in self.warnings:
                warnings.warn(warning, UserWarning)

            return config

        except ConfigValidationError:
            raise
        except Exception as e:
            raise ConfigValidationError(f"Configuration validation error: {str(e)}") from e


def validate_production_config() -> dict:
    """
    Validate configuration with fail-fast behavior.

    Returns:
        Dictionary of validated configuration values

    Raises:
        SystemExit: If validation fails during startup
    """
    try:
        validator = ConfigValidator()
        return validator.validate_all()
    except ConfigValidationError as e:
        print("\nCONFIGURATION VALIDATION FAILED\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nHow to fix:", file=sys.stderr)
        print("1. Check GAME_* variables in your environment or .env file", file=sys.stderr)
        print("2. GAME_SYMBOLS_SETTINGS must be JSON: {\"names\": [...], \"values\": [...]}", file=sys.stderr)
        print("3. Production requires SESSION_STORE=sql and DATABASE_URL", file=sys.stderr)
        print("\nApplication startup ABORTED\n", file=sys.stderr)
        sys.exit(1)
