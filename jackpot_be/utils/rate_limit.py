from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Bound to the app in create_app; limits and storage come from app.config.
limiter = Limiter(key_func=get_remote_address)


def spin_rate_limit():
    return current_app.config.get('SPIN_RATE_LIMIT', "60 per minute")
