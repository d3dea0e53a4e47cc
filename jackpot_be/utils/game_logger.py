"""
Game Event Logging
Structured audit lines for session and balance changes
"""

import json
import logging
from datetime import datetime, timezone

from flask import g, has_request_context, request

audit_logger = logging.getLogger('jackpot_be.audit')


def _request_context():
    if not has_request_context():
        return 'N/A', None
    return g.get('request_id', 'N/A'), request.remote_addr


def _amount(value):
    return None if value is None else str(value)


class GameEventLogger:
    """Centralized game and financial event logging"""

    @staticmethod
    def log_game_event(event_type: str, session_id: str = None, bet_amount=None,
                       win_amount=None, details: dict = None):
        """Log game-related events"""
        request_id, ip_address = _request_context()

        event_data = {
            'event_type': 'game',
            'sub_type': event_type,
            'session_id': session_id,
            'bet_amount': _amount(bet_amount),
            'win_amount': _amount(win_amount),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        audit_logger.info(f"GAME_EVENT: {json.dumps(event_data, default=str)}")

    @staticmethod
    def log_financial_event(event_type: str, session_id: str, amount=None,
                            balance_before=None, balance_after=None, details: dict = None):
        """Log balance-changing events"""
        request_id, ip_address = _request_context()

        event_data = {
            'event_type': 'financial',
            'sub_type': event_type,
            'session_id': session_id,
            'amount': _amount(amount),
            'balance_before': _amount(balance_before),
            'balance_after': _amount(balance_after),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        audit_logger.info(f"FINANCIAL_EVENT: {json.dumps(event_data, default=str)}")
