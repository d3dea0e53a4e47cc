import logging

from jackpot_be.dto import CashoutResult, utcnow
from jackpot_be.services.session_store import SessionStore, load_session
from jackpot_be.utils.game_logger import GameEventLogger
from jackpot_be.utils.session_locks import SessionLockRegistry

logger = logging.getLogger(__name__)


class CashoutService:
    """Closes a session, pays out its balance and reports the session's result."""

    def __init__(self, store: SessionStore, locks: SessionLockRegistry = None, reactivate_closed=False):
        self.store = store
        self.locks = locks if locks is not None else SessionLockRegistry()
        self.reactivate_closed = reactivate_closed

    def cash_out(self, session_id) -> CashoutResult:
        logger.info("Processing cashout request", extra={'session_id': session_id})

        with self.locks.hold(session_id):
            session = load_session(self.store, session_id, self.reactivate_closed)
            now = utcnow()
            self.store.update_session(session.closed(now, zero_balance=True))

        amount = session.balance
        result = CashoutResult(
            session_id=session.session_id,
            amount=amount,
            initial_balance=amount - session.total_win + session.total_bet,
            total_bet=session.total_bet,
            total_win=session.total_win,
            timestamp=now,
        )

        GameEventLogger.log_financial_event(
            event_type='cashout',
            session_id=session_id,
            amount=amount,
            balance_before=amount,
            balance_after=0,
            details={'initial_balance': str(result.initial_balance),
                     'net_profit': str(result.net_profit)}
        )
        return result
