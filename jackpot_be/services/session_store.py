"""
Session persistence contract and the in-process implementation.

The settlement services only talk to a ``SessionStore``; which backend sits behind
it is chosen when the application is wired up.
"""
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from jackpot_be.dto import Session, SpinOutcome, to_money, utcnow
from jackpot_be.exceptions import (
    InsufficientFundsException, SessionClosedException, SessionNotFoundException, StoreFailureException
)

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


class SessionStore(ABC):

    @abstractmethod
    def create_session(self, initial_balance) -> Session:
        """Persists a new active session holding ``initial_balance``."""

    @abstractmethod
    def get_session(self, session_id) -> Optional[Session]:
        """Returns the stored session, or None. Never modifies the record."""

    @abstractmethod
    def update_session(self, session: Session) -> None:
        """Replaces the stored record with ``session`` (last writer wins)."""

    @abstractmethod
    def save_spin_settlement(self, session_id, outcome: SpinOutcome) -> Session:
        """
        Debits the bet, credits the win and returns the persisted session.

        The funds check and the zero-balance close happen in the same write as the
        settlement, under whatever lock the backend holds on the record.

        Raises:
            SessionNotFoundException: Unknown session id.
            SessionClosedException: The stored session is closed.
            InsufficientFundsException: The stored balance is below the bet.
        """

    @staticmethod
    def _new_session(initial_balance) -> Session:
        balance = to_money(initial_balance)
        if balance <= 0:
            raise ValueError(f"Initial balance must be positive, got {balance}")
        return Session(session_id=new_session_id(), balance=balance)

    @staticmethod
    def _settle(session: Session, outcome: SpinOutcome) -> Session:
        if not session.is_active:
            raise SessionClosedException(session.session_id)
        if session.balance < outcome.bet_amount:
            raise InsufficientFundsException(
                "Insufficient funds",
                details={'balance': str(session.balance), 'bet_amount': str(outcome.bet_amount)}
            )
        now = utcnow()
        settled = session.settled(outcome, now)
        if settled.balance <= 0:
            settled = settled.closed(now)
        return settled


class InMemorySessionStore(SessionStore):
    """Keeps sessions in a dict owned by this store instance; state is lost on restart."""

    def __init__(self):
        self._sessions = {}
        self._lock = threading.Lock()

    def create_session(self, initial_balance) -> Session:
        session = self._new_session(initial_balance)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("Created new session", extra={'session_id': session.session_id,
                                                  'initial_balance': str(session.balance)})
        return session

    def get_session(self, session_id) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def update_session(self, session: Session) -> None:
        with self._lock:
            if session.session_id not in self._sessions:
                logger.error("Session not found for update", extra={'session_id': session.session_id})
                raise StoreFailureException('update_session', session.session_id,
                                            status_message="Cannot update a session that was never created")
            self._sessions[session.session_id] = session

    def save_spin_settlement(self, session_id, outcome: SpinOutcome) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundException(session_id)
            settled = self._settle(session, outcome)
            self._sessions[session_id] = settled
        logger.info("Saved spin settlement", extra={'session_id': session_id,
                                                    'bet_amount': str(outcome.bet_amount),
                                                    'win_amount': str(outcome.win_amount),
                                                    'new_balance': str(settled.balance),
                                                    'is_active': settled.is_active})
        return settled

    def __len__(self):
        with self._lock:
            return len(self._sessions)


def find_session(store: SessionStore, session_id, reactivate_closed=False) -> Session:
    """
    Looks a session up without writing anything.

    Raises ``SessionClosedException`` for a closed session unless ``reactivate_closed``
    is set, in which case the closed session is returned as stored.
    """
    session = store.get_session(session_id)
    if session is None:
        logger.warning("Session not found", extra={'session_id': session_id})
        raise SessionNotFoundException(session_id)

    if not session.is_active and not reactivate_closed:
        logger.warning("Session is already closed", extra={'session_id': session_id})
        raise SessionClosedException(session_id)
    return session


def reopen_session(store: SessionStore, session: Session) -> Session:
    """Persists ``session`` as active again; active sessions are returned untouched."""
    if session.is_active:
        return session
    session = session.reactivated(utcnow())
    store.update_session(session)
    logger.info("Reactivated closed session", extra={'session_id': session.session_id})
    return session


def load_session(store: SessionStore, session_id, reactivate_closed=False) -> Session:
    """
    Looks a session up for a cashout or read.

    A closed session is either refused with ``SessionClosedException`` or, when
    ``reactivate_closed`` is set, switched back on and persisted before returning.
    """
    return reopen_session(store, find_session(store, session_id, reactivate_closed))
