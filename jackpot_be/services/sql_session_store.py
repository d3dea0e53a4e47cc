import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from jackpot_be.dto import Session, SpinOutcome
from jackpot_be.exceptions import SessionNotFoundException, StoreFailureException
from jackpot_be.models import GameSessionRecord
from jackpot_be.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class SQLSessionStore(SessionStore):
    """
    Stores sessions in the ``game_sessions`` table through Flask-SQLAlchemy.

    Must be used inside an application context. Each write commits on success and
    rolls back on failure; driver errors surface as ``StoreFailureException``.
    """

    def __init__(self, db):
        self.db = db

    def _run(self, operation, session_id, work):
        try:
            result = work()
            self.db.session.commit()
            return result
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error(
                "Session store operation failed",
                extra={'operation': operation, 'session_id': session_id, 'error': str(e)},
                exc_info=True
            )
            raise StoreFailureException(operation, session_id) from e
        except Exception:
            self.db.session.rollback()
            raise

    def create_session(self, initial_balance) -> Session:
        session = self._new_session(initial_balance)

        def work():
            self.db.session.add(GameSessionRecord.from_session(session))
            return session

        created = self._run('create_session', session.session_id, work)
        logger.info("Created new session", extra={'session_id': created.session_id,
                                                  'initial_balance': str(created.balance)})
        return created

    def get_session(self, session_id) -> Optional[Session]:
        try:
            record = self.db.session.execute(
                select(GameSessionRecord)
                .filter_by(session_id=session_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error("Failed to get session", extra={'session_id': session_id, 'error': str(e)})
            raise StoreFailureException('get_session', session_id) from e
        return record.to_session() if record is not None else None

    def update_session(self, session: Session) -> None:
        def work():
            record = self.db.session.get(GameSessionRecord, session.session_id)
            if record is None:
                raise StoreFailureException('update_session', session.session_id,
                                            status_message="Cannot update a session that was never created")
            record.copy_from(session)

        self._run('update_session', session.session_id, work)
        logger.info("Updated session", extra={'session_id': session.session_id,
                                              'balance': str(session.balance),
                                              'is_active': session.is_active})

    def save_spin_settlement(self, session_id, outcome: SpinOutcome) -> Session:
        def work():
            record = self.db.session.execute(
                select(GameSessionRecord)
                .filter_by(session_id=session_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if record is None:
                raise SessionNotFoundException(session_id)
            settled = self._settle(record.to_session(), outcome)
            record.copy_from(settled)
            return settled

        settled = self._run('save_spin_settlement', session_id, work)
        logger.info("Saved spin settlement", extra={'session_id': session_id,
                                                    'bet_amount': str(outcome.bet_amount),
                                                    'win_amount': str(outcome.win_amount),
                                                    'new_balance': str(settled.balance),
                                                    'is_active': settled.is_active})
        return settled
