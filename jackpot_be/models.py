from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone

from jackpot_be.dto import Session, to_money

db = SQLAlchemy()


def _aware(value):
    # SQLite drops tzinfo on the way back; stored values are always UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class GameSessionRecord(db.Model):
    __tablename__ = 'game_sessions'
    session_id = db.Column(db.String(64), primary_key=True)
    balance = db.Column(db.Numeric(10, 2), nullable=False)
    total_bet = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    total_win = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    last_activity = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)

    @classmethod
    def from_session(cls, session: Session):
        record = cls(session_id=session.session_id)
        record.copy_from(session)
        return record

    def copy_from(self, session: Session):
        self.balance = session.balance
        self.total_bet = session.total_bet
        self.total_win = session.total_win
        self.created_at = session.created_at
        self.last_activity = session.last_activity
        self.is_active = session.is_active

    def to_session(self) -> Session:
        return Session(
            session_id=self.session_id,
            balance=to_money(self.balance),
            total_bet=to_money(self.total_bet),
            total_win=to_money(self.total_win),
            created_at=_aware(self.created_at),
            last_activity=_aware(self.last_activity),
            is_active=bool(self.is_active),
        )

    def __repr__(self):
        return f"<GameSessionRecord {self.session_id} (Balance: {self.balance}, Active: {self.is_active})>"
