import logging
from decimal import Decimal, InvalidOperation

from jackpot_be.dto import (
    PayoutConfig, Session, SpinSettlement, has_cent_precision, to_money, utcnow
)
from jackpot_be.exceptions import (
    InsufficientFundsException, InvalidBetException, ValidationException
)
from jackpot_be.services.session_store import SessionStore, find_session, load_session, reopen_session
from jackpot_be.utils.game_logger import GameEventLogger
from jackpot_be.utils.house_advantage import HouseAdvantagePolicy
from jackpot_be.utils.outcome_generator import OutcomeGenerator
from jackpot_be.utils.session_locks import SessionLockRegistry

logger = logging.getLogger(__name__)


def parse_amount(value):
    """Turns client input into a Decimal, or None when it is not a finite number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


class SpinSettlementService:
    """
    Creates sessions and settles spins against them.

    All reads and writes for one session happen inside that session's lock, so two
    spins on the same session can never both pass the balance check on stale data.
    """

    def __init__(self, store: SessionStore, config: PayoutConfig, generator: OutcomeGenerator,
                 house_advantage: HouseAdvantagePolicy, initial_credits,
                 locks: SessionLockRegistry = None, reactivate_closed=False):
        self.store = store
        self.config = config
        self.generator = generator
        self.house_advantage = house_advantage
        self.initial_credits = to_money(initial_credits)
        self.locks = locks if locks is not None else SessionLockRegistry()
        self.reactivate_closed = reactivate_closed

    def create_session(self, initial_balance=None) -> Session:
        """
        Opens a session. Missing or non-positive balances fall back to the
        configured initial credits.

        Raises:
            ValidationException: If ``initial_balance`` is given but is not a finite number.
        """
        balance = self.initial_credits
        if initial_balance is not None:
            amount = parse_amount(initial_balance)
            if amount is None:
                raise ValidationException(
                    "Initial balance must be a finite number.",
                    details={'initial_balance': str(initial_balance)}
                )
            amount = to_money(amount)
            if amount > 0:
                balance = amount
            else:
                logger.info("Using default initial balance", extra={'initial_balance': str(balance)})

        session = self.store.create_session(balance)
        GameEventLogger.log_financial_event(
            event_type='session_created',
            session_id=session.session_id,
            amount=session.balance,
            balance_before=Decimal('0.00'),
            balance_after=session.balance
        )
        return session

    def get_session(self, session_id) -> Session:
        """Returns the session after stamping ``last_activity``; balance and totals are untouched."""
        with self.locks.hold(session_id):
            session = load_session(self.store, session_id, self.reactivate_closed)
            session = session.touched(utcnow())
            self.store.update_session(session)
            return session

    def _validated_bet(self, bet_amount) -> Decimal:
        amount = parse_amount(bet_amount)
        if amount is None:
            raise InvalidBetException("Bet amount must be a finite number.",
                                      details={'bet_amount': str(bet_amount)})
        if not has_cent_precision(amount):
            raise InvalidBetException("Bet amount cannot have more than two decimal places.",
                                      details={'bet_amount': str(amount)})
        amount = to_money(amount)
        if not self.config.accepts_bet(amount):
            logger.warning("Invalid bet amount", extra={'bet_amount': str(amount),
                                                        'min_bet': str(self.config.min_bet),
                                                        'max_bet': str(self.config.max_bet)})
            raise InvalidBetException(
                f"Bet amount must be between {self.config.min_bet} and {self.config.max_bet}",
                details={'bet_amount': str(amount), 'min_bet': str(self.config.min_bet),
                         'max_bet': str(self.config.max_bet)}
            )
        return amount

    def spin(self, session_id, bet_amount) -> SpinSettlement:
        """
        Settles one spin for a session.

        Args:
            session_id: Session to play on.
            bet_amount: Stake, within the configured bet bounds and at most the balance.

        Returns:
            SpinSettlement: The outcome that was settled (after any house-advantage
            reroll), the persisted session and whether the spin closed the session.

        Raises:
            SessionNotFoundException: Unknown session id.
            SessionClosedException: Session is closed and reactivation is disabled.
            InvalidBetException: Bet outside the bounds or not a valid amount.
            InsufficientFundsException: Bet larger than the balance.
            StoreFailureException: The store could not persist the settlement.
        """
        logger.info("Processing spin request", extra={'session_id': session_id, 'bet_amount': str(bet_amount)})

        with self.locks.hold(session_id):
            session = find_session(self.store, session_id, self.reactivate_closed)
            bet = self._validated_bet(bet_amount)

            if session.balance < bet:
                logger.warning("Insufficient funds", extra={'session_id': session_id,
                                                            'balance': str(session.balance),
                                                            'bet_amount': str(bet)})
                raise InsufficientFundsException(
                    "Insufficient funds",
                    details={'balance': str(session.balance), 'bet_amount': str(bet)}
                )

            session = reopen_session(self.store, session)
            outcome = self.generator.draw(bet, self.config)
            if outcome.is_win:
                outcome = self.house_advantage.apply(outcome, session, bet, self.config)

            settled = self.store.save_spin_settlement(session_id, outcome)

            session_closed = not settled.is_active
            if session_closed:
                logger.info("Session closed due to zero balance", extra={
                    'session_id': session_id, 'total_bet': str(settled.total_bet),
                    'total_win': str(settled.total_win)})

        GameEventLogger.log_game_event(
            event_type='spin',
            session_id=session_id,
            bet_amount=outcome.bet_amount,
            win_amount=outcome.win_amount,
            details={'winning_lines': len(outcome.winning_lines), 'session_closed': session_closed}
        )
        GameEventLogger.log_financial_event(
            event_type='spin_settled',
            session_id=session_id,
            amount=outcome.win_amount - outcome.bet_amount,
            balance_before=session.balance,
            balance_after=settled.balance
        )
        return SpinSettlement(outcome=outcome, session=settled, session_closed=session_closed)
