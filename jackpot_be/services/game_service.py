import logging

from jackpot_be.dto import PayoutConfig
from jackpot_be.services.cashout_service import CashoutService
from jackpot_be.services.session_store import InMemorySessionStore
from jackpot_be.services.spin_service import SpinSettlementService
from jackpot_be.utils.house_advantage import DEFAULT_HOUSE_ADVANTAGE_TIERS, HouseAdvantagePolicy
from jackpot_be.utils.outcome_generator import OutcomeGenerator
from jackpot_be.utils.session_locks import SessionLockRegistry

logger = logging.getLogger(__name__)


class GameService:
    """
    The operations the API exposes: read the payout config, open a session,
    spin, cash out and read a session. Transport-agnostic; failures are raised as
    ``AppException`` subclasses.
    """

    def __init__(self, config: PayoutConfig, spin_service: SpinSettlementService,
                 cashout_service: CashoutService):
        self.config = config
        self.spin_service = spin_service
        self.cashout_service = cashout_service

    def get_payout_config(self) -> PayoutConfig:
        return self.config

    def create_session(self, initial_balance=None):
        return self.spin_service.create_session(initial_balance)

    def get_session(self, session_id):
        return self.spin_service.get_session(session_id)

    def spin(self, session_id, bet_amount):
        return self.spin_service.spin(session_id, bet_amount)

    def cash_out(self, session_id):
        return self.cashout_service.cash_out(session_id)


def build_game_service(config: PayoutConfig, store=None, initial_credits='10.00',
                       house_advantage_enabled=False, house_advantage_tiers=DEFAULT_HOUSE_ADVANTAGE_TIERS,
                       reactivate_closed=False, generator=None, rng=None) -> GameService:
    """
    Wires the settlement engine around one store.

    Both services share a single lock registry so a cashout waits for an
    in-flight spin on the same session.
    """
    store = store if store is not None else InMemorySessionStore()
    generator = generator if generator is not None else OutcomeGenerator()
    locks = SessionLockRegistry()
    policy = HouseAdvantagePolicy(generator, enabled=house_advantage_enabled,
                                  tiers=house_advantage_tiers, rng=rng)

    spin_service = SpinSettlementService(
        store, config, generator, policy, initial_credits,
        locks=locks, reactivate_closed=reactivate_closed
    )
    cashout_service = CashoutService(store, locks=locks, reactivate_closed=reactivate_closed)

    logger.info("Game service initialized", extra={
        'store': type(store).__name__, 'reels_count': config.reels_count,
        'rows_count': config.rows_count, 'min_bet': str(config.min_bet),
        'max_bet': str(config.max_bet), 'house_advantage_enabled': house_advantage_enabled,
        'reactivate_closed': reactivate_closed})
    return GameService(config, spin_service, cashout_service)
