import logging
import secrets
from decimal import Decimal, InvalidOperation

from jackpot_be.dto import PayoutConfig, Session, SpinOutcome

logger = logging.getLogger(__name__)

# (balance threshold, reroll chance in percent), ascending by threshold
DEFAULT_HOUSE_ADVANTAGE_TIERS = ((Decimal('40'), 30), (Decimal('60'), 60))


def parse_tiers(thresholds, chances):
    """
    Pairs parallel threshold and chance lists into sorted ``(threshold, chance)`` tiers.

    Raises:
        ValueError: On mismatched lengths, non-numeric values, negative thresholds,
                    duplicate thresholds or chances outside 0-100.
    """
    if not isinstance(thresholds, (list, tuple)) or not isinstance(chances, (list, tuple)):
        raise ValueError("'thresholds' and 'chances' must both be lists")
    if len(thresholds) != len(chances):
        raise ValueError(f"{len(thresholds)} thresholds but {len(chances)} chances")

    tiers = []
    for threshold, chance in zip(thresholds, chances):
        if isinstance(threshold, bool) or isinstance(chance, bool):
            raise ValueError("Thresholds and chances must be numbers")
        try:
            threshold = Decimal(str(threshold))
        except InvalidOperation:
            raise ValueError(f"Threshold {threshold!r} is not numeric")
        if not threshold.is_finite() or threshold < 0:
            raise ValueError(f"Threshold {threshold} must be a non-negative number")
        if not isinstance(chance, int) or not 0 <= chance <= 100:
            raise ValueError(f"Chance {chance!r} must be an integer between 0 and 100")
        tiers.append((threshold, chance))

    if len({threshold for threshold, _ in tiers}) != len(tiers):
        raise ValueError("Thresholds must be unique")
    return tuple(sorted(tiers))


class HouseAdvantagePolicy:
    """
    Soft house edge: a winning spin may be thrown away and redrawn.

    The reroll chance depends on the session balance before the spin. Tiers are checked
    from the highest threshold down and the first one at or below the balance applies.
    A redraw is a fresh, independent spin; it may win again.
    """

    def __init__(self, generator, enabled=False, tiers=DEFAULT_HOUSE_ADVANTAGE_TIERS, rng=None):
        self.generator = generator
        self.enabled = enabled
        self.tiers = tuple(sorted(tiers))
        self.rng = rng if rng is not None else secrets.SystemRandom()

    def reroll_chance(self, balance) -> int:
        for threshold, chance in reversed(self.tiers):
            if threshold <= balance:
                return chance
        return 0

    def roll(self) -> int:
        return self.rng.randint(1, 100)

    def apply(self, outcome: SpinOutcome, session: Session, bet_amount, config: PayoutConfig) -> SpinOutcome:
        if not self.enabled or not outcome.is_win:
            return outcome

        chance = self.reroll_chance(session.balance)
        if chance <= 0:
            return outcome

        roll = self.roll()
        if roll > chance:
            return outcome

        replacement = self.generator.draw(bet_amount, config)
        logger.info(
            "House advantage reroll applied",
            extra={'session_id': session.session_id, 'balance': str(session.balance),
                   'chance': chance, 'roll': roll,
                   'original_win': str(outcome.win_amount), 'new_win': str(replacement.win_amount)}
        )
        return replacement
