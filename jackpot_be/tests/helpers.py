from decimal import Decimal

from jackpot_be.config_validator import DEFAULT_SYMBOL_TABLE
from jackpot_be.dto import PayoutConfig
from jackpot_be.utils.outcome_generator import OutcomeGenerator

CHERRY_ROW = [['Cherry', 'Cherry', 'Cherry']]
LOSING_ROW = [['Cherry', 'Lemon', 'Orange']]


def default_config(**overrides):
    settings = dict(reels_count=3, rows_count=1, min_bet=Decimal('1.00'), max_bet=Decimal('5.00'))
    settings.update(overrides)
    return PayoutConfig.from_table(DEFAULT_SYMBOL_TABLE, **settings)


class ScriptedGenerator(OutcomeGenerator):
    """Hands out queued reel matrices in order, then repeats the last one."""

    def __init__(self, *matrices):
        super().__init__()
        self.matrices = list(matrices)
        self.draws = 0

    def draw_reels(self, config):
        self.draws += 1
        if len(self.matrices) > 1:
            return self.matrices.pop(0)
        return self.matrices[0]


class FixedRandom:
    """Stands in for SystemRandom where a test needs a known roll."""

    def __init__(self, roll):
        self.value = roll
        self.calls = 0

    def randint(self, low, high):
        self.calls += 1
        return self.value
