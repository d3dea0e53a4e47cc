import logging
import secrets
from typing import Optional, Sequence

from jackpot_be.dto import (
    LINE_KIND_ROW, PayoutConfig, SpinOutcome, WinningLine, to_money
)

logger = logging.getLogger(__name__)


class OutcomeGenerator:
    """
    Draws reel matrices and settles them against a payout table.

    Every row is an independent payline: a row pays ``coefficient * bet`` when all of
    its symbols are the same. With a single reel every row is trivially uniform, so
    every row pays the symbol it shows.

    Scatter evaluation is a hook: ``evaluate_scatter`` contributes nothing here and
    subclasses can override it to add scatter pays.
    """

    def __init__(self, rng=None):
        # SystemRandom reads from os.urandom, so draws are not reproducible across processes.
        self.rng = rng if rng is not None else secrets.SystemRandom()

    def draw(self, bet_amount, config: PayoutConfig) -> SpinOutcome:
        reels = self.draw_reels(config)
        outcome = self.evaluate(reels, bet_amount, config)
        logger.debug(
            "Spin outcome generated",
            extra={'bet_amount': str(outcome.bet_amount), 'win_amount': str(outcome.win_amount),
                   'winning_lines': len(outcome.winning_lines)}
        )
        return outcome

    def draw_reels(self, config: PayoutConfig):
        """Draws ``rows_count`` rows of ``reels_count`` symbols, uniformly and with replacement."""
        return [
            self.rng.choices(config.symbols, k=config.reels_count)
            for _ in range(config.rows_count)
        ]

    def evaluate(self, reels: Sequence[Sequence[str]], bet_amount, config: PayoutConfig) -> SpinOutcome:
        """
        Settles a reel matrix.

        Args:
            reels: ``rows_count`` x ``reels_count`` matrix of symbol ids.
            bet_amount: Stake for this spin.
            config: Payout table the matrix is settled against.

        Returns:
            SpinOutcome: The matrix, total win and the winning lines in row order.

        Raises:
            ValueError: If the matrix shape does not match the config or it holds unknown symbols.
        """
        matrix = self._checked_matrix(reels, config)
        bet_amount = to_money(bet_amount)

        winning_lines = []
        for index, row in enumerate(matrix):
            line = self.evaluate_row(index, row, bet_amount, config)
            if line is not None:
                winning_lines.append(line)

        scatter = self.evaluate_scatter(matrix, bet_amount, config)
        if scatter is not None and scatter.amount > 0:
            winning_lines.append(scatter)

        total_win = sum((line.amount for line in winning_lines), to_money(0))
        return SpinOutcome(
            reels=matrix,
            bet_amount=bet_amount,
            win_amount=total_win,
            winning_lines=tuple(winning_lines),
        )

    def evaluate_row(self, index, row, bet_amount, config: PayoutConfig) -> Optional[WinningLine]:
        if len(set(row)) != 1:
            return None
        symbol = row[0]
        amount = to_money(config.coefficient(symbol) * bet_amount)
        if amount <= 0:
            return None
        return WinningLine(
            kind=LINE_KIND_ROW,
            index=index,
            symbols=tuple(row),
            amount=amount,
            combination=symbol,
        )

    def evaluate_scatter(self, reels, bet_amount, config: PayoutConfig) -> Optional[WinningLine]:
        return None

    @staticmethod
    def _checked_matrix(reels, config: PayoutConfig):
        if len(reels) != config.rows_count:
            raise ValueError(f"Expected {config.rows_count} rows, got {len(reels)}")
        matrix = []
        for row in reels:
            if len(row) != config.reels_count:
                raise ValueError(f"Expected {config.reels_count} reels per row, got {len(row)}")
            unknown = [symbol for symbol in row if symbol not in config.payout]
            if unknown:
                raise ValueError(f"Unknown symbols in reel matrix: {unknown}")
            matrix.append(tuple(row))
        return tuple(matrix)
