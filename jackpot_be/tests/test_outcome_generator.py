import random
from collections import Counter
from decimal import Decimal

import pytest

from jackpot_be.dto import LINE_KIND_ROW, LINE_KIND_SCATTER, WinningLine, to_money
from jackpot_be.tests.helpers import CHERRY_ROW, LOSING_ROW, default_config
from jackpot_be.utils.outcome_generator import OutcomeGenerator


@pytest.fixture
def config():
    return default_config()


@pytest.fixture
def generator():
    return OutcomeGenerator(rng=random.Random(1234))


class TestEvaluate:

    def test_three_cherries_pay_ten_times_the_bet(self, generator, config):
        outcome = generator.evaluate(CHERRY_ROW, Decimal('1.00'), config)

        assert outcome.win_amount == Decimal('10.00')
        assert outcome.is_win
        assert len(outcome.winning_lines) == 1
        line = outcome.winning_lines[0]
        assert line.kind == LINE_KIND_ROW
        assert line.index == 0
        assert line.symbols == ('Cherry', 'Cherry', 'Cherry')
        assert line.combination == 'Cherry'
        assert line.amount == Decimal('10.00')

    def test_mixed_row_loses(self, generator, config):
        outcome = generator.evaluate(LOSING_ROW, Decimal('2.00'), config)
        assert outcome.win_amount == Decimal('0.00')
        assert outcome.winning_lines == ()
        assert not outcome.is_win

    def test_every_uniform_row_pays(self, generator):
        config = default_config(rows_count=3)
        reels = [
            ['Lemon', 'Lemon', 'Lemon'],
            ['Cherry', 'Orange', 'Cherry'],
            ['Watermelon', 'Watermelon', 'Watermelon'],
        ]
        outcome = generator.evaluate(reels, Decimal('1.50'), config)

        assert [line.index for line in outcome.winning_lines] == [0, 2]
        assert outcome.win_amount == Decimal('30.00') + Decimal('60.00')

    def test_single_reel_every_row_wins(self, generator):
        config = default_config(reels_count=1, rows_count=2)
        outcome = generator.evaluate([['Orange'], ['Cherry']], Decimal('1.00'), config)

        assert outcome.win_amount == Decimal('40.00')
        assert [line.combination for line in outcome.winning_lines] == ['Orange', 'Cherry']

    def test_zero_coefficient_symbol_does_not_win(self, generator):
        from jackpot_be.dto import PayoutConfig
        config = PayoutConfig.from_table({'Blank': Decimal('0'), 'Bell': Decimal('3')}, 3, 1, 1, 5)
        outcome = generator.evaluate([['Blank', 'Blank', 'Blank']], Decimal('1.00'), config)
        assert not outcome.is_win
        assert outcome.winning_lines == ()

    def test_win_is_rounded_to_cents(self, generator):
        from jackpot_be.dto import PayoutConfig
        config = PayoutConfig.from_table({'Star': Decimal('1.333')}, 3, 1, Decimal('0.01'), 5)
        outcome = generator.evaluate([['Star'] * 3], Decimal('1.00'), config)
        assert outcome.win_amount == Decimal('1.33')

    @pytest.mark.parametrize("reels", [
        [],
        [['Cherry', 'Cherry']],
        [['Cherry', 'Cherry', 'Plum']],
        [['Cherry'] * 3, ['Cherry'] * 3],
    ])
    def test_rejects_malformed_matrix(self, generator, config, reels):
        with pytest.raises(ValueError):
            generator.evaluate(reels, Decimal('1.00'), config)


class TestDraw:

    def test_draw_shape_and_symbols(self, generator):
        config = default_config(reels_count=5, rows_count=3)
        outcome = generator.draw(Decimal('1.00'), config)

        assert len(outcome.reels) == 3
        assert all(len(row) == 5 for row in outcome.reels)
        assert all(symbol in config.symbols for row in outcome.reels for symbol in row)
        assert outcome.bet_amount == Decimal('1.00')

    def test_draw_is_roughly_uniform(self, generator, config):
        counts = Counter()
        for _ in range(2000):
            for row in generator.draw_reels(config):
                counts.update(row)

        assert set(counts) == set(config.symbols)
        expected = 2000 * 3 / len(config.symbols)
        for symbol in config.symbols:
            assert abs(counts[symbol] - expected) < expected * 0.15

    def test_default_rng_is_system_random(self):
        assert isinstance(OutcomeGenerator().rng, random.SystemRandom)

    def test_draw_win_matches_evaluation(self, generator, config):
        for _ in range(200):
            outcome = generator.draw(Decimal('2.00'), config)
            expected = generator.evaluate(outcome.reels, Decimal('2.00'), config)
            assert outcome.win_amount == expected.win_amount


class WatermelonScatter(OutcomeGenerator):
    """Pays 2x the bet whenever three or more Watermelons show anywhere."""

    def evaluate_scatter(self, reels, bet_amount, config):
        count = sum(row.count('Watermelon') for row in reels)
        if count < 3:
            return None
        return WinningLine(kind=LINE_KIND_SCATTER, count=count, symbols=('Watermelon',) * count,
                           amount=to_money(bet_amount * 2), combination='Watermelon')


class TestScatterHook:

    def test_base_generator_pays_no_scatter(self, generator):
        config = default_config(rows_count=3)
        reels = [['Watermelon', 'Cherry', 'Lemon']] * 3
        outcome = generator.evaluate(reels, Decimal('1.00'), config)
        assert not outcome.is_win

    def test_scatter_override_adds_a_line(self):
        config = default_config(rows_count=3)
        reels = [['Watermelon', 'Cherry', 'Lemon']] * 3
        outcome = WatermelonScatter().evaluate(reels, Decimal('1.00'), config)

        assert outcome.win_amount == Decimal('2.00')
        assert outcome.winning_lines[-1].kind == LINE_KIND_SCATTER
        assert outcome.winning_lines[-1].count == 3

    def test_scatter_is_added_after_rows(self):
        config = default_config(rows_count=3)
        reels = [['Watermelon'] * 3, ['Cherry', 'Lemon', 'Orange'], ['Cherry', 'Lemon', 'Orange']]
        outcome = WatermelonScatter().evaluate(reels, Decimal('1.00'), config)

        assert [line.kind for line in outcome.winning_lines] == [LINE_KIND_ROW, LINE_KIND_SCATTER]
        assert outcome.win_amount == Decimal('42.00')
