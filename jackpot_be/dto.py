"""
Value objects shared by the settlement engine, the session stores and the API layer.

All monetary amounts are ``Decimal`` values quantized to cents. Everything here is
immutable: settlement produces new ``Session`` values instead of editing stored ones.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

MONEY_QUANTUM = Decimal('0.01')
MULTIPLIER_QUANTUM = Decimal('0.0001')

LINE_KIND_ROW = 'row'
LINE_KIND_SCATTER = 'scatter'


def utcnow():
    return datetime.now(timezone.utc)


def to_money(value) -> Decimal:
    """Converts ints, strings, floats or Decimals to a cent-quantized Decimal."""
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Monetary amount must be finite, got {value!r}")
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def has_cent_precision(value: Decimal) -> bool:
    return value == value.quantize(MONEY_QUANTUM)


@dataclass(frozen=True)
class PayoutConfig:
    """Symbol payout table plus reel layout and bet bounds.

    Built once at startup and shared read-only. ``payout`` maps each symbol to the
    coefficient applied to the bet when a full row shows that symbol.
    """
    symbols: Tuple[str, ...]
    payout: Mapping[str, Decimal]
    reels_count: int
    rows_count: int
    min_bet: Decimal
    max_bet: Decimal

    def __post_init__(self):
        symbols = tuple(self.symbols)
        if not symbols:
            raise ValueError("Payout table must define at least one symbol.")
        if len(set(symbols)) != len(symbols):
            raise ValueError(f"Symbols must be unique, got {list(symbols)}.")
        for symbol in symbols:
            if not isinstance(symbol, str) or not symbol.strip():
                raise ValueError(f"Symbol ids must be non-empty strings, got {symbol!r}.")

        payout = {}
        for symbol in symbols:
            if symbol not in self.payout:
                raise ValueError(f"No payout coefficient configured for symbol '{symbol}'.")
            try:
                coefficient = Decimal(str(self.payout[symbol]))
            except InvalidOperation:
                raise ValueError(f"Payout coefficient for '{symbol}' is not numeric: {self.payout[symbol]!r}.")
            if not coefficient.is_finite() or coefficient < 0:
                raise ValueError(f"Payout coefficient for '{symbol}' must be a non-negative number.")
            payout[symbol] = coefficient
        extra = set(self.payout) - set(symbols)
        if extra:
            raise ValueError(f"Payout coefficients given for unknown symbols: {sorted(extra)}.")

        for name in ('reels_count', 'rows_count'):
            count = getattr(self, name)
            if isinstance(count, bool) or not isinstance(count, int) or count < 1:
                raise ValueError(f"{name} must be a positive integer, got {count!r}.")

        min_bet = to_money(self.min_bet)
        max_bet = to_money(self.max_bet)
        if min_bet <= 0 or max_bet <= 0:
            raise ValueError("Bet bounds must be positive.")
        if min_bet > max_bet:
            raise ValueError(f"min_bet ({min_bet}) must not exceed max_bet ({max_bet}).")

        object.__setattr__(self, 'symbols', symbols)
        object.__setattr__(self, 'payout', MappingProxyType(payout))
        object.__setattr__(self, 'min_bet', min_bet)
        object.__setattr__(self, 'max_bet', max_bet)

    @classmethod
    def from_table(cls, table, reels_count, rows_count, min_bet, max_bet):
        """Builds a config whose symbol order follows the table's insertion order."""
        return cls(
            symbols=tuple(table.keys()),
            payout=dict(table),
            reels_count=reels_count,
            rows_count=rows_count,
            min_bet=min_bet,
            max_bet=max_bet,
        )

    def coefficient(self, symbol) -> Decimal:
        return self.payout[symbol]

    def accepts_bet(self, bet_amount) -> bool:
        return self.min_bet <= bet_amount <= self.max_bet


@dataclass(frozen=True)
class WinningLine:
    kind: str
    amount: Decimal
    index: Optional[int] = None
    count: Optional[int] = None
    symbols: Tuple[str, ...] = ()
    combination: str = ''


@dataclass(frozen=True)
class SpinOutcome:
    reels: Tuple[Tuple[str, ...], ...]
    bet_amount: Decimal
    win_amount: Decimal
    winning_lines: Tuple[WinningLine, ...] = ()
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_win(self) -> bool:
        return self.win_amount > 0

    @property
    def multiplier(self) -> Decimal:
        if self.bet_amount <= 0:
            return Decimal('0.0000')
        return (self.win_amount / self.bet_amount).quantize(MULTIPLIER_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Session:
    session_id: str
    balance: Decimal
    total_bet: Decimal = Decimal('0.00')
    total_win: Decimal = Decimal('0.00')
    created_at: datetime = field(default_factory=utcnow)
    last_activity: Optional[datetime] = None
    is_active: bool = True

    def __post_init__(self):
        if self.last_activity is None:
            object.__setattr__(self, 'last_activity', self.created_at)

    def settled(self, outcome: SpinOutcome, now=None) -> 'Session':
        """Returns this session with one spin's bet debited and win credited."""
        return replace(
            self,
            balance=self.balance - outcome.bet_amount + outcome.win_amount,
            total_bet=self.total_bet + outcome.bet_amount,
            total_win=self.total_win + outcome.win_amount,
            last_activity=now or utcnow(),
        )

    def touched(self, now=None) -> 'Session':
        return replace(self, last_activity=now or utcnow())

    def reactivated(self, now=None) -> 'Session':
        return replace(self, is_active=True, last_activity=now or utcnow())

    def closed(self, now=None, zero_balance=False) -> 'Session':
        changes = {'is_active': False, 'last_activity': now or utcnow()}
        if zero_balance:
            changes['balance'] = Decimal('0.00')
        return replace(self, **changes)


@dataclass(frozen=True)
class SpinSettlement:
    """What ``spin`` hands back: the outcome actually settled and the persisted session."""
    outcome: SpinOutcome
    session: Session
    session_closed: bool = False

    @property
    def current_balance(self) -> Decimal:
        return self.session.balance


@dataclass(frozen=True)
class CashoutResult:
    session_id: str
    amount: Decimal
    initial_balance: Decimal
    total_bet: Decimal
    total_win: Decimal
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def net_profit(self) -> Decimal:
        return self.amount - self.initial_balance

    @property
    def is_profit(self) -> bool:
        return self.net_profit > 0
