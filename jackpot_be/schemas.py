from marshmallow import Schema, fields
from marshmallow.validate import Length

# --- Request Schemas ---
class CreateSessionSchema(Schema):
    initial_balance = fields.Decimal(data_key='initialBalance', load_default=None, allow_nan=False)

class SpinRequestSchema(Schema):
    session_id = fields.String(data_key='sessionId', required=True, validate=Length(min=1, max=64))
    bet_amount = fields.Decimal(data_key='betAmount', required=True, allow_nan=False)

class CashoutRequestSchema(Schema):
    session_id = fields.String(data_key='sessionId', required=True, validate=Length(min=1, max=64))

# --- Response Schemas ---
class PayoutConfigSchema(Schema):
    symbols = fields.List(fields.String())
    payouts = fields.Method("get_payouts")
    reels_count = fields.Integer(data_key='reelsCount')
    rows_count = fields.Integer(data_key='rowsCount')
    min_bet = fields.Float(data_key='minBet')
    max_bet = fields.Float(data_key='maxBet')

    def get_payouts(self, obj):
        return {symbol: float(obj.payout[symbol]) for symbol in obj.symbols}

class SessionSchema(Schema):
    session_id = fields.String(data_key='sessionId')
    balance = fields.Float()
    total_bet = fields.Float(data_key='totalBet')
    total_win = fields.Float(data_key='totalWin')
    created_at = fields.DateTime(data_key='createdAt')
    last_activity = fields.DateTime(data_key='lastActivity')
    is_active = fields.Boolean(data_key='isActive')

class WinningLineSchema(Schema):
    kind = fields.String(data_key='type')
    index = fields.Integer(allow_none=True)
    count = fields.Integer(allow_none=True)
    symbols = fields.List(fields.String())
    amount = fields.Float(data_key='win')
    combination = fields.String()

class SpinOutcomeSchema(Schema):
    reels = fields.List(fields.List(fields.String()))
    bet_amount = fields.Float(data_key='betAmount')
    win_amount = fields.Float(data_key='winAmount')
    winning_lines = fields.List(fields.Nested(WinningLineSchema), data_key='winningLines')
    is_win = fields.Boolean(data_key='isWin')
    multiplier = fields.Float()
    timestamp = fields.DateTime()

class CashoutResultSchema(Schema):
    session_id = fields.String(data_key='sessionId')
    amount = fields.Float()
    initial_balance = fields.Float(data_key='initialBalance')
    total_bet = fields.Float(data_key='totalBet')
    total_win = fields.Float(data_key='totalWin')
    net_profit = fields.Float(data_key='netProfit')
    is_profit = fields.Boolean(data_key='isProfit')
    timestamp = fields.DateTime()
