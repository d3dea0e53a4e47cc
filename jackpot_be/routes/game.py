from flask import Blueprint, request, jsonify, current_app
from datetime import datetime, timezone

from jackpot_be.schemas import (
    CreateSessionSchema, SpinRequestSchema, CashoutRequestSchema,
    PayoutConfigSchema, SessionSchema, SpinOutcomeSchema, CashoutResultSchema
)
from jackpot_be.utils.rate_limit import limiter, spin_rate_limit
from jackpot_be.exceptions import ValidationException

game_bp = Blueprint('game', __name__, url_prefix='/api/game')

GAME_SERVICE_EXTENSION = 'jackpot_game_service'


def get_game_service():
    return current_app.extensions[GAME_SERVICE_EXTENSION]


def _json_body(allow_empty=False):
    data = request.get_json(silent=True)
    if data is None and allow_empty and not request.get_data():
        return {}
    if not isinstance(data, dict):
        raise ValidationException("Invalid request format: expected a JSON object.")
    return data


@game_bp.route('/ping', methods=['GET'])
def ping():
    return jsonify({'status': True, 'message': 'pong',
                    'timestamp': datetime.now(timezone.utc).isoformat()}), 200


@game_bp.route('/config', methods=['GET'])
def get_config():
    config = get_game_service().get_payout_config()
    return jsonify({'status': True, 'config': PayoutConfigSchema().dump(config)}), 200


@game_bp.route('/session', methods=['POST'])
def create_session():
    data = CreateSessionSchema().load(_json_body(allow_empty=True))
    session = get_game_service().create_session(data.get('initial_balance'))
    return jsonify({'status': True, 'session': SessionSchema().dump(session)}), 201


@game_bp.route('/session/<session_id>', methods=['GET'])
def get_session(session_id):
    session = get_game_service().get_session(session_id)
    return jsonify({'status': True, 'session': SessionSchema().dump(session)}), 200


@game_bp.route('/spin', methods=['POST'])
@limiter.limit(spin_rate_limit)
def spin():
    data = SpinRequestSchema().load(_json_body())
    settlement = get_game_service().spin(data['session_id'], data['bet_amount'])

    response = {
        'status': True,
        'outcome': SpinOutcomeSchema().dump(settlement.outcome),
        'currentBalance': float(settlement.current_balance),
        'sessionClosed': settlement.session_closed,
    }
    if settlement.session_closed:
        response['message'] = 'Your balance has reached zero. The session has been closed.'
    return jsonify(response), 200


@game_bp.route('/cashout', methods=['POST'])
def cashout():
    data = CashoutRequestSchema().load(_json_body())
    result = get_game_service().cash_out(data['session_id'])
    return jsonify({
        'status': True,
        'cashout': CashoutResultSchema().dump(result),
        'message': f"Cashed out {result.amount} credits."
    }), 200
