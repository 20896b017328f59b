from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, current_user
from decimal import Decimal

from spinverse_be.models import db
from spinverse_be.schemas import BalanceUpdateSchema, WithdrawSchema, TransactionSchema, TransactionQuerySchema
from spinverse_be.services.balance_service import get_or_create_balance, apply_balance_change, get_transaction_history
from spinverse_be.services.websocket_manager import websocket_manager
from spinverse_be.utils.progressive_rate_limit import withdrawal_rate_limit
from spinverse_be.utils.security_logger import SecurityLogger
from spinverse_be.exceptions import ValidationException
from spinverse_be.error_codes import ErrorCodes

balance_bp = Blueprint('balance', __name__, url_prefix='/api')

@balance_bp.route('/balance', methods=['GET'])
@jwt_required()
def get_balance():
    record = get_or_create_balance(current_user)
    db.session.commit()
    return jsonify({'balance': float(record.balance)}), 200

@balance_bp.route('/balance', methods=['POST'])
@jwt_required()
def update_balance():
    data = BalanceUpdateSchema().load(request.get_json() or {})
    action = data['action']
    amount = data['amount']

    if action == 'bet':
        min_bet = Decimal(str(current_app.config.get('MIN_BET', 0.5)))
        max_bet = Decimal(str(current_app.config.get('MAX_BET', 100)))
        if not min_bet <= amount <= max_bet:
            raise ValidationException(
                f"Bet must be between {min_bet} and {max_bet}",
                details={'amount': float(amount), 'min_bet': float(min_bet), 'max_bet': float(max_bet)},
                error_code=ErrorCodes.INVALID_AMOUNT
            )

    record, transaction = apply_balance_change(current_user, action, amount, game_id=data.get('game_id'))

    # The playing client relays bets and wins itself; deposits come from elsewhere
    if action == 'deposit':
        websocket_manager.notify_balance_changed(current_user.id, record.balance)

    return jsonify({
        'balance': float(record.balance),
        'action': action,
        'amount': float(amount),
        'lastTransaction': TransactionSchema().dump(transaction)
    }), 200

@balance_bp.route('/transactions', methods=['GET'])
@jwt_required()
def get_transactions():
    args = TransactionQuerySchema().load(request.args)
    transactions = get_transaction_history(current_user, limit=args['limit'])
    return jsonify(TransactionSchema(many=True).dump(transactions)), 200

@balance_bp.route('/withdraw', methods=['POST'])
@jwt_required()
@withdrawal_rate_limit()
def withdraw():
    data = WithdrawSchema().load(request.get_json() or {})
    amount = data['amount']

    min_amount = Decimal(str(current_app.config.get('MIN_WITHDRAWAL_AMOUNT', 10)))
    max_amount = Decimal(str(current_app.config.get('MAX_WITHDRAWAL_AMOUNT', 50000)))
    if amount < min_amount:
        raise ValidationException(f"Minimum withdrawal amount is {min_amount}.", error_code=ErrorCodes.INVALID_AMOUNT)
    if amount > max_amount:
        SecurityLogger.log_security_event(
            'large_withdrawal_attempt', severity='high', user_id=current_user.id,
            details={'amount': float(amount)}
        )
        raise ValidationException(f"Maximum withdrawal amount is {max_amount}.", error_code=ErrorCodes.INVALID_AMOUNT)

    record, transaction = apply_balance_change(current_user, 'withdraw', amount)
    websocket_manager.notify_balance_changed(current_user.id, record.balance)

    current_app.logger.info(f"Withdrawal of {amount} by user {current_user.id} recorded as transaction {transaction.id}.")
    return jsonify({
        'status': True,
        'status_message': 'Withdrawal request submitted',
        'balance': float(record.balance),
        'transaction': TransactionSchema().dump(transaction)
    }), 201
