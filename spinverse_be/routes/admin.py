from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import create_access_token, current_user
from datetime import datetime, timezone
from sqlalchemy import func, or_

from ..models import db, User, UserBalance, Transaction, Promotion
from ..schemas import (
    AdminUserSchema, AdminLoginSchema, AdminBalanceAdjustSchema, PaginationSchema,
    PlayerSchema, PromotionSchema, PromotionCreateSchema, TransactionSchema
)
from ..services.balance_service import apply_balance_change
from ..services.websocket_manager import websocket_manager
from ..utils.decorators import admin_required
from ..utils.progressive_rate_limit import progressive_rate_limit, reset_login_strikes
from ..utils.security_logger import SecurityLogger
from ..exceptions import AuthenticationException, NotFoundException

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')

@admin_bp.route('/login', methods=['POST'])
@progressive_rate_limit
def admin_login():
    data = AdminLoginSchema().load(request.get_json() or {})
    identifier = data['username'].strip()

    user = User.query.filter(or_(User.username == identifier, User.email == identifier.lower())).first()
    if not user or not user.is_admin or not user.is_active or not user.check_password(data['password']):
        SecurityLogger.log_authentication_event('admin_login', username=identifier, success=False)
        raise AuthenticationException(status_message="Invalid username or password")

    user.last_login_at = datetime.now(timezone.utc)
    db.session.commit()
    reset_login_strikes()

    token = create_access_token(
        identity=user,
        additional_claims={'is_admin': True},
        expires_delta=current_app.config.get('ADMIN_TOKEN_EXPIRES')
    )
    SecurityLogger.log_admin_event('login', admin_user_id=user.id, action='admin_login')
    return jsonify({'token': token, 'user': AdminUserSchema().dump(user)}), 200

@admin_bp.route('/me', methods=['GET'])
@admin_required
def admin_me():
    return jsonify(AdminUserSchema().dump(current_user)), 200

@admin_bp.route('/stats', methods=['GET'])
@admin_required
def admin_stats():
    totals = dict(
        db.session.query(Transaction.type, func.coalesce(func.sum(Transaction.amount), 0))
        .group_by(Transaction.type).all()
    )
    total_bets = float(totals.get('bet', 0))
    total_wins = float(totals.get('win', 0))
    stats = {
        'totalUsers': db.session.query(func.count(User.id)).scalar(),
        'activeUsers': db.session.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar(),
        'totalTransactions': db.session.query(func.count(Transaction.id)).scalar(),
        'totalBalance': float(db.session.query(func.coalesce(func.sum(UserBalance.balance), 0)).scalar()),
        'totalBets': total_bets,
        'totalWins': total_wins,
        'totalDeposits': float(totals.get('deposit', 0)),
        'totalWithdrawals': float(totals.get('withdraw', 0)),
        'grossGamingRevenue': total_bets - total_wins,
        'onlineUsers': websocket_manager.get_connected_users_count(),
    }
    return jsonify(stats), 200

@admin_bp.route('/players', methods=['GET'])
@admin_required
def admin_get_players():
    args = PaginationSchema().load(request.args)
    page = User.query.order_by(User.created_at.desc()).paginate(
        page=args['page'], per_page=args['per_page'], error_out=False
    )
    return jsonify({
        'players': PlayerSchema(many=True).dump(page.items),
        'page': page.page,
        'pages': page.pages,
        'total': page.total
    }), 200

@admin_bp.route('/players/<int:user_id>/balance', methods=['POST'])
@admin_required
def admin_adjust_balance(user_id):
    player = db.session.get(User, user_id)
    if not player:
        raise NotFoundException("Player not found")

    data = AdminBalanceAdjustSchema().load(request.get_json() or {})
    action = 'deposit' if data['type'] == 'add' else 'withdraw'
    record, transaction = apply_balance_change(player, action, data['amount'])

    SecurityLogger.log_admin_event(
        'balance_adjustment', admin_user_id=current_user.id, target_user_id=player.id,
        action=data['type'],
        details={'amount': float(data['amount']), 'reason': data['reason'],
                 'previous_balance': float(transaction.balance_before), 'new_balance': float(record.balance)}
    )
    websocket_manager.notify_balance_changed(player.id, record.balance)

    return jsonify({
        'message': f"Balance {'increased' if data['type'] == 'add' else 'decreased'} successfully",
        'newBalance': float(record.balance),
        'transaction': TransactionSchema().dump(transaction)
    }), 200

@admin_bp.route('/promotions', methods=['GET'])
@admin_required
def admin_get_promotions():
    promotions = Promotion.query.order_by(Promotion.created_at.desc()).all()
    return jsonify(PromotionSchema(many=True).dump(promotions)), 200

@admin_bp.route('/promotions', methods=['POST'])
@admin_required
def admin_create_promotion():
    data = PromotionCreateSchema().load(request.get_json() or {})
    promotion = Promotion(**data)
    db.session.add(promotion)
    db.session.commit()

    SecurityLogger.log_admin_event('promotion_created', admin_user_id=current_user.id,
                                   action='create_promotion', details={'promotion_id': promotion.id})
    return jsonify(PromotionSchema().dump(promotion)), 201
