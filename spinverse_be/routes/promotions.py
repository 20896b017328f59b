from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, current_user

from spinverse_be.models import db, Promotion
from spinverse_be.schemas import PromotionSchema
from spinverse_be.utils.promotion_helpers import is_promotion_available_today, can_user_use_promotion
from spinverse_be.exceptions import NotFoundException

promotions_bp = Blueprint('promotions', __name__, url_prefix='/api/promotions')

@promotions_bp.route('', methods=['GET'])
def get_promotions():
    promotions = Promotion.query.filter_by(active=True).order_by(Promotion.id).all()
    result = []
    for promotion in promotions:
        data = PromotionSchema().dump(promotion)
        data['availableToday'] = is_promotion_available_today(promotion)
        result.append(data)
    return jsonify(result), 200

@promotions_bp.route('/<int:promotion_id>/eligibility', methods=['GET'])
@jwt_required()
def get_promotion_eligibility(promotion_id):
    promotion = db.session.get(Promotion, promotion_id)
    if not promotion:
        raise NotFoundException("Promotion not found")

    return jsonify({
        'promotionId': promotion.id,
        'availableToday': is_promotion_available_today(promotion),
        'canUse': can_user_use_promotion(promotion, current_user.id)
    }), 200
