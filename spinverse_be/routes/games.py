from flask import Blueprint, request, jsonify
from sqlalchemy import or_

from spinverse_be.models import db, Game, Category
from spinverse_be.schemas import GameSchema, CategorySchema, SearchQuerySchema
from spinverse_be.exceptions import NotFoundException
from spinverse_be.error_codes import ErrorCodes

games_bp = Blueprint('games', __name__, url_prefix='/api')


def _active_games():
    return Game.query.filter_by(is_active=True).order_by(Game.id)


@games_bp.route('/games', methods=['GET'])
def get_games():
    return jsonify(GameSchema(many=True).dump(_active_games().all())), 200

@games_bp.route('/games/<int:game_id>', methods=['GET'])
def get_game(game_id):
    game = db.session.get(Game, game_id)
    if not game or not game.is_active:
        raise NotFoundException("Game not found", error_code=ErrorCodes.GAME_NOT_FOUND)
    return jsonify(GameSchema().dump(game)), 200

@games_bp.route('/games/category/<int:category_id>', methods=['GET'])
def get_games_by_category(category_id):
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFoundException("Category not found")
    games = _active_games().filter(Game.category == category.slug).all()
    return jsonify(GameSchema(many=True).dump(games)), 200

@games_bp.route('/categories', methods=['GET'])
def get_categories():
    categories = Category.query.order_by(Category.id).all()
    return jsonify(CategorySchema(many=True).dump(categories)), 200

@games_bp.route('/search', methods=['GET'])
def search_games():
    query = SearchQuerySchema().load(request.args)['q']
    pattern = f"%{query}%"
    games = _active_games().filter(or_(Game.title.ilike(pattern), Game.provider.ilike(pattern))).all()
    return jsonify(GameSchema(many=True).dump(games)), 200

@games_bp.route('/featured', methods=['GET'])
def get_featured_games():
    return jsonify(GameSchema(many=True).dump(_active_games().filter_by(is_featured=True).all())), 200

@games_bp.route('/jackpots', methods=['GET'])
def get_jackpot_games():
    return jsonify(GameSchema(many=True).dump(_active_games().filter_by(is_jackpot=True).all())), 200

@games_bp.route('/popular', methods=['GET'])
def get_popular_games():
    return jsonify(GameSchema(many=True).dump(_active_games().filter_by(is_popular=True).all())), 200

@games_bp.route('/new', methods=['GET'])
def get_new_games():
    return jsonify(GameSchema(many=True).dump(_active_games().filter_by(is_new=True).all())), 200
