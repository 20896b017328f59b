"""
Starter lobby catalog loaded by `flask seed-catalog`.
"""
import re
from decimal import Decimal

from spinverse_be.models import db, Category, Game

CATEGORIES = [
    {'id': 1, 'name': 'All Slots', 'slug': 'all-slots', 'description': 'All slot games available'},
    {'id': 2, 'name': 'New Games', 'slug': 'new', 'description': 'Latest releases'},
    {'id': 3, 'name': 'Popular', 'slug': 'popular', 'description': 'Most played games'},
    {'id': 4, 'name': 'Live Games', 'slug': 'live', 'description': 'Live dealer games'},
    {'id': 5, 'name': 'Megaways', 'slug': 'megaways', 'description': 'Games with Megaways mechanic'},
    {'id': 6, 'name': 'Table Games', 'slug': 'table', 'description': 'Casino table games'},
    {'id': 7, 'name': 'Bonus Buy', 'slug': 'bonus', 'description': 'Games with bonus buy feature'},
    {'id': 8, 'name': 'Classic Slots', 'slug': 'classic', 'description': 'Traditional slot games'},
]

# (title, provider, category slug, featured, popular, jackpot, new, jackpot amount)
GAMES = [
    ('Fortune Spinner', 'Lucky Games', 'all-slots', True, False, False, True, None),
    ('Golden Treasures', 'Spin Masters', 'popular', True, True, False, False, None),
    ('Wild Jackpot', 'Casino Kings', 'jackpot', True, False, True, False, 387500),
    ('Lucky Sevens', 'Vegas Slots', 'classic', False, False, False, False, None),
    ('Diamond Deluxe', 'Premium Games', 'all-slots', True, True, False, False, None),
    ('Mystic Fortunes', 'Galaxy Gaming', 'all-slots', False, False, False, False, None),
    ('Royal Flush', 'Casino Masters', 'new', False, False, False, True, None),
    ('Gems & Jewels', 'Supreme Slots', 'all-slots', False, False, False, False, None),
    ('Mega Millions', 'Fortune Games', 'jackpot', False, False, True, False, 1245750),
    ('Classic Slots', 'Retro Gaming', 'classic', False, False, False, False, None),
]


def slugify(title):
    return re.sub(r'[^a-z0-9]+', '-', title.lower()).strip('-')


def seed_catalog():
    """Insert the starter categories and games that are not present yet. Returns the number of games added."""
    categories = {}
    for data in CATEGORIES:
        category = Category.query.filter_by(slug=data['slug']).first()
        if category is None:
            category = Category(**data)
            db.session.add(category)
        categories[data['slug']] = category
    db.session.flush()

    added = 0
    for index, (title, provider, category_slug, featured, popular, jackpot, new, jackpot_amount) in enumerate(GAMES, start=1):
        slug = slugify(title)
        if Game.query.filter_by(slug=slug).first():
            continue
        # Jackpot titles are listed under All Slots but keep their own filter slug
        category = categories.get(category_slug, categories['all-slots'])
        db.session.add(Game(
            title=title,
            slug=slug,
            provider=provider,
            image=f'https://placehold.co/300x200/1e293b/e2e8f0?text=Game+{index}',
            category_id=category.id,
            category=category_slug,
            is_featured=featured,
            is_popular=popular,
            is_jackpot=jackpot,
            is_new=new,
            jackpot_amount=Decimal(jackpot_amount) if jackpot_amount else None,
        ))
        added += 1

    db.session.commit()
    return added
