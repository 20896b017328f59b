from spinverse_be.catalog import seed_catalog, slugify, CATEGORIES, GAMES
from spinverse_be.models import db, Game, Category
from spinverse_be.error_codes import ErrorCodes
from spinverse_be.tests.test_api import BaseTestCase


class CatalogSeedTests(BaseTestCase):

    def test_slugify(self):
        self.assertEqual(slugify("Gems & Jewels"), "gems-jewels")
        self.assertEqual(slugify("  Wild Jackpot!  "), "wild-jackpot")

    def test_seed_is_idempotent(self):
        self.assertEqual(seed_catalog(), len(GAMES))
        self.assertEqual(seed_catalog(), 0)
        self.assertEqual(Category.query.count(), len(CATEGORIES))
        self.assertEqual(Game.query.count(), len(GAMES))

    def test_jackpot_games_keep_their_slug(self):
        seed_catalog()
        game = Game.query.filter_by(slug='wild-jackpot').one()
        self.assertEqual(game.category, 'jackpot')
        self.assertEqual(game.category_ref.slug, 'all-slots')


class GamesApiTests(BaseTestCase):

    def setUp(self):
        super().setUp()
        seed_catalog()

    def test_list_games(self):
        response = self.client.get('/api/games')
        data = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(data), len(GAMES))
        self.assertEqual(data[0]['title'], 'Fortune Spinner')
        self.assertIn('isFeatured', data[0])

    def test_inactive_games_hidden(self):
        game = Game.query.filter_by(slug='fortune-spinner').one()
        game.is_active = False
        db.session.commit()

        titles = [g['title'] for g in self.client.get('/api/games').get_json()]
        self.assertNotIn('Fortune Spinner', titles)
        self.assertEqual(self.client.get(f'/api/games/{game.id}').status_code, 404)

    def test_get_game(self):
        game = Game.query.filter_by(slug='mega-millions').one()
        data = self.client.get(f'/api/games/{game.id}').get_json()
        self.assertEqual(data['title'], 'Mega Millions')
        self.assertTrue(data['isJackpot'])
        self.assertEqual(data['jackpotAmount'], 1245750.0)

    def test_get_unknown_game(self):
        response = self.client.get('/api/games/9999')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()['error_code'], ErrorCodes.GAME_NOT_FOUND)

    def test_games_by_category(self):
        classic = Category.query.filter_by(slug='classic').one()
        titles = {g['title'] for g in self.client.get(f'/api/games/category/{classic.id}').get_json()}
        self.assertEqual(titles, {'Lucky Sevens', 'Classic Slots'})

    def test_unknown_category(self):
        response = self.client.get('/api/games/category/999')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()['status_message'], 'Category not found')

    def test_categories(self):
        data = self.client.get('/api/categories').get_json()
        self.assertEqual([c['slug'] for c in data], [c['slug'] for c in CATEGORIES])

    def test_search_title_and_provider(self):
        titles = {g['title'] for g in self.client.get('/api/search?q=lucky').get_json()}
        self.assertEqual(titles, {'Fortune Spinner', 'Lucky Sevens'})

    def test_search_too_short(self):
        response = self.client.get('/api/search?q=a')
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.get_json()['details']['errors']['q'],
                         ["Search query must be at least 2 characters"])

    def test_flag_listings(self):
        featured = {g['title'] for g in self.client.get('/api/featured').get_json()}
        self.assertEqual(featured, {'Fortune Spinner', 'Golden Treasures', 'Wild Jackpot', 'Diamond Deluxe'})

        jackpots = {g['title'] for g in self.client.get('/api/jackpots').get_json()}
        self.assertEqual(jackpots, {'Wild Jackpot', 'Mega Millions'})

        popular = {g['title'] for g in self.client.get('/api/popular').get_json()}
        self.assertEqual(popular, {'Golden Treasures', 'Diamond Deluxe'})

        new = {g['title'] for g in self.client.get('/api/new').get_json()}
        self.assertEqual(new, {'Fortune Spinner', 'Royal Flush'})
