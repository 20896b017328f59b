from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from spinverse_be.models import db, Promotion
from spinverse_be.tests.test_api import BaseTestCase
from spinverse_be.utils.promotion_helpers import (
    is_promotion_available_today,
    can_user_use_promotion,
    get_available_days_display,
    local_weekday,
)

# Friday 2024-03-15 20:00 UTC is already Saturday 07:00 in Sydney
FRIDAY_EVENING_UTC = datetime(2024, 3, 15, 20, 0, tzinfo=timezone.utc)


def make_promotion(active=True, tz='Australia/Sydney', days=None, max_usage=None):
    return SimpleNamespace(id=1, active=active, timezone=tz, days_of_week=days if days is not None else [],
                           max_usage_per_day=max_usage)


def test_local_weekday_uses_sunday_zero():
    assert local_weekday(datetime(2024, 3, 17, 12, tzinfo=timezone.utc), 'UTC') == 0
    assert local_weekday(datetime(2024, 3, 16, 12, tzinfo=timezone.utc), 'UTC') == 6


def test_weekday_is_taken_in_promotion_timezone():
    saturday_only = make_promotion(days=[6])
    assert is_promotion_available_today(saturday_only, now=FRIDAY_EVENING_UTC) is True

    friday_only = make_promotion(days=[5])
    assert is_promotion_available_today(friday_only, now=FRIDAY_EVENING_UTC) is False
    assert is_promotion_available_today(make_promotion(tz='UTC', days=[5]), now=FRIDAY_EVENING_UTC) is True


@pytest.mark.parametrize("days", [[0, 1, 2, 3, 4, 5, 6], [6], []])
def test_inactive_promotion_never_available(days):
    assert is_promotion_available_today(make_promotion(active=False, days=days), now=FRIDAY_EVENING_UTC) is False


def test_unknown_timezone_fails_open(caplog):
    promotion = make_promotion(tz='Mars/Olympus_Mons', days=[])
    assert is_promotion_available_today(promotion, now=FRIDAY_EVENING_UTC) is True
    assert any('Error checking promotion availability' in rec.message for rec in caplog.records)


def test_can_user_use_requires_availability():
    assert can_user_use_promotion(make_promotion(days=[5]), user_id=1, now=FRIDAY_EVENING_UTC) is False
    assert can_user_use_promotion(make_promotion(days=[6]), user_id=1, now=FRIDAY_EVENING_UTC) is True


def test_can_user_use_respects_daily_cap():
    promotion = make_promotion(days=[6], max_usage=2)
    with patch('spinverse_be.utils.promotion_helpers.get_user_promotion_usage_today', return_value=2):
        assert can_user_use_promotion(promotion, user_id=1, now=FRIDAY_EVENING_UTC) is False
    with patch('spinverse_be.utils.promotion_helpers.get_user_promotion_usage_today', return_value=1):
        assert can_user_use_promotion(promotion, user_id=1, now=FRIDAY_EVENING_UTC) is True


def test_missing_cap_defaults_to_one_use():
    promotion = make_promotion(days=[6], max_usage=None)
    with patch('spinverse_be.utils.promotion_helpers.get_user_promotion_usage_today', return_value=1):
        assert can_user_use_promotion(promotion, user_id=1, now=FRIDAY_EVENING_UTC) is False


@pytest.mark.parametrize("days, expected", [
    ([], "No days selected"),
    (None, "No days selected"),
    ([0, 1, 2, 3, 4, 5, 6], "Every day"),
    ([1, 3, 5], "Monday, Wednesday, Friday"),
])
def test_available_days_display(days, expected):
    assert get_available_days_display(days) == expected


class PromotionApiTests(BaseTestCase):

    def setUp(self):
        super().setUp()
        self.every_day = Promotion(title="Daily Spins", days_of_week=list(range(7)), timezone='UTC')
        self.no_days = Promotion(title="Never", days_of_week=[], timezone='UTC')
        self.inactive = Promotion(title="Retired", days_of_week=list(range(7)), active=False)
        db.session.add_all([self.every_day, self.no_days, self.inactive])
        db.session.commit()

    def test_list_active_promotions(self):
        response = self.client.get('/api/promotions')
        data = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p['title'] for p in data], ["Daily Spins", "Never"])
        self.assertTrue(data[0]['availableToday'])
        self.assertEqual(data[0]['availableDays'], "Every day")
        self.assertFalse(data[1]['availableToday'])
        self.assertEqual(data[1]['availableDays'], "No days selected")

    def test_eligibility_requires_login(self):
        response = self.client.get(f'/api/promotions/{self.every_day.id}/eligibility')
        self.assertEqual(response.status_code, 401)

    def test_eligibility(self):
        self._create_user()
        self._login()
        response = self.client.get(f'/api/promotions/{self.every_day.id}/eligibility')
        self.assertEqual(response.get_json(), {
            'promotionId': self.every_day.id,
            'availableToday': True,
            'canUse': True
        })

        response = self.client.get(f'/api/promotions/{self.inactive.id}/eligibility')
        self.assertFalse(response.get_json()['canUse'])

    def test_eligibility_unknown_promotion(self):
        self._create_user()
        self._login()
        response = self.client.get('/api/promotions/999/eligibility')
        self.assertEqual(response.status_code, 404)
