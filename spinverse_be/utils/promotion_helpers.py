"""
Promotion eligibility checks.

Weekdays follow the JavaScript convention stored by the admin dashboard:
0 = Sunday ... 6 = Saturday.
"""
import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def local_weekday(now, tz_name):
    """Weekday index (0 = Sunday) of `now` seen from `tz_name`."""
    local = now.astimezone(ZoneInfo(tz_name))
    return (local.weekday() + 1) % 7


def is_promotion_available_today(promotion, now=None):
    """
    True when the promotion is active and today, in the promotion's own
    timezone, is one of its configured days.

    A timezone that cannot be resolved is logged and treated as available.
    """
    if not promotion.active:
        return False

    now = now or datetime.now(timezone.utc)
    try:
        day_of_week = local_weekday(now, promotion.timezone)
        days = promotion.days_of_week
        return isinstance(days, (list, tuple)) and day_of_week in days
    except Exception as e:
        logger.error(f"Error checking promotion availability for promotion {getattr(promotion, 'id', None)}: {e}")
        return True


def get_user_promotion_usage_today(promotion, user_id):
    """
    Number of times `user_id` claimed `promotion` today.

    Usage is not recorded anywhere yet, so this always reports 0 and the
    daily cap never blocks a user.
    """
    return 0


def can_user_use_promotion(promotion, user_id, now=None):
    if not is_promotion_available_today(promotion, now=now):
        return False

    max_usage = promotion.max_usage_per_day or 1
    return get_user_promotion_usage_today(promotion, user_id) < max_usage


def get_available_days_display(days_of_week):
    """Human readable list of days, e.g. "Monday, Wednesday, Friday"."""
    if not isinstance(days_of_week, (list, tuple)) or not days_of_week:
        return "No days selected"

    if len(days_of_week) == 7 and set(days_of_week) == set(range(7)):
        return "Every day"

    return ", ".join(DAY_NAMES[day] for day in days_of_week if 0 <= day < len(DAY_NAMES))
