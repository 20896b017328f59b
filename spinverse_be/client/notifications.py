"""
Live feed of other players' wins, fed by the server broadcasts.
"""
import logging
import time
from collections import deque
from typing import Any, Dict, List, Optional

from .balance import log_notifier

logger = logging.getLogger(__name__)

FEED_SIZE = 10
RECENT_WINS = 5


def format_amount(amount) -> str:
    return f"${float(amount):,.2f}"


class WinFeed:
    def __init__(self, channel, notifier=None, clock=time.time):
        self.channel = channel
        self.notify = notifier or log_notifier
        self.clock = clock
        self.notifications = deque(maxlen=FEED_SIZE)
        channel.on('win_notification', self._on_win)
        channel.on('jackpot_notification', self._on_jackpot)

    def _record(self, data: Dict[str, Any], is_jackpot: bool) -> Optional[Dict[str, Any]]:
        if not data:
            return None
        entry = dict(data, timestamp=self.clock(), isJackpot=is_jackpot)
        self.notifications.append(entry)
        return entry

    def _on_win(self, data):
        entry = self._record(data, is_jackpot=False)
        if entry:
            self.notify('New Win!',
                        f"{entry.get('username')} just won {format_amount(entry.get('amount', 0))} on {entry.get('game')}!")

    def _on_jackpot(self, data):
        entry = self._record(data, is_jackpot=True)
        if entry:
            self.notify('JACKPOT WINNER!',
                        f"{entry.get('username')} just won a massive {format_amount(entry.get('amount', 0))} "
                        f"jackpot on {entry.get('game')}!",
                        variant='jackpot')

    @property
    def recent_wins(self) -> List[Dict[str, Any]]:
        """Latest five notifications, newest first."""
        return list(reversed(self.notifications))[:RECENT_WINS]
