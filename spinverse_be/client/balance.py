"""
Client-side mirror of a player's balance.

Every change goes through the backend first; the local value only moves to
what the server answered, so a failed request never needs a rollback.
"""
import logging
import threading
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from .exceptions import ClientError, TransactionError

logger = logging.getLogger(__name__)

BALANCE_PATH = '/api/balance'
WIN_BROADCAST_THRESHOLD = Decimal('10')
JACKPOT_BROADCAST_THRESHOLD = Decimal('1000')

Notifier = Callable[..., None]


def _to_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def log_notifier(title, description, variant='default'):
    level = logging.WARNING if variant == 'destructive' else logging.INFO
    logger.log(level, "%s: %s", title, description)


class BalanceService:
    def __init__(self, api, channel, user: Optional[Dict[str, Any]] = None, initial_balance=1000,
                 notifier: Optional[Notifier] = None, game_label: str = "Slots"):
        self.api = api
        self.channel = channel
        self.user = user
        self.balance = _to_decimal(initial_balance)
        self.notify = notifier or log_notifier
        self.game_label = game_label
        self._pending = 0
        self._lock = threading.Lock()
        self.channel.on('balance_changed', self._on_balance_changed)

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    def load(self) -> Decimal:
        """Fetch the server balance, keeping the current value if the request fails."""
        try:
            data = self.api.get(BALANCE_PATH)
        except ClientError as e:
            logger.error("Failed to fetch balance: %s", e)
            return self.balance
        if data.get('balance') is not None:
            self.balance = _to_decimal(data['balance'])
        return self.balance

    def refresh(self) -> Decimal:
        self.api.invalidate(BALANCE_PATH)
        return self.load()

    def update_balance(self, delta) -> Decimal:
        """Adjust the local value only, without telling the server."""
        self.balance += _to_decimal(delta)
        return self.balance

    def _on_balance_changed(self, data):
        if not data or data.get('balance') is None:
            return
        self.balance = _to_decimal(data['balance'])
        self.api.invalidate(BALANCE_PATH)

    def _transact(self, action: str, amount: Decimal) -> Dict[str, Any]:
        with self._lock:
            self._pending += 1
        try:
            data = self.api.post(BALANCE_PATH, {'amount': float(amount), 'action': action})
        finally:
            with self._lock:
                self._pending -= 1
        if not data or data.get('balance') is None:
            raise TransactionError(f"Balance missing from {action} response", payload=data)
        self.balance = _to_decimal(data['balance'])
        self.api.invalidate(BALANCE_PATH)
        return data

    def place_bet(self, amount) -> bool:
        amount = _to_decimal(amount)
        if self.balance < amount:
            self.notify('Insufficient balance', 'Please add more funds to continue playing.', variant='destructive')
            return False

        try:
            self._transact('bet', amount)
        except ClientError as e:
            self.notify('Error', e.message or 'Failed to update balance', variant='destructive')
            return False

        if self.user:
            self.channel.emit('balance_update', {'userId': self.user['id'], 'balance': float(self.balance)})
        return True

    def add_win(self, amount) -> None:
        amount = _to_decimal(amount)
        if amount <= 0:
            return

        try:
            data = self._transact('win', amount)
        except ClientError as e:
            self.notify('Error', e.message or 'Failed to update balance', variant='destructive')
            return

        last = data.get('lastTransaction') or {}
        if last.get('type') != 'win' or amount < WIN_BROADCAST_THRESHOLD:
            return
        announcement = {
            'username': (self.user or {}).get('username', 'Player'),
            'amount': float(amount),
            'game': self.game_label,
        }
        self.channel.emit('win', announcement)
        if amount >= JACKPOT_BROADCAST_THRESHOLD:
            self.channel.emit('jackpot', announcement)

    def deposit(self, amount) -> bool:
        amount = _to_decimal(amount)
        try:
            self._transact('deposit', amount)
        except ClientError as e:
            self.notify('Error', e.message or 'Deposit failed', variant='destructive')
            return False
        self.notify('Deposit successful', f"{amount:.2f} added to your balance.")
        return True
