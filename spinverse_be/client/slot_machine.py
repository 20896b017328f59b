"""
Five-reel slot machine driven from the client.

A spin places the bet through the balance service, reveals the reels one by
one, pays the middle row and credits any win back through the same service.
Outcomes are drawn locally; the server only records the resulting bet and
win transactions.
"""
import enum
import logging
import random
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

REEL_REVEAL_DELAY = 0.2
SETTLE_DELAY = 0.5
CONSOLATION_CHANCE = 0.2
CONSOLATION_MULTIPLIERS = (1, 5)
MIN_PAYING_RUN = 3
PAYLINE_ROW = 1


@dataclass(frozen=True)
class Symbol:
    id: int
    name: str
    value: int
    image: str


def _icon(group, icon):
    return f"https://cdn-icons-png.flaticon.com/512/{group}/{icon}.png"


SYMBOLS = (
    Symbol(1, 'cherry', 2, _icon(2413, 2413091)),
    Symbol(2, 'lemon', 2, _icon(2413, 2413153)),
    Symbol(3, 'orange', 3, _icon(2413, 2413045)),
    Symbol(4, 'watermelon', 4, _icon(2413, 2413089)),
    Symbol(5, 'bell', 5, _icon(2168, 2168960)),
    Symbol(6, 'seven', 10, _icon(3280, 3280971)),
    Symbol(7, 'diamond', 20, _icon(2168, 2168939)),
    Symbol(8, 'star', 15, _icon(2168, 2168945)),
)


class SpinState(enum.Enum):
    IDLE = 'idle'
    SPINNING = 'spinning'
    SETTLING = 'settling'


@dataclass
class SpinResult:
    symbols: List[List[Symbol]]
    lines: List[List[int]]
    win: Decimal = field(default_factory=Decimal)


def _to_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def find_longest_run(row: Sequence[Symbol]) -> Tuple[Optional[Symbol], int]:
    """Longest run of adjacent identical symbols, scanning left to right. Ties keep the first run."""
    if not row:
        return None, 0
    best_symbol, best_length = row[0], 1
    current_length = 1
    for previous, symbol in zip(row, row[1:]):
        current_length = current_length + 1 if symbol.id == previous.id else 1
        if current_length > best_length:
            best_symbol, best_length = symbol, current_length
    return best_symbol, best_length


def calculate_line_win(row: Sequence[Symbol], bet) -> Decimal:
    symbol, run = find_longest_run(row)
    if symbol is None or run < MIN_PAYING_RUN:
        return Decimal('0')
    return _to_decimal(bet) * symbol.value * (run - 2)


class SlotMachine:
    def __init__(self, balance, channel, reels: int = 5, rows: int = 3, symbols: Sequence[Symbol] = SYMBOLS,
                 initial_bet=1, min_bet=0.5, max_bet=100, bet_step=0.5,
                 rng: Optional[random.Random] = None, sleep: Callable[[float], None] = time.sleep,
                 on_reel_landed: Optional[Callable[[int, List[Symbol]], None]] = None):
        self.balance = balance
        self.channel = channel
        self.reels = reels
        self.rows = rows
        self.symbols = tuple(symbols)
        self.min_bet = _to_decimal(min_bet)
        self.max_bet = _to_decimal(max_bet)
        self.bet_step = _to_decimal(bet_step)
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.on_reel_landed = on_reel_landed

        self.state = SpinState.IDLE
        self.bet_amount = _to_decimal(initial_bet)
        self.win_amount = Decimal('0')
        self.last_spin: Optional[SpinResult] = None
        self.reel_state = [self._draw_reel() for _ in range(reels)]

        self.channel.on('win', self._on_remote_win)

    @property
    def is_spinning(self) -> bool:
        return self.state is not SpinState.IDLE

    def _draw_reel(self) -> List[Symbol]:
        return [self.rng.choice(self.symbols) for _ in range(self.rows)]

    def _on_remote_win(self, data):
        if data and data.get('amount') is not None:
            self.win_amount = _to_decimal(data['amount'])

    # --- Bet controls ---

    def set_bet(self, amount) -> Decimal:
        if self.is_spinning:
            return self.bet_amount
        self.bet_amount = min(max(_to_decimal(amount), self.min_bet), self.max_bet)
        return self.bet_amount

    def increase_bet(self) -> Decimal:
        return self.set_bet(self.bet_amount + self.bet_step)

    def decrease_bet(self) -> Decimal:
        return self.set_bet(self.bet_amount - self.bet_step)

    # --- Spin ---

    def spin_reels(self) -> Optional[SpinResult]:
        if self.is_spinning:
            return None

        bet = self.bet_amount
        if not self.balance.place_bet(bet):
            return None

        self.state = SpinState.SPINNING
        self.win_amount = Decimal('0')
        try:
            self.channel.send({'type': 'spin_start', 'bet': float(bet)})

            for index in range(self.reels):
                self.sleep(REEL_REVEAL_DELAY * index)
                landed = self._draw_reel()
                self.reel_state[index] = landed
                if self.on_reel_landed:
                    self.on_reel_landed(index, landed)

            self.state = SpinState.SETTLING
            self.sleep(SETTLE_DELAY)
            return self._settle(bet)
        finally:
            self.state = SpinState.IDLE

    def _settle(self, bet: Decimal) -> SpinResult:
        middle_row = [reel[PAYLINE_ROW] for reel in self.reel_state]
        win = calculate_line_win(middle_row, bet)
        if win == 0 and self.rng.random() < CONSOLATION_CHANCE:
            # Small payout unrelated to the visible symbols
            win = bet * self.rng.randint(*CONSOLATION_MULTIPLIERS)

        result = SpinResult(
            symbols=[list(reel) for reel in self.reel_state],
            lines=[[symbol.id for symbol in middle_row]],
            win=win,
        )
        self.last_spin = result

        if win > 0:
            self.win_amount = win
            self.balance.add_win(win)
            self.channel.send({
                'type': 'win',
                'amount': float(win),
                'betAmount': float(bet),
                'symbols': [[symbol.id for symbol in reel] for reel in self.reel_state],
            })
            logger.debug("Spin won %s on bet %s", win, bet)
        return result
