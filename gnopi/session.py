from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .digits import DigitStream
from .preferences import Mode, Preferences, PreferencesStore
from .scheduler import Scheduler
from .ticker import TICK_INTERVAL_S, TimeoutTicker
from .window import CellState, DigitCell, WindowBuffer

logger = logging.getLogger(__name__)

LOOKAHEAD = 5
BACKSPACE = "BackSpace"
NOTICE_DURATION_S = 2.0

_DIGIT_CHARS = "0123456789"


class Page(str, Enum):
    PLACEHOLDER = "placeholder"
    MEMORISER = "memoriser"


class GameOverReason(str, Enum):
    WRONG_DIGIT = "wrong_digit"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class GameOver:
    reason: GameOverReason
    reached: int  # digits judged before the session ended

    @property
    def message(self) -> str:
        if self.reason is GameOverReason.WRONG_DIGIT:
            return f"Wrong digit! You reached {self.reached} digits."
        return f"Time's up! You reached {self.reached} digits."


@dataclass(frozen=True, slots=True)
class Notice:
    text: str
    duration_s: float = NOTICE_DURATION_S


SessionEvent = GameOver | Notice


@dataclass(frozen=True, slots=True)
class SetMode:
    mode: Mode


@dataclass(frozen=True, slots=True)
class SetTimeout:
    timeout_s: float | None  # None or <= 0 disables


@dataclass(frozen=True, slots=True)
class SetDigitsPerRow:
    digits_per_row: int


PreferenceChange = SetMode | SetTimeout | SetDigitsPerRow


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the shell (pure data)."""

    version: int
    page: Page
    mode: Mode
    cells: tuple[DigitCell, ...]
    current_index: int
    timeout_progress: float
    timeout_s: float | None
    digits_per_row: int

    @property
    def correct_count(self) -> int:
        return sum(1 for c in self.cells if c.state is CellState.RIGHT)

    @property
    def wrong_count(self) -> int:
        return sum(1 for c in self.cells if c.state is CellState.WRONG)


class SessionEngine:
    """State machine for one practice attempt.

    - Every mutation happens inside one public call; the shell reads
      ``snapshot()`` between calls.
    - The timeout ticker is the only spontaneous source of change and fires
      through the injected scheduler on the same loop.
    """

    def __init__(
        self,
        digits: DigitStream,
        preferences: Preferences,
        *,
        scheduler: Scheduler,
        store: PreferencesStore | None = None,
        lookahead: int = LOOKAHEAD,
        tick_interval_s: float = TICK_INTERVAL_S,
        on_game_over: Callable[[GameOver], None] | None = None,
        on_notice: Callable[[Notice], None] | None = None,
    ) -> None:
        if lookahead < 1:
            raise ValueError("lookahead must be >= 1")
        if lookahead > len(digits):
            raise ValueError("lookahead must not exceed the digit corpus")

        self._digits = digits
        self._prefs = preferences
        self._store = store
        self._lookahead = int(lookahead)
        self._on_game_over = on_game_over
        self._on_notice = on_notice

        self._ticker = TimeoutTicker(
            scheduler,
            on_expire=self._on_timeout_expired,
            tick_interval_s=tick_interval_s,
        )

        self._page = Page.PLACEHOLDER
        self._window = WindowBuffer()
        self._current_index = 0
        self._events: list[SessionEvent] = []
        self._version = 0

    @property
    def page(self) -> Page:
        return self._page

    @property
    def mode(self) -> Mode:
        return self._prefs.mode

    @property
    def preferences(self) -> Preferences:
        return self._prefs

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def timeout_progress(self) -> float:
        return self._ticker.progress

    @property
    def lookahead(self) -> int:
        return self._lookahead

    @property
    def version(self) -> int:
        return self._version

    # Pages

    def switch_page(self, page: Page) -> None:
        if page is Page.PLACEHOLDER:
            if self._page is Page.PLACEHOLDER and self._is_idle():
                return
            self._reset_session()
            self._page = Page.PLACEHOLDER
            logger.debug("Switched to placeholder page")
            self._touch()
            return

        if self._page is Page.MEMORISER:
            return
        self._reset_session()
        self._page = Page.MEMORISER
        self._enter_memoriser()
        logger.debug("Switched to memoriser page (%s)", self.mode.value)
        self._touch()

    # Preferences

    def set_mode(self, mode: Mode) -> None:
        self._prefs = self._prefs.with_mode(mode)
        self._reset_session()
        if self._page is Page.MEMORISER:
            self._enter_memoriser()
        logger.debug("Mode set to %s", mode.value)
        self._touch()

    def set_timeout(self, timeout_s: float | None) -> None:
        self._prefs = self._prefs.with_timeout(timeout_s)
        if self._page is Page.MEMORISER:
            self._rearm_timeout()
        self._touch()

    def set_digits_per_row(self, digits_per_row: int) -> None:
        self._prefs = self._prefs.with_digits_per_row(digits_per_row)
        self._window.retag(self._prefs.digits_per_row)
        self._touch()

    def set_preference(self, change: PreferenceChange) -> None:
        """Apply a preference change from the shell and persist the result."""

        if isinstance(change, SetMode):
            self.set_mode(change.mode)
        elif isinstance(change, SetTimeout):
            self.set_timeout(change.timeout_s)
        elif isinstance(change, SetDigitsPerRow):
            self.set_digits_per_row(change.digits_per_row)
        else:
            return
        self._persist_preferences()

    # Input

    def handle_key(self, key: str) -> None:
        if key == BACKSPACE:
            self.remove_last_digit()
        else:
            self.submit_digit(key)

    def submit_digit(self, ch: str) -> None:
        if self._page is not Page.MEMORISER:
            return
        if not isinstance(ch, str) or len(ch) != 1 or ch not in _DIGIT_CHARS:
            return

        digit = ord(ch) - ord("0")
        expected = self._digits.get(self._current_index)
        state = CellState.RIGHT if digit == expected else CellState.WRONG
        mode = self.mode

        if mode is Mode.INSTANT_DEATH and state is CellState.WRONG:
            self._game_over(GameOverReason.WRONG_DIGIT)
            return

        if state is CellState.RIGHT:
            self._rearm_timeout()

        if mode is Mode.LEARN:
            self._window.update_at(self._current_index, digit, state)
            ahead = self._current_index + self._lookahead
            if self._window.get(ahead) is None:
                self._push_placeholder(ahead)
        else:
            self._window.push_back(DigitCell(digit, state, self._prefs.digits_per_row))

        self._current_index += 1
        self._touch()

    def remove_last_digit(self) -> None:
        if self._page is not Page.MEMORISER:
            return

        mode = self.mode
        if mode is Mode.BLIND:
            if self._window.pop_back() is None:
                self._emit(Notice("Failed to remove last digit ʕノ•ᴥ•ʔノ ︵ ┻━┻"))
                return
            self._current_index -= 1
            self._touch()
        elif mode is Mode.LEARN:
            self._current_index = max(0, self._current_index - 1)
            index = self._current_index
            self._window.update_at(index, self._digits.get(index), CellState.PLACEHOLDER)
            self._touch()
        # Instant death has nothing mid-stream to undo.

    def tick_timeout(self) -> None:
        self._ticker.tick()

    # Output

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            version=self._version,
            page=self._page,
            mode=self.mode,
            cells=tuple(DigitCell(c.digit, c.state, c.digits_per_row) for c in self._window),
            current_index=self._current_index,
            timeout_progress=self._ticker.progress,
            timeout_s=self._prefs.timeout_s,
            digits_per_row=self._prefs.digits_per_row,
        )

    def drain_events(self) -> list[SessionEvent]:
        events, self._events = self._events, []
        return events

    # Internals

    def _is_idle(self) -> bool:
        return len(self._window) == 0 and self._current_index == 0 and not self._ticker.armed

    def _reset_session(self) -> None:
        self._ticker.cancel()
        self._window.clear()
        self._current_index = 0

    def _enter_memoriser(self) -> None:
        if self.mode is Mode.LEARN:
            for index in range(self._lookahead):
                self._push_placeholder(index)
        self._rearm_timeout()

    def _push_placeholder(self, index: int) -> None:
        self._window.push_back(
            DigitCell(self._digits.get(index), CellState.PLACEHOLDER, self._prefs.digits_per_row)
        )

    def _rearm_timeout(self) -> None:
        timeout_s = self._prefs.timeout_s
        if timeout_s is None:
            self._ticker.cancel()
        else:
            self._ticker.arm(timeout_s)

    def _on_timeout_expired(self) -> None:
        self._game_over(GameOverReason.TIMEOUT)

    def _game_over(self, reason: GameOverReason) -> None:
        event = GameOver(reason=reason, reached=self._current_index)
        logger.info("Game over (%s) after %d digits", reason.value, event.reached)
        self.switch_page(Page.PLACEHOLDER)
        self._emit(event)

    def _persist_preferences(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self._prefs)
        except OSError as exc:
            logger.warning("Failed to save preferences to %s: %s", self._store.path, exc)
            self._emit(Notice("Failed to save preference"))

    def _emit(self, event: SessionEvent) -> None:
        self._events.append(event)
        if isinstance(event, GameOver):
            if self._on_game_over is not None:
                self._on_game_over(event)
        elif self._on_notice is not None:
            self._on_notice(event)

    def _touch(self) -> None:
        self._version += 1


def initialize(
    preferences: Preferences,
    *,
    scheduler: Scheduler,
    digits: DigitStream | None = None,
    store: PreferencesStore | None = None,
    lookahead: int = LOOKAHEAD,
) -> SessionEngine:
    """Build an engine over the bundled corpus unless ``digits`` is given."""

    return SessionEngine(
        DigitStream.bundled() if digits is None else digits,
        preferences,
        scheduler=scheduler,
        store=store,
        lookahead=lookahead,
    )
