"""Pygame shell for GnoPi, the π memorization trainer.

The shell only renders ``SessionEngine.snapshot()`` and forwards raw key and
preference intents; all judging, timing and persistence rules live in
gnopi/* (core modules).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pygame

from .digits import DigitStream
from .preferences import Mode, PreferencesStore
from .scheduler import Clock, IntervalScheduler, RealClock
from .session import (
    BACKSPACE,
    GameOver,
    Notice,
    Page,
    SessionEngine,
    SessionSnapshot,
    SetDigitsPerRow,
    SetMode,
    SetTimeout,
)
from .window import CellState

logger = logging.getLogger(__name__)

APP_NAME = "GnoPi"
APP_VERSION = "0.1.0"
WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

TIMEOUT_STEP_S = 0.5
TIMEOUT_UI_MAX_S = 15.0
DIGITS_PER_ROW_UI_RANGE = (5, 30)
MODE_ORDER = (Mode.BLIND, Mode.LEARN, Mode.INSTANT_DEATH)

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
HEADER_BG = (18, 30, 118)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
CELL_COLOURS = {
    CellState.RIGHT: ((38, 162, 105), (238, 245, 255)),
    CellState.WRONG: ((192, 28, 40), (238, 245, 255)),
    CellState.PLACEHOLDER: ((9, 20, 106), (140, 156, 200)),
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


@dataclass(slots=True)
class Toast:
    text: str
    expires_at_s: float


class ToastOverlay:
    """Transient, dismissible notices stacked at the bottom of the window."""

    def __init__(self, clock: Clock, *, max_visible: int = 3) -> None:
        self._clock = clock
        self._max_visible = max_visible
        self._toasts: list[Toast] = []
        self._font = pygame.font.Font(None, 26)

    @property
    def visible(self) -> bool:
        return bool(self._toasts)

    def texts(self) -> list[str]:
        return [t.text for t in self._toasts]

    def push(self, text: str, duration_s: float) -> None:
        self._toasts.append(Toast(text, self._clock.now() + float(duration_s)))
        del self._toasts[: -self._max_visible]

    def dismiss(self) -> None:
        if self._toasts:
            self._toasts.pop()

    def update(self) -> None:
        now = self._clock.now()
        self._toasts = [t for t in self._toasts if t.expires_at_s > now]

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        y = h - 24
        for toast in reversed(self._toasts):
            text = self._font.render(toast.text, True, TEXT_MAIN)
            hint = self._font.render("Enter: Dismiss", True, TEXT_MUTED)
            box = pygame.Rect(0, 0, text.get_width() + hint.get_width() + 48, text.get_height() + 18)
            box.midbottom = (w // 2, y)
            pygame.draw.rect(surface, (28, 28, 36), box, border_radius=10)
            pygame.draw.rect(surface, (78, 102, 170), box, 1, border_radius=10)
            surface.blit(text, (box.x + 16, box.y + 9))
            surface.blit(hint, (box.right - hint.get_width() - 16, box.y + 9))
            y = box.y - 8


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font, *, toasts: ToastOverlay) -> None:
        self._surface = surface
        self._font = font
        self._toasts = toasts
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    @property
    def toasts(self) -> ToastOverlay:
        return self._toasts

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if (
            event.type == pygame.KEYDOWN
            and event.key in (pygame.K_RETURN, pygame.K_KP_ENTER)
            and self._toasts.visible
        ):
            self._toasts.dismiss()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)
        self._toasts.render(self._surface)


def _step_within(value: float, step: float, lo: float, hi: float) -> float:
    """Move ``value`` by ``step``, clamping only on the side it moves towards.

    A value already outside ``[lo, hi]`` never jumps against the key press.
    """
    if step > 0:
        return value if value >= hi else max(lo, min(hi, value + step))
    if step < 0:
        return value if value <= lo else min(hi, max(lo, value + step))
    return value


def _draw_frame(
    surface: pygame.Surface,
    title: str,
    tag: str,
    title_font: pygame.font.Font,
    hint_font: pygame.font.Font,
) -> pygame.Rect:
    """Shared window chrome; returns the content rect below the header."""

    w, h = surface.get_size()
    surface.fill(BG)

    frame_margin = max(10, min(26, w // 34))
    frame = pygame.Rect(
        frame_margin,
        frame_margin,
        max(260, w - frame_margin * 2),
        max(220, h - frame_margin * 2),
    )
    pygame.draw.rect(surface, PANEL_BG, frame)
    pygame.draw.rect(surface, BORDER, frame, 2)

    header_h = max(34, min(52, h // 8))
    header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
    pygame.draw.rect(surface, HEADER_BG, header)
    pygame.draw.line(surface, BORDER, (header.x, header.bottom), (header.right, header.bottom), 1)

    tag_surf = hint_font.render(tag, True, TEXT_MUTED)
    surface.blit(tag_surf, (header.x + 12, header.y + (header.h - tag_surf.get_height()) // 2))
    title_surf = title_font.render(title, True, TEXT_MAIN)
    surface.blit(title_surf, title_surf.get_rect(center=(frame.centerx, header.centery)))

    return pygame.Rect(frame.x, header.bottom, frame.w, frame.bottom - header.bottom)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem]) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._items[self._selected].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_TAB, pygame.K_F1):
            self._app.pop()

    def _move(self, delta: int) -> None:
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        content = _draw_frame(surface, self._title, "MENU", self._title_font, self._hint_font)

        row_h = 44
        gap = 10
        total_h = row_h * len(self._items) + gap * (len(self._items) - 1)
        y = content.y + max(16, (content.h - total_h) // 2)
        for idx, item in enumerate(self._items):
            row = pygame.Rect(content.x + 40, y, content.w - 80, row_h)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, (244, 248, 255), row)
                pygame.draw.rect(surface, (120, 142, 196), row, 2)
            else:
                pygame.draw.rect(surface, (9, 20, 106), row)
                pygame.draw.rect(surface, (62, 84, 152), row, 1)
            color = (14, 26, 74) if selected else TEXT_MAIN
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + gap

        foot = self._hint_font.render("Enter/Space: Select  |  Esc: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(content.centerx, content.bottom - 10)))


class AboutScreen:
    def __init__(self, app: App) -> None:
        self._app = app
        self._title_font = pygame.font.Font(None, 42)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_RETURN, pygame.K_KP_ENTER):
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        content = _draw_frame(surface, f"About {APP_NAME}", "ABOUT", self._title_font, self._hint_font)
        lines = [
            f"{APP_NAME} {APP_VERSION}",
            "A π memorization trainer",
            "Type the digits of π. Backspace undoes (Blind, Learn).",
        ]
        y = content.y + 40
        for line in lines:
            text = self._app.font.render(line, True, TEXT_MAIN)
            surface.blit(text, text.get_rect(midtop=(content.centerx, y)))
            y += text.get_height() + 14
        foot = self._hint_font.render("Esc: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(content.centerx, content.bottom - 10)))


class PreferencesScreen:
    """Edits mode, timeout and row width; every change goes through the engine."""

    _ROWS = ("mode", "timeout", "digits_per_row")

    def __init__(self, app: App, *, engine: SessionEngine) -> None:
        self._app = app
        self._engine = engine
        self._selected = 0
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._selected = (self._selected - 1) % len(self._ROWS)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._selected = (self._selected + 1) % len(self._ROWS)
        elif event.key in (pygame.K_LEFT, pygame.K_a, pygame.K_MINUS):
            self._adjust(-1)
        elif event.key in (pygame.K_RIGHT, pygame.K_d, pygame.K_PLUS, pygame.K_EQUALS):
            self._adjust(1)
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._app.pop()

    def _adjust(self, delta: int) -> None:
        prefs = self._engine.preferences
        row = self._ROWS[self._selected]
        if row == "mode":
            idx = MODE_ORDER.index(prefs.mode)
            self._engine.set_preference(SetMode(MODE_ORDER[(idx + delta) % len(MODE_ORDER)]))
        elif row == "timeout":
            current = 0.0 if prefs.timeout_s is None else prefs.timeout_s
            stepped = _step_within(current, delta * TIMEOUT_STEP_S, 0.0, TIMEOUT_UI_MAX_S)
            if stepped != current:
                value = round(stepped / TIMEOUT_STEP_S) * TIMEOUT_STEP_S
                self._engine.set_preference(SetTimeout(value if value > 0.0 else None))
        else:
            lo, hi = DIGITS_PER_ROW_UI_RANGE
            value = int(_step_within(prefs.digits_per_row, delta, lo, hi))
            if value != prefs.digits_per_row:
                self._engine.set_preference(SetDigitsPerRow(value))

    def _rows(self) -> list[tuple[str, str, str]]:
        prefs = self._engine.preferences
        timeout = "Disabled" if prefs.timeout_s is None else f"{prefs.timeout_s:.1f} s"
        return [
            ("App Mode", prefs.mode.label, "Blind / Learn / Instant Death"),
            ("Timeout", timeout, "in seconds (0 to disable)"),
            ("Digits per row", str(prefs.digits_per_row), "Number of pi digits in one row"),
        ]

    def render(self, surface: pygame.Surface) -> None:
        content = _draw_frame(surface, "Preferences", "SETTINGS", self._title_font, self._hint_font)

        y = content.y + 30
        for idx, (label, value, subtitle) in enumerate(self._rows()):
            row = pygame.Rect(content.x + 40, y, content.w - 80, 64)
            selected = idx == self._selected
            pygame.draw.rect(surface, (244, 248, 255) if selected else (9, 20, 106), row)
            pygame.draw.rect(surface, (120, 142, 196) if selected else (62, 84, 152), row, 1)
            main = (14, 26, 74) if selected else TEXT_MAIN
            muted = (70, 82, 130) if selected else TEXT_MUTED
            surface.blit(self._item_font.render(label, True, main), (row.x + 12, row.y + 8))
            surface.blit(self._hint_font.render(subtitle, True, muted), (row.x + 12, row.y + 38))
            value_surf = self._item_font.render(f"<  {value}  >", True, main)
            surface.blit(value_surf, value_surf.get_rect(midright=(row.right - 14, row.centery)))
            y += row.h + 12

        foot = self._hint_font.render("Up/Down: Select  |  Left/Right: Change  |  Esc: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(content.centerx, content.bottom - 10)))


class TrainerScreen:
    """Root screen: shows the placeholder or memoriser page of the engine."""

    def __init__(self, app: App, *, engine: SessionEngine, open_menu: Callable[[], None]) -> None:
        self._app = app
        self._engine = engine
        self._open_menu = open_menu

        self._title_font = pygame.font.Font(None, 42)
        self._big_font = pygame.font.Font(None, 72)
        self._cell_font = pygame.font.Font(None, 40)
        self._hint_font = pygame.font.Font(None, 22)

        self._snap: SessionSnapshot = engine.snapshot()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_TAB, pygame.K_F1):
            self._open_menu()
            return

        if self._engine.page is Page.PLACEHOLDER:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._engine.switch_page(Page.MEMORISER)
            elif event.key == pygame.K_m:
                self._open_menu()
            elif event.key == pygame.K_ESCAPE:
                self._app.quit()
            return

        if event.key == pygame.K_ESCAPE:
            self._engine.switch_page(Page.PLACEHOLDER)
        elif event.key == pygame.K_BACKSPACE:
            self._engine.handle_key(BACKSPACE)
        elif event.unicode:
            self._engine.handle_key(event.unicode)

    def _refresh(self) -> SessionSnapshot:
        # Rebuild the view model only when the engine moved on.
        engine = self._engine
        if engine.version != self._snap.version or engine.timeout_progress != self._snap.timeout_progress:
            self._snap = engine.snapshot()
        return self._snap

    def render(self, surface: pygame.Surface) -> None:
        snap = self._refresh()
        content = _draw_frame(surface, APP_NAME, snap.mode.label.upper(), self._title_font, self._hint_font)
        if snap.page is Page.PLACEHOLDER:
            self._render_placeholder(surface, content)
        else:
            self._render_memoriser(surface, content, snap)

    def _render_placeholder(self, surface: pygame.Surface, content: pygame.Rect) -> None:
        title = self._big_font.render(f"Welcome to {APP_NAME}!", True, TEXT_MAIN)
        subtitle = self._app.font.render("A π memorization trainer", True, TEXT_MUTED)
        surface.blit(title, title.get_rect(center=(content.centerx, content.centery - 60)))
        surface.blit(subtitle, subtitle.get_rect(center=(content.centerx, content.centery)))

        button = pygame.Rect(0, 0, 200, 52)
        button.center = (content.centerx, content.centery + 70)
        pygame.draw.rect(surface, (53, 132, 228), button, border_radius=26)
        label = self._app.font.render("Launch!", True, TEXT_MAIN)
        surface.blit(label, label.get_rect(center=button.center))

        foot = self._hint_font.render("Enter/Space: Launch  |  Tab: Menu  |  Esc: Quit", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(content.centerx, content.bottom - 10)))

    def _render_memoriser(self, surface: pygame.Surface, content: pygame.Rect, snap: SessionSnapshot) -> None:
        heading = self._title_font.render("Memorize!", True, TEXT_MAIN)
        surface.blit(heading, heading.get_rect(midtop=(content.centerx, content.y + 14)))
        stats = self._hint_font.render(
            f"Digits: {snap.current_index}   Right: {snap.correct_count}   Wrong: {snap.wrong_count}",
            True,
            TEXT_MUTED,
        )
        surface.blit(stats, stats.get_rect(midtop=(content.centerx, content.y + 50)))

        per_row = max(1, snap.digits_per_row)
        cell = max(24, min(56, (content.w - 60) // per_row - 6))
        gap = 6
        grid_w = per_row * (cell + gap) - gap
        grid_top = content.y + 80
        grid_bottom = content.bottom - 60
        visible_rows = max(1, (grid_bottom - grid_top) // (cell + gap))

        # Keep the row being typed on screen.
        focus_row = snap.current_index // per_row
        first_row = max(0, focus_row - visible_rows + 1)
        x0 = content.centerx - grid_w // 2

        for index, c in enumerate(snap.cells):
            row, col = c.position(index)
            if row < first_row or row >= first_row + visible_rows:
                continue
            rect = pygame.Rect(x0 + col * (cell + gap), grid_top + (row - first_row) * (cell + gap), cell, cell)
            fill, fg = CELL_COLOURS[c.state]
            pygame.draw.rect(surface, fill, rect, border_radius=cell // 2)
            if index == snap.current_index:
                pygame.draw.rect(surface, BORDER, rect, 2, border_radius=cell // 2)
            digit = self._cell_font.render(str(c.digit), True, fg)
            surface.blit(digit, digit.get_rect(center=rect.center))

        if snap.timeout_s is not None:
            bar = pygame.Rect(content.x + 40, content.bottom - 48, content.w - 80, 10)
            pygame.draw.rect(surface, (6, 13, 92), bar)
            remaining = bar.copy()
            remaining.w = int(bar.w * max(0.0, 1.0 - snap.timeout_progress))
            pygame.draw.rect(surface, (229, 165, 10), remaining)
            pygame.draw.rect(surface, (78, 102, 170), bar, 1)

        foot = self._hint_font.render("0-9: Answer  |  Backspace: Undo  |  Tab: Menu  |  Esc: Stop", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(content.centerx, content.bottom - 10)))


def _forward_engine_events(engine: SessionEngine, toasts: ToastOverlay) -> None:
    for ev in engine.drain_events():
        if isinstance(ev, GameOver):
            toasts.push(ev.message, 3.0)
        elif isinstance(ev, Notice):
            toasts.push(ev.text, ev.duration_s)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    preferences_path: Path | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption(APP_NAME)
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    frame_clock = pygame.time.Clock()

    real_clock = RealClock()
    scheduler = IntervalScheduler(real_clock)
    toasts = ToastOverlay(real_clock)
    app = App(surface=surface, font=font, toasts=toasts)

    store = PreferencesStore(preferences_path or PreferencesStore.default_path())
    engine = SessionEngine(DigitStream.bundled(), store.load(), scheduler=scheduler, store=store)
    logger.info("Starting %s %s (preferences: %s)", APP_NAME, APP_VERSION, store.path)

    about = AboutScreen(app)
    preferences = PreferencesScreen(app, engine=engine)
    menu = MenuScreen(
        app,
        "Menu",
        [
            MenuItem("Preferences", lambda: app.push(preferences)),
            MenuItem(f"About {APP_NAME}", lambda: app.push(about)),
            MenuItem("Back", app.pop),
            MenuItem("Quit", app.quit),
        ],
    )

    app.push(TrainerScreen(app, engine=engine, open_menu=lambda: app.push(menu)))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            scheduler.pump()
            _forward_engine_events(engine, toasts)
            toasts.update()

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            frame_clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
