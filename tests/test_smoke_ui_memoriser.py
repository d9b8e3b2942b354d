from __future__ import annotations

import os
from pathlib import Path


def _key(key: int, unicode: str = "") -> None:
    import pygame

    pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": key, "unicode": unicode, "mod": 0}))


def test_ui_smoke_launch_and_type_digits(tmp_path: Path) -> None:
    # Headless SDL for CI.
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from gnopi.app import run

    def inject(frame: int) -> None:
        # Placeholder -> Launch! -> type 3, 1, 9 -> undo -> back to placeholder
        if frame == 1:
            _key(pygame.K_RETURN, "\r")
        elif frame == 2:
            _key(pygame.K_3, "3")
        elif frame == 3:
            _key(pygame.K_1, "1")
        elif frame == 4:
            _key(pygame.K_9, "9")
        elif frame == 5:
            _key(pygame.K_BACKSPACE, "\b")
        elif frame == 6:
            _key(pygame.K_ESCAPE, "\x1b")

    assert run(max_frames=12, event_injector=inject, preferences_path=tmp_path / "preferences") == 0


def test_ui_smoke_preferences_are_persisted(tmp_path: Path) -> None:
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from gnopi.app import run
    from gnopi.preferences import Mode, decode

    prefs_path = tmp_path / "gnopi" / "preferences"

    def inject(frame: int) -> None:
        # Tab opens the menu -> Preferences -> mode Learn -> Instant Death
        # -> Down -> digits per row 10 -> 11
        if frame == 1:
            _key(pygame.K_TAB, "\t")
        elif frame == 2:
            _key(pygame.K_RETURN, "\r")
        elif frame == 3:
            _key(pygame.K_RIGHT)
        elif frame == 4:
            _key(pygame.K_DOWN)
        elif frame == 5:
            _key(pygame.K_DOWN)
        elif frame == 6:
            _key(pygame.K_RIGHT)
        elif frame == 7:
            _key(pygame.K_ESCAPE, "\x1b")

    assert run(max_frames=12, event_injector=inject, preferences_path=prefs_path) == 0

    prefs = decode(prefs_path.read_bytes())
    assert prefs.mode is Mode.INSTANT_DEATH
    assert prefs.digits_per_row == 11
    assert prefs.timeout_s is None


def test_ui_smoke_m_opens_menu_from_placeholder(tmp_path: Path) -> None:
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from gnopi.app import run
    from gnopi.preferences import Mode, decode

    prefs_path = tmp_path / "preferences"

    def inject(frame: int) -> None:
        # M opens the menu -> Preferences -> mode Learn -> Instant Death
        if frame == 1:
            _key(pygame.K_m, "m")
        elif frame == 2:
            _key(pygame.K_RETURN, "\r")
        elif frame == 3:
            _key(pygame.K_RIGHT)

    assert run(max_frames=8, event_injector=inject, preferences_path=prefs_path) == 0

    assert decode(prefs_path.read_bytes()).mode is Mode.INSTANT_DEATH


def test_ui_smoke_out_of_range_values_only_move_with_the_key(tmp_path: Path) -> None:
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from gnopi.app import run
    from gnopi.preferences import Mode, Preferences, PreferencesStore, decode

    prefs_path = tmp_path / "preferences"
    PreferencesStore(prefs_path).save(Preferences(mode=Mode.BLIND, timeout_s=100.0, digits_per_row=200))

    def inject(frame: int) -> None:
        # Timeout 100 s: Right keeps it. Digits per row 200: Right keeps it, Left enters the range.
        if frame == 1:
            _key(pygame.K_TAB, "\t")
        elif frame == 2:
            _key(pygame.K_RETURN, "\r")
        elif frame == 3:
            _key(pygame.K_DOWN)
        elif frame == 4:
            _key(pygame.K_RIGHT)
        elif frame == 5:
            _key(pygame.K_DOWN)
        elif frame == 6:
            _key(pygame.K_RIGHT)
        elif frame == 7:
            _key(pygame.K_LEFT)

    assert run(max_frames=12, event_injector=inject, preferences_path=prefs_path) == 0

    prefs = decode(prefs_path.read_bytes())
    assert prefs.timeout_s == 100.0
    assert prefs.digits_per_row == 30


def test_step_within_clamps_only_towards_the_range() -> None:
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    from gnopi.app import _step_within

    assert _step_within(10, 1, 5, 30) == 11
    assert _step_within(30, 1, 5, 30) == 30
    assert _step_within(200, 1, 5, 30) == 200
    assert _step_within(200, -1, 5, 30) == 30
    assert _step_within(0.0, -0.5, 0.0, 15.0) == 0.0
    assert _step_within(100.0, 0.5, 0.0, 15.0) == 100.0
