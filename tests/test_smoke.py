"""Smoke tests for the pygame shell.

These verify that the main loop initialises and runs a handful of frames
under the SDL dummy video driver.  They do not check rendering correctness;
they only make sure the integration points between pygame and the engine do
not raise in a headless environment.
"""

from __future__ import annotations

import os
from pathlib import Path

# Use the dummy drivers before importing pygame or the application
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


def test_app_runs_headless(tmp_path: Path) -> None:
    """Ensure the application can start and run a few frames headlessly."""
    # Import inside the test so that environment variables take effect
    from gnopi.app import run

    exit_code = run(max_frames=3, preferences_path=tmp_path / "preferences")
    assert exit_code == 0
