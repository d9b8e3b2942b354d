from __future__ import annotations

import logging
import math
import os
import struct
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

PREFERENCES_PATH_ENV = "GNOPI_PREFERENCES_PATH"

# mode:u8, timeout:f32 (big-endian seconds, 0.0 = disabled), digits_per_row:u8
RECORD_FORMAT = ">BfB"
RECORD_SIZE = struct.calcsize(RECORD_FORMAT)

MIN_DIGITS_PER_ROW = 5
MAX_DIGITS_PER_ROW = 255
DEFAULT_DIGITS_PER_ROW = 10
MAX_TIMEOUT_S = 3600.0


class Mode(str, Enum):
    BLIND = "blind"
    LEARN = "learn"
    INSTANT_DEATH = "instant_death"

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]


_MODE_LABELS = {
    Mode.BLIND: "Blind",
    Mode.LEARN: "Learn",
    Mode.INSTANT_DEATH: "Instant Death",
}

_MODE_TO_CODE = {
    Mode.BLIND: 0,
    Mode.LEARN: 1,
    Mode.INSTANT_DEATH: 2,
}
_CODE_TO_MODE = {code: mode for mode, code in _MODE_TO_CODE.items()}


class CorruptPreferencesError(ValueError):
    """The persisted record cannot be decoded into valid preferences."""


def mode_code(mode: Mode) -> int:
    return _MODE_TO_CODE[mode]


def mode_from_code(code: int) -> Mode:
    try:
        return _CODE_TO_MODE[code]
    except KeyError:
        raise CorruptPreferencesError(f"unknown mode code {code}") from None


def to_f32(value: float) -> float:
    """Round ``value`` to the nearest IEEE-754 single-precision float."""
    return struct.unpack(">f", struct.pack(">f", value))[0]


def normalize_timeout(seconds: float | None) -> float | None:
    if seconds is None or not math.isfinite(seconds):
        return None
    rounded = to_f32(max(0.0, min(float(seconds), MAX_TIMEOUT_S)))
    return rounded if rounded > 0.0 else None


def clamp_digits_per_row(value: int) -> int:
    return max(MIN_DIGITS_PER_ROW, min(MAX_DIGITS_PER_ROW, int(value)))


@dataclass(frozen=True, slots=True)
class Preferences:
    mode: Mode = Mode.LEARN
    timeout_s: float | None = None  # None disables the countdown
    digits_per_row: int = DEFAULT_DIGITS_PER_ROW

    def __post_init__(self) -> None:
        if not isinstance(self.mode, Mode):
            raise ValueError(f"mode must be a Mode, got {self.mode!r}")
        if self.timeout_s is not None:
            # Held at float32 precision so the stored record reads back equal.
            try:
                timeout = to_f32(self.timeout_s)
            except (OverflowError, TypeError, struct.error):
                timeout = math.nan
            if not (math.isfinite(timeout) and timeout > 0.0):
                raise ValueError("timeout_s must be a positive number of seconds or None")
            object.__setattr__(self, "timeout_s", timeout)
        if not (MIN_DIGITS_PER_ROW <= self.digits_per_row <= MAX_DIGITS_PER_ROW):
            raise ValueError(
                f"digits_per_row must be in [{MIN_DIGITS_PER_ROW}, {MAX_DIGITS_PER_ROW}]"
            )

    def with_mode(self, mode: Mode) -> "Preferences":
        return replace(self, mode=mode)

    def with_timeout(self, seconds: float | None) -> "Preferences":
        return replace(self, timeout_s=normalize_timeout(seconds))

    def with_digits_per_row(self, value: int) -> "Preferences":
        return replace(self, digits_per_row=clamp_digits_per_row(value))


def encode(prefs: Preferences) -> bytes:
    timeout = 0.0 if prefs.timeout_s is None else prefs.timeout_s
    return struct.pack(RECORD_FORMAT, mode_code(prefs.mode), timeout, prefs.digits_per_row)


def decode(data: bytes) -> Preferences:
    """Decode a persisted record; never repairs, raises CorruptPreferencesError."""

    if len(data) != RECORD_SIZE:
        raise CorruptPreferencesError(f"expected {RECORD_SIZE} bytes, got {len(data)}")

    code, timeout, digits_per_row = struct.unpack(RECORD_FORMAT, data)
    mode = mode_from_code(code)

    if not math.isfinite(timeout) or timeout < 0.0:
        raise CorruptPreferencesError(f"invalid timeout {timeout!r}")
    if digits_per_row < MIN_DIGITS_PER_ROW:
        raise CorruptPreferencesError(f"digits_per_row {digits_per_row} below {MIN_DIGITS_PER_ROW}")

    return Preferences(
        mode=mode,
        timeout_s=None if timeout == 0.0 else timeout,
        digits_per_row=digits_per_row,
    )


class PreferencesStore:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @classmethod
    def default_path(cls) -> Path:
        explicit = os.environ.get(PREFERENCES_PATH_ENV)
        if explicit:
            return Path(explicit).expanduser()
        config_home = os.environ.get("XDG_CONFIG_HOME")
        base = Path(config_home).expanduser() if config_home else Path.home() / ".config"
        return base / "gnopi" / "preferences"

    def load(self) -> Preferences:
        """Stored preferences, or defaults when missing, unreadable or corrupt."""

        if not self._path.exists():
            return Preferences()
        try:
            return decode(self._path.read_bytes())
        except OSError as exc:
            logger.warning("Could not read preferences at %s (%s); using defaults", self._path, exc)
        except CorruptPreferencesError as exc:
            logger.warning("Corrupt preferences at %s (%s); using defaults", self._path, exc)
        return Preferences()

    def save(self, prefs: Preferences) -> None:
        """Persist ``prefs``. OSError propagates; callers decide how to report it."""

        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            tmp_path.write_bytes(encode(prefs))
            tmp_path.replace(self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.info("Saved preferences to %s", self._path)
