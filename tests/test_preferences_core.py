from __future__ import annotations

import logging
import struct
from pathlib import Path

import pytest

from gnopi.preferences import (
    PREFERENCES_PATH_ENV,
    RECORD_SIZE,
    CorruptPreferencesError,
    Mode,
    Preferences,
    PreferencesStore,
    decode,
    encode,
    mode_code,
    mode_from_code,
)


def test_record_layout_learn_without_timeout() -> None:
    prefs = Preferences(mode=Mode.LEARN, timeout_s=None, digits_per_row=12)

    data = encode(prefs)

    assert RECORD_SIZE == 6
    assert data == bytes([1, 0, 0, 0, 0, 12])
    assert decode(data) == prefs


def test_timeout_is_big_endian_single_precision_seconds() -> None:
    data = encode(Preferences(mode=Mode.INSTANT_DEATH, timeout_s=2.0, digits_per_row=10))

    assert data == b"\x02\x40\x00\x00\x00\x0a"


@pytest.mark.parametrize(
    "prefs",
    [
        Preferences(),
        Preferences(mode=Mode.BLIND, timeout_s=1.5, digits_per_row=5),
        Preferences(mode=Mode.INSTANT_DEATH, timeout_s=15.0, digits_per_row=255),
        Preferences().with_timeout(0.1),
        Preferences(mode=Mode.BLIND, timeout_s=0.1),
        Preferences(mode=Mode.LEARN, timeout_s=5000.0, digits_per_row=30),
    ],
)
def test_decode_inverts_encode(prefs: Preferences) -> None:
    assert decode(encode(prefs)) == prefs


def test_mode_table_is_explicit_and_two_way() -> None:
    assert [mode_code(m) for m in (Mode.BLIND, Mode.LEARN, Mode.INSTANT_DEATH)] == [0, 1, 2]
    assert [mode_from_code(c) for c in (0, 1, 2)] == [Mode.BLIND, Mode.LEARN, Mode.INSTANT_DEATH]
    with pytest.raises(CorruptPreferencesError):
        mode_from_code(3)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        bytes([1, 0, 0, 0, 0]),
        bytes([1, 0, 0, 0, 0, 12, 0]),
        bytes([3, 0, 0, 0, 0, 12]),
        bytes([255, 0, 0, 0, 0, 12]),
        bytes([1, 0, 0, 0, 0, 4]),
        bytes([1, 0, 0, 0, 0, 0]),
        b"\x01" + struct.pack(">f", -1.0) + b"\x0a",
        b"\x01" + struct.pack(">f", float("nan")) + b"\x0a",
        b"\x01" + struct.pack(">f", float("inf")) + b"\x0a",
    ],
)
def test_decode_rejects_corrupt_records(data: bytes) -> None:
    with pytest.raises(CorruptPreferencesError):
        decode(data)


def test_corrupt_error_is_a_value_error() -> None:
    assert issubclass(CorruptPreferencesError, ValueError)


def test_setters_normalize_values() -> None:
    prefs = Preferences()

    assert prefs.with_timeout(0.0).timeout_s is None
    assert prefs.with_timeout(-3.0).timeout_s is None
    assert prefs.with_timeout(None).timeout_s is None
    assert prefs.with_timeout(2.5).timeout_s == 2.5
    assert prefs.with_digits_per_row(2).digits_per_row == 5
    assert prefs.with_digits_per_row(999).digits_per_row == 255
    assert prefs.with_mode(Mode.BLIND).mode is Mode.BLIND


def test_timeout_too_small_for_the_record_disables_countdown() -> None:
    assert Preferences().with_timeout(1e-46).timeout_s is None
    assert Preferences().with_timeout(1e9).timeout_s == 3600.0


def test_constructor_holds_timeout_at_record_precision() -> None:
    prefs = Preferences(timeout_s=0.1)

    assert prefs.timeout_s == struct.unpack(">f", struct.pack(">f", 0.1))[0]
    assert prefs.timeout_s != 0.1


def test_constructor_rejects_invalid_values() -> None:
    with pytest.raises(ValueError):
        Preferences(digits_per_row=4)
    with pytest.raises(ValueError):
        Preferences(timeout_s=0.0)
    with pytest.raises(ValueError):
        Preferences(timeout_s=-1.0)
    with pytest.raises(ValueError):
        Preferences(timeout_s=1e39)
    with pytest.raises(ValueError):
        Preferences(timeout_s=1e-46)
    with pytest.raises(ValueError):
        Preferences(timeout_s=float("inf"))


def test_defaults() -> None:
    prefs = Preferences()

    assert prefs.mode is Mode.LEARN
    assert prefs.timeout_s is None
    assert prefs.digits_per_row == 10


def test_store_save_creates_directories_and_load_reads_back(tmp_path: Path) -> None:
    path = tmp_path / "config" / "gnopi" / "preferences"
    store = PreferencesStore(path)
    prefs = Preferences(mode=Mode.BLIND, timeout_s=3.0, digits_per_row=8)

    store.save(prefs)

    assert path.read_bytes() == encode(prefs)
    assert not path.with_name("preferences.tmp").exists()
    assert PreferencesStore(path).load() == prefs


def test_store_load_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert PreferencesStore(tmp_path / "nope").load() == Preferences()


def test_store_load_corrupt_file_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "preferences"
    path.write_bytes(bytes([1, 0, 0, 0, 0, 3]))

    with caplog.at_level(logging.WARNING, logger="gnopi.preferences"):
        prefs = PreferencesStore(path).load()

    assert prefs == Preferences()
    assert "Corrupt preferences" in caplog.text


def test_store_load_unreadable_file_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "preferences"
    path.mkdir()

    assert PreferencesStore(path).load() == Preferences()


def test_store_save_failure_propagates(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(OSError):
        PreferencesStore(blocker / "preferences").save(Preferences())


def test_default_path_prefers_explicit_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv(PREFERENCES_PATH_ENV, str(tmp_path / "prefs.bin"))

    assert PreferencesStore.default_path() == tmp_path / "prefs.bin"


def test_default_path_uses_xdg_config_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv(PREFERENCES_PATH_ENV, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert PreferencesStore.default_path() == tmp_path / "gnopi" / "preferences"


def test_default_path_falls_back_to_home_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv(PREFERENCES_PATH_ENV, raising=False)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    assert PreferencesStore.default_path() == tmp_path / ".config" / "gnopi" / "preferences"


def test_store_save_failure_leaves_no_temp_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "preferences"

    def fail_replace(self: Path, target: Path) -> Path:
        raise OSError("disk full")

    monkeypatch.setattr(Path, "replace", fail_replace)

    with pytest.raises(OSError):
        PreferencesStore(path).save(Preferences())

    assert not path.with_name("preferences.tmp").exists()
    assert not path.exists()
