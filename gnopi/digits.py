from __future__ import annotations

from functools import lru_cache
from pathlib import Path

CORPUS_PATH = Path(__file__).resolve().parent / "data" / "pi_digits.txt"

_ZERO = ord("0")


class DigitStream:
    """Read-only view over a corpus of ASCII decimal digits.

    The corpus is borrowed as given (bytes or memoryview) and indexed in
    place; digits are decoded one at a time on access.
    """

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        view = memoryview(data).toreadonly()
        if len(view) == 0:
            raise ValueError("digit corpus must not be empty")
        if not view.tobytes().isdigit():
            raise ValueError("digit corpus must contain only ASCII digits")
        self._data = view

    @classmethod
    def bundled(cls) -> "DigitStream":
        """The bundled corpus of pi digits, loaded once per process."""
        return _load_bundled()

    def __len__(self) -> int:
        return len(self._data)

    def get(self, index: int) -> int:
        if index < 0 or index >= len(self._data):
            raise IndexError(f"digit index {index} outside corpus of {len(self._data)} digits")
        return self._data[index] - _ZERO

    def head(self, count: int) -> list[int]:
        return [self.get(i) for i in range(min(count, len(self._data)))]


@lru_cache(maxsize=1)
def _load_bundled() -> DigitStream:
    return DigitStream(CORPUS_PATH.read_bytes().strip())
