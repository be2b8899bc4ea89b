"""In-memory storage backend.

Each :class:`MemoryStorage` owns its own dict, so two stacks only share
cached entries when they are handed the same instance.
"""

from __future__ import annotations

from typing import Optional

from csdelivery.storage.base import StorageBackend, Visitor


class MemoryStorage(StorageBackend):
    """Process-lifetime backend holding values in a plain dict."""

    def __init__(self) -> None:
        self._memory: dict[str, str] = {}

    @property
    def name(self) -> str:
        return "memoryStorage"

    def get(self, key: str) -> Optional[str]:
        return self._memory.get(key)

    def set(self, key: str, value: str) -> None:
        if not key:
            return
        self._memory[key] = value

    def remove(self, key: str) -> None:
        if not key:
            return
        self._memory.pop(key, None)

    def clear(self) -> None:
        self._memory.clear()

    def for_each(self, visit: Visitor) -> None:
        for key in list(self._memory):
            visit(self._memory.get(key), key)

    def __len__(self) -> int:
        return len(self._memory)
