from __future__ import annotations


class MemoryStore:
    """Dictionary-backed key-value store."""

    def __init__(self) -> None:
        self.entries: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.entries.get(key)

    async def set(self, key: str, value: str) -> None:
        self.entries[key] = value
