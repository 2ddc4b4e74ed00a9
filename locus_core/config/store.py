"""Key/value settings store used by the settings dialog.

The reader persists a handful of string keys (``provider``, ``apiKey``,
``customBaseUrl``, ``customModelName``, ``geminiModelName``). They are read
once when the settings dialog opens and written back one key at a time on
save. The core only needs the resolved values, so the storage backend stays
behind the small async ``SettingsStore`` protocol.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from pathlib import Path
from typing import Dict, MutableMapping, Optional, Protocol

from locus_core.config.settings import LocusSettings
from locus_core.domain.models import ProviderKind


# store key -> LocusSettings field
STORE_KEYS: Dict[str, str] = {
    "provider": "provider",
    "apiKey": "api_key",
    "customBaseUrl": "custom_base_url",
    "customModelName": "custom_model_name",
    "geminiModelName": "gemini_model_name",
}


class SettingsStore(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: Optional[str]) -> None:
        ...


class InMemorySettingsStore:
    """Dictionary-backed store, handy for tests and headless runs."""

    def __init__(self, initial: Optional[MutableMapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value


class EnvFileSettingsStore:
    """Simple .env-style file store (order preserved)."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> MutableMapping[str, str]:
        pairs: MutableMapping[str, str] = OrderedDict()
        if not self.path.exists():
            return pairs
        for raw_line in self.path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            pairs[key.strip()] = value.strip()
        return pairs

    def _write(self, data: MutableMapping[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"{key}={value}" for key, value in data.items() if key]
        self.path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: Optional[str]) -> None:
        def _update() -> None:
            data = self._read()
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
            self._write(data)

        await asyncio.to_thread(_update)


async def load_from_store(store: SettingsStore, base: Optional[LocusSettings] = None) -> LocusSettings:
    """Read every known key once; missing or empty values keep the defaults."""

    base = base or LocusSettings()
    updates = {}
    for key, field_name in STORE_KEYS.items():
        value = await store.get(key)
        if value:
            updates[field_name] = value
    # stored values go through the same field validators as env/yaml ones
    return LocusSettings.model_validate({**base.model_dump(), **updates})


async def save_to_store(settings: LocusSettings, store: SettingsStore) -> None:
    """Write the store-backed fields back, one key at a time."""

    for key, field_name in STORE_KEYS.items():
        value = getattr(settings, field_name)
        if isinstance(value, ProviderKind):
            value = value.value
        await store.set(key, value)
