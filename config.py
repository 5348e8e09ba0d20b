"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_MODE = "casual"
DEFAULT_PROVIDER = "local"
DEFAULT_HOTKEY = "Key.alt_r"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "bella" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self, provider: str) -> str:
        keys = self._read_all().get("api_keys", {})
        if not isinstance(keys, dict):
            return ""
        return str(keys.get(provider, ""))

    def set_api_key(self, provider: str, key: str) -> None:
        data = self._read_all()
        keys = data.get("api_keys")
        if not isinstance(keys, dict):
            keys = {}
        keys[provider] = key
        data["api_keys"] = keys
        self._write_all(data)

    def api_keys(self) -> dict[str, str]:
        keys = self._read_all().get("api_keys", {})
        if not isinstance(keys, dict):
            return {}
        return {str(k): str(v) for k, v in keys.items()}

    def get_mode(self) -> str:
        return str(self._read_all().get("mode", DEFAULT_MODE))

    def set_mode(self, mode: str) -> None:
        self._set("mode", mode)

    def get_provider(self) -> str:
        return str(self._read_all().get("provider", DEFAULT_PROVIDER))

    def set_provider(self, provider: str) -> None:
        self._set("provider", provider)

    def get_hotkey(self) -> str:
        return str(self._read_all().get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def _set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
