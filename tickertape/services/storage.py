from __future__ import annotations

import json
import threading
from pathlib import Path

SAVED_QUOTES_KEY = "saved_quotes"
REFRESH_INTERVAL_KEY = "refresh_interval"
SCROLL_SPEED_KEY = "scroll_speed"
DISPLAY_STYLE_KEY = "display_style"


class InMemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value


class JsonFileStorage:
    """Key/value blobs kept in a single JSON object on disk.

    A missing file or key reads as ``None``. An unreadable file is logged and
    treated as empty so the next ``set`` rewrites it.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            print(f"[STORE][storage_unreadable] path={self.path} error={exc}", flush=True)
            return {}
        if not isinstance(payload, dict):
            return {}
        out: dict[str, str] = {}
        for key, value in payload.items():
            if isinstance(value, str):
                out[str(key)] = value
            elif isinstance(value, (int, float)):
                # hand-edited files may hold bare numbers
                out[str(key)] = str(value)
            elif isinstance(value, (list, dict)):
                out[str(key)] = json.dumps(value, ensure_ascii=False)
        return out

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            values = self._read_all()
            values[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(values, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
