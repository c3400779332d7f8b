from __future__ import annotations

"""
nasne_remote/settings_store.py

Settings clave/valor persistentes (JSON en DATA_DIR).

Claves usadas por el cliente:
- nasne_ip: último host al que se conectó con éxito
- nasne_quality: calidad de grabación preferida (100=DR, 101=3x)

Fichero ausente o corrupto -> {} (y se recrea en el siguiente save).
Escritura atómica: temp file en el mismo directorio + os.replace.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Final

from nasne_remote import logger as _logger
from nasne_remote.config_base import SETTINGS_FILE_PATH

KEY_HOST: Final[str] = "nasne_ip"
KEY_QUALITY: Final[str] = "nasne_quality"


class SettingsStore:
    def __init__(self, path: Path = SETTINGS_FILE_PATH) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            _logger.warning(f"[SETTINGS] No se pudo leer {self.path}: {exc!r}; usando defaults", always=True)
            return {}
        if not isinstance(data, dict):
            _logger.warning(f"[SETTINGS] {self.path} no es un objeto JSON; usando defaults", always=True)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self.load()
        data[key] = value
        self._write(data)

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", delete=False, dir=str(self.path.parent)
            ) as tf:
                json.dump(data, tf, ensure_ascii=False, indent=2)
                tf.flush()
                temp_name = tf.name
            os.replace(temp_name, str(self.path))
        finally:
            if temp_name and os.path.exists(temp_name):
                os.remove(temp_name)

    # ------------------------------------------------------------------
    # Accesos tipados
    # ------------------------------------------------------------------

    def host(self) -> str | None:
        v = self.get(KEY_HOST)
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()

    def quality(self, default: int) -> int:
        v = self.get(KEY_QUALITY)
        try:
            return int(v) if v is not None else default
        except (TypeError, ValueError):
            return default
