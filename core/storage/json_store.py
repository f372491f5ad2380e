from __future__ import annotations

import asyncio
import glob
import json
import logging
import os
import shutil
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from core.storage.record_store import INDEX_KEY, StorageError, check_index

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[2] / "data"
DB_NAME = "customerDB"
STORE_NAME = "customers"
STORE_PATH = DATA_DIR / DB_NAME / f"{STORE_NAME}.json"


class JsonRecordStore:
    """
    Espace clé/valeur persistant dans un fichier JSON unique :
        {"customers_index": [ids...], "<id>": {...}, ...}
    - Écriture atomique (fichier temporaire + os.replace)
    - Rotation de backups (backup_enabled, backup_keep)
    - N'écrit pas si le contenu ne change pas
    - I/O bloquantes exécutées via asyncio.to_thread
    """

    def __init__(
        self,
        filepath: Union[str, Path] = STORE_PATH,
        *,
        index_key: str = INDEX_KEY,
        backup_enabled: bool = True,
        backup_keep: int = 5,
    ) -> None:
        self.filepath = Path(filepath)
        self.index_key = index_key
        self._lock = threading.Lock()
        self.backup_enabled = backup_enabled
        self.backup_keep = max(0, int(backup_keep))

        try:
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create {self.filepath.parent}: {e}") from e
        if not self.filepath.exists():
            self._write_raw({})

    # ---------------- I/O bas niveau ---------------- #

    def _read_raw(self) -> Dict[str, Any]:
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Fichier corrompu → copie de côté et repart sur un espace vide
            backup = self.filepath.with_suffix(".corrupt.json")
            try:
                shutil.copy2(self.filepath, backup)
            except OSError as e:
                logger.warning("Could not keep corrupt store %s: %s", self.filepath, e)
            logger.warning("Corrupt store %s, starting empty (copy: %s)", self.filepath, backup)
            return {}
        except OSError as e:
            raise StorageError(f"Cannot read {self.filepath}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _rotate_backups(self) -> None:
        if not self.backup_enabled or self.backup_keep <= 0:
            return
        pattern = str(self.filepath.with_suffix(".*.bak.json"))
        files = sorted(glob.glob(pattern))
        # garde les plus récents
        for old in files[: max(0, len(files) - self.backup_keep)]:
            try:
                Path(old).unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove old backup %s: %s", old, e)

    def _write_raw(self, data: Dict[str, Any]) -> None:
        try:
            new_dump = json.dumps(data, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Record is not JSON serializable: {e}") from e

        try:
            # si contenu identique → ne rien faire
            if self.filepath.exists() and self.filepath.read_text(encoding="utf-8") == new_dump:
                return

            if self.backup_enabled and self.filepath.exists():
                ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
                shutil.copy2(self.filepath, self.filepath.with_suffix(f".{ts}.bak.json"))
                self._rotate_backups()

            fd, tmp = tempfile.mkstemp(dir=self.filepath.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(new_dump)
                os.replace(tmp, self.filepath)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {self.filepath}: {e}") from e

    def _mutate(self, change: Callable[[Dict[str, Any]], None]) -> None:
        with self._lock:
            data = self._read_raw()
            change(data)
            self._write_raw(data)

    def _snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self._read_raw()

    # ---------------- Opérations ---------------- #

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        if key == self.index_key:
            return None
        data = await asyncio.to_thread(self._snapshot)
        record = data.get(key)
        return record if isinstance(record, dict) else None

    async def put(self, key: str, record: Dict[str, Any]) -> None:
        if key == self.index_key:
            raise ValueError(f"'{key}' is reserved for the index")
        value = dict(record)
        await asyncio.to_thread(self._mutate, lambda data: data.__setitem__(key, value))

    async def remove(self, key: str) -> None:
        if key == self.index_key:
            raise ValueError(f"'{key}' is reserved for the index")
        await asyncio.to_thread(self._mutate, lambda data: data.pop(key, None))

    async def read_index(self) -> List[str]:
        data = await asyncio.to_thread(self._snapshot)
        ids = data.get(self.index_key)
        if not isinstance(ids, list):
            return []
        return [str(i) for i in ids]

    async def write_index(self, ids: Iterable[str]) -> None:
        index = check_index(ids)
        await asyncio.to_thread(self._mutate, lambda data: data.__setitem__(self.index_key, index))

