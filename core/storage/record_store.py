from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

INDEX_KEY = "customers_index"


class StorageError(RuntimeError):
    """Stockage indisponible (quota, disque, fichier illisible...)."""


@runtime_checkable
class RecordStore(Protocol):
    """
    Stockage clé/valeur des enregistrements + index ordonné des ids.
    Toute classe qui fournit ces coroutines convient (mémoire, JSON, distant...).
    """

    async def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    async def put(self, key: str, record: Dict[str, Any]) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def read_index(self) -> List[str]: ...

    async def write_index(self, ids: Iterable[str]) -> None: ...


def check_index(ids: Iterable[str]) -> List[str]:
    out = list(ids)
    if len(set(out)) != len(out):
        raise ValueError("Index contains duplicate ids")
    return out


class MemoryRecordStore:
    """Implémentation en mémoire (tests, démo). Copie profonde en entrée/sortie."""

    def __init__(self, index_key: str = INDEX_KEY) -> None:
        self.index_key = index_key
        self._records: Dict[str, Dict[str, Any]] = {}
        self._index: List[str] = []
        # si défini, chaque opération lève StorageError (simulation de panne)
        self.fail_with: Optional[BaseException] = None

    def _check_available(self) -> None:
        if self.fail_with is not None:
            raise StorageError("Storage unavailable") from self.fail_with

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        self._check_available()
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, key: str, record: Dict[str, Any]) -> None:
        self._check_available()
        if key == self.index_key:
            raise ValueError(f"'{key}' is reserved for the index")
        self._records[key] = copy.deepcopy(dict(record))

    async def remove(self, key: str) -> None:
        self._check_available()
        self._records.pop(key, None)

    async def read_index(self) -> List[str]:
        self._check_available()
        return list(self._index)

    async def write_index(self, ids: Iterable[str]) -> None:
        self._check_available()
        self._index = check_index(ids)

