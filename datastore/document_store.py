from __future__ import annotations
import json
import os
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from app.schemas import Alert, Reading
from settings import get_settings

RecordT = TypeVar("RecordT", bound=BaseModel)


class DocumentCollection(Generic[RecordT]):
    """Minimal document collection keyed by each record's ``id`` field.

    Every single insert or update runs under the collection lock and is written
    through to disk before it becomes visible, so one operation is atomic and a
    failed write leaves the collection unchanged. Nothing spans two collections.
    """

    def __init__(
        self,
        name: str,
        model: Type[RecordT],
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.model = model
        self._items: Dict[str, RecordT] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, item: RecordT) -> RecordT:
        key = self._key(item)
        with self._lock:
            if key in self._items:
                raise ValueError(f"Record {key!r} already exists in {self.name!r}.")
            candidate = dict(self._items)
            candidate[key] = item.model_copy(deep=True)
            self._persist(candidate)
            self._items = candidate
        return item.model_copy(deep=True)

    def get(self, key: str) -> Optional[RecordT]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def update(self, key: str, **changes: Any) -> Optional[RecordT]:
        """Apply field changes to one record and return the updated copy."""

        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            updated = self.model.model_validate({**item.model_dump(), **changes})
            candidate = dict(self._items)
            candidate[key] = updated
            self._persist(candidate)
            self._items = candidate
            return updated.model_copy(deep=True)

    def scan(self) -> list[RecordT]:
        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def find(
        self,
        sort_key: Callable[[RecordT], Any],
        descending: bool = False,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[RecordT]:
        """Return a sorted window of records.

        Records with equal sort keys keep storage order, reversed when
        ``descending`` so the most recently stored one comes first.
        """

        if skip < 0:
            raise ValueError("skip must not be negative.")
        if limit is not None and limit < 0:
            raise ValueError("limit must not be negative.")

        with self._lock:
            items = list(self._items.values())
            if descending:
                items.reverse()
            items.sort(key=sort_key, reverse=descending)
            end = None if limit is None else skip + limit
            return [item.model_copy(deep=True) for item in items[skip:end]]

    def count(self, predicate: Optional[Callable[[RecordT], bool]] = None) -> int:
        with self._lock:
            if predicate is None:
                return len(self._items)
            return sum(1 for item in self._items.values() if predicate(item))

    def ping(self) -> bool:
        """Report whether the backing storage is reachable for writes."""

        if not self.persistence_path:
            return True
        directory = self.persistence_path.parent
        return directory.is_dir() and os.access(directory, os.W_OK)

    @staticmethod
    def _key(item: BaseModel) -> str:
        key = getattr(item, "id", None)
        if not isinstance(key, str) or not key:
            raise ValueError("Records must carry a non-empty string id.")
        return key

    def _persist(self, items: Dict[str, RecordT]) -> None:
        if not self.persistence_path:
            return
        payload = [item.model_dump(mode="json") for item in items.values()]
        staging = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        staging.write_text(json.dumps(payload, indent=2))
        staging.replace(self.persistence_path)

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = []

        for payload in data:
            item = self.model.model_validate(payload)
            self._items[self._key(item)] = item


@lru_cache
def build_default_readings(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> DocumentCollection[Reading]:
    settings = get_settings()
    collection_name = settings.readings_name if name is None else name
    collection_path = settings.readings_persistence_path if path is None else path
    persistence = Path(collection_path) if collection_path else None
    return DocumentCollection(name=collection_name, model=Reading, persistence_path=persistence)


@lru_cache
def build_default_alerts(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> DocumentCollection[Alert]:
    settings = get_settings()
    collection_name = settings.alerts_name if name is None else name
    collection_path = settings.alerts_persistence_path if path is None else path
    persistence = Path(collection_path) if collection_path else None
    return DocumentCollection(name=collection_name, model=Alert, persistence_path=persistence)
