"""Live in-memory view of one store collection with an explicit lifecycle."""

import threading
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import ValidationError

from config import logger
from core.models import StoreModel
from document_store import DocumentStore, Subscription

M = TypeVar("M", bound=StoreModel)


class LiveCollection(Generic[M]):
    """
    Keep the records under ``path`` in memory while subscribed.

    ``start`` opens the store subscription and ``stop`` closes it; nothing is
    tied to a request or page lifetime. Every push from the store replaces
    the whole list, so readers always see one consistent snapshot.

    Attributes:
        path: Store path of the collection (e.g. ``payment_files``).
        loading: True until the first snapshot or error arrives.
        error: Last subscription error message, if any.
    """

    def __init__(self, store: Optional[DocumentStore], path: str, model: Type[M]) -> None:
        self._store = store
        self.path = path
        self._model = model
        self._lock = threading.Lock()
        self._items: list[M] = []
        self._subscription: Optional[Subscription] = None
        self.loading = True
        self.error: Optional[str] = None

    @property
    def started(self) -> bool:
        return self._subscription is not None

    def start(self) -> None:
        if self._subscription is not None:
            return
        if self._store is None:
            self.loading = False
            self.error = "Document store is not initialised"
            logger.warning("Skipping subscription; store unavailable", path=self.path)
            return
        self._subscription = self._store.subscribe(self.path, self._on_value, self._on_error)

    def stop(self) -> None:
        if self._subscription is None:
            return
        self._subscription.close()
        self._subscription = None
        logger.info("Stopped live collection", path=self.path)

    def _on_value(self, data: Any) -> None:
        records: list[M] = []
        if isinstance(data, dict):
            for record_id, value in data.items():
                if not isinstance(value, dict):
                    continue
                try:
                    records.append(self._model.from_store(record_id, value))
                except ValidationError as exc:
                    logger.warning("Skipping invalid record", path=self.path, record_id=record_id, error=str(exc))

        with self._lock:
            self._items = records
            self.loading = False
            self.error = None
        logger.debug("Live collection updated", path=self.path, count=len(records))

    def _on_error(self, exc: Exception) -> None:
        with self._lock:
            self.loading = False
            self.error = str(exc)
        logger.error("Live collection subscription failed", path=self.path, error=str(exc))

    @property
    def items(self) -> list[M]:
        with self._lock:
            return list(self._items)

    def get_by_id(self, record_id: str) -> Optional[M]:
        return next((item for item in self.items if item.id == record_id), None)
