"""CRUD repositories for the dashboard collections."""

import time
from typing import Any, Callable, Generic, Optional, Type, TypeVar

from config import logger
from core.models import (
    Event,
    EventCategory,
    Participant,
    Partner,
    StoreModel,
    Trainer,
    TrainingClass,
)
from document_store import DocumentStore
from exceptions import DocumentStoreUnavailableError, RecordWriteError
from repositories.live_collection import LiveCollection
from utils.notifications import notify

M = TypeVar("M", bound=StoreModel)


def now_millis() -> int:
    return int(time.time() * 1000)


class RecordRepository(Generic[M]):
    """Live list plus add/update/delete for one collection path.

    Write failures are logged, flashed, and re-raised as ``RecordWriteError``
    so the submitting form can stay open.
    """

    def __init__(self, store: Optional[DocumentStore], path: str, model: Type[M], label: str, timestamps: bool = True) -> None:
        self._store = store
        self.path = path
        self.label = label
        self._timestamps = timestamps
        self.live: LiveCollection[M] = LiveCollection(store, path, model)

    def start(self) -> None:
        self.live.start()

    def stop(self) -> None:
        self.live.stop()

    @property
    def items(self) -> list[M]:
        return self.live.items

    @property
    def loading(self) -> bool:
        return self.live.loading

    def get_by_id(self, record_id: str) -> Optional[M]:
        return self.live.get_by_id(record_id)

    def _require_store(self) -> DocumentStore:
        if self._store is None:
            notify("error", "Document store is not initialised", path=self.path)
            raise DocumentStoreUnavailableError()
        return self._store

    def _write(self, operation: str, path: str, action: Callable[[], Any], success_message: str) -> Any:
        try:
            result = action()
        except Exception as exc:
            logger.exception("Store write failed", operation=operation, path=path)
            notify("error", f"Failed to {operation} {self.label}", path=path)
            raise RecordWriteError(operation, path) from exc
        notify("success", success_message, path=path)
        return result

    def add(self, form: StoreModel) -> str:
        """Append a new record under a generated key and return that key."""
        store = self._require_store()
        value = form.to_store()
        if self._timestamps:
            stamp = now_millis()
            value.update({"createdAt": stamp, "updatedAt": stamp})
        return self._write("add", self.path, lambda: store.push(self.path, value), f"{self.label.capitalize()} added")

    def update(self, record_id: str, form: StoreModel) -> None:
        """Merge the form values into an existing record."""
        store = self._require_store()
        path = f"{self.path}/{record_id}"
        value = form.to_store()
        if self._timestamps:
            value["updatedAt"] = now_millis()
        self._write("update", path, lambda: store.update(path, value), f"{self.label.capitalize()} updated")

    def delete(self, record_id: str) -> None:
        store = self._require_store()
        path = f"{self.path}/{record_id}"
        self._write("delete", path, lambda: store.delete(path), f"{self.label.capitalize()} deleted")


class ClassRepository(RecordRepository[TrainingClass]):
    def __init__(self, store: Optional[DocumentStore]) -> None:
        super().__init__(store, "classes", TrainingClass, "class")


class EventRepository(RecordRepository[Event]):
    def __init__(self, store: Optional[DocumentStore]) -> None:
        super().__init__(store, "events", Event, "event")

    def recent(self, limit: int = 5) -> list[Event]:
        return sorted(self.items, key=lambda e: e.created_at or 0, reverse=True)[:limit]


class TrainerRepository(RecordRepository[Trainer]):
    def __init__(self, store: Optional[DocumentStore]) -> None:
        super().__init__(store, "trainers", Trainer, "trainer")


class PartnerRepository(RecordRepository[Partner]):
    def __init__(self, store: Optional[DocumentStore]) -> None:
        super().__init__(store, "partners", Partner, "partner")


class EventCategoryRepository(RecordRepository[EventCategory]):
    def __init__(self, store: Optional[DocumentStore]) -> None:
        super().__init__(store, "event_categories", EventCategory, "event category")


class ParticipantRepository(RecordRepository[Participant]):
    """Participants register externally; the dashboard only reads them."""

    def __init__(self, store: Optional[DocumentStore]) -> None:
        super().__init__(store, "participants", Participant, "participant")

    def by_event(self, event_id: str) -> list[Participant]:
        return [p for p in self.items if p.event_id == event_id]

    def by_class(self, class_id: str) -> list[Participant]:
        return [p for p in self.items if p.class_id == class_id]
