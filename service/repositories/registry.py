from dataclasses import dataclass, field
from typing import Any, Optional

from config import logger
from core.models import Event
from document_store import DocumentStore
from repositories.payments import PaymentRepository
from repositories.records import (
    ClassRepository,
    EventCategoryRepository,
    EventRepository,
    ParticipantRepository,
    PartnerRepository,
    RecordRepository,
    TrainerRepository,
)


@dataclass
class DashboardStats:
    total_events: int = 0
    total_trainers: int = 0
    total_partners: int = 0
    total_event_categories: int = 0
    total_classes: int = 0
    total_participants: int = 0
    total_payments: int = 0
    recent_events: list[Event] = field(default_factory=list)


@dataclass
class Repositories:
    """Every collection the dashboard works with, sharing one store."""

    store: Optional[DocumentStore]
    payments: PaymentRepository
    participants: ParticipantRepository
    classes: ClassRepository
    events: EventRepository
    trainers: TrainerRepository
    partners: PartnerRepository
    event_categories: EventCategoryRepository

    @classmethod
    def build(cls, store: Optional[DocumentStore]) -> "Repositories":
        return cls(
            store=store,
            payments=PaymentRepository(store),
            participants=ParticipantRepository(store),
            classes=ClassRepository(store),
            events=EventRepository(store),
            trainers=TrainerRepository(store),
            partners=PartnerRepository(store),
            event_categories=EventCategoryRepository(store),
        )

    @property
    def available(self) -> bool:
        return self.store is not None

    def _all(self) -> list[RecordRepository[Any]]:
        return [self.payments, self.participants, self.classes, self.events, self.trainers, self.partners, self.event_categories]

    def start(self) -> None:
        for repository in self._all():
            repository.start()
        logger.info("Started live collections", available=self.available)

    def stop(self) -> None:
        for repository in self._all():
            repository.stop()

    def dashboard_stats(self) -> DashboardStats:
        return DashboardStats(
            total_events=len(self.events.items),
            total_trainers=len(self.trainers.items),
            total_partners=len(self.partners.items),
            total_event_categories=len(self.event_categories.items),
            total_classes=len(self.classes.items),
            total_participants=len(self.participants.items),
            total_payments=len(self.payments.items),
            recent_events=self.events.recent(),
        )
