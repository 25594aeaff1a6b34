"""Case-insensitive search and status filters for the admin lists."""

from typing import Iterable, Optional

from core.models import Participant, PaymentFile, TrainingClass

ALL_STATUSES = "all"


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle in (haystack or "").casefold()


def filter_payments(payments: Iterable[PaymentFile], query: str = "") -> list[PaymentFile]:
    """Match the query against participant id or file path."""
    needle = (query or "").strip().casefold()
    return [p for p in payments if not needle or _contains(p.participant_id, needle) or _contains(p.file_path, needle)]


def verified_payments(payments: Iterable[PaymentFile]) -> list[PaymentFile]:
    return [p for p in payments if p.verification_status == "verified"]


def filter_classes(classes: Iterable[TrainingClass], query: str = "", status: str = ALL_STATUSES) -> list[TrainingClass]:
    """Match name or category, then narrow by status unless it is ``all``."""
    needle = (query or "").strip().casefold()
    results = []
    for item in classes:
        if needle and not _contains(item.name, needle) and not _contains(item.category, needle):
            continue
        if status and status != ALL_STATUSES and item.status != status:
            continue
        results.append(item)
    return results


def filter_participants(participants: Iterable[Participant], query: str = "", status: str = ALL_STATUSES) -> list[Participant]:
    """Match name or email, then narrow by status unless it is ``all``."""
    needle = (query or "").strip().casefold()
    results = []
    for participant in participants:
        if needle and not _contains(participant.name, needle) and not _contains(participant.email, needle):
            continue
        if status and status != ALL_STATUSES and participant.status != status:
            continue
        results.append(participant)
    return results
