"""Payment detail denormalisation and the per-session detail cache.

A payment file only references its participant; the payment tables also need
the participant's contact fields and the class they registered for. The
resolver joins ``payment_files -> participants -> classes`` with two one-shot
reads, and ``PaymentDetailCache`` memoises those joins per viewing session so
paging back and forth, or changing the search query, never repeats a lookup.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import ValidationError

from config import DETAIL_FETCH_MAX_WORKERS, PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS, logger
from core.models import Participant, PaymentDetail, PaymentFile, TrainingClass
from document_store import DocumentStore

PaymentLookup = Callable[[str], Optional[PaymentFile]]


class PaymentDetailResolver:
    """Resolve a payment id into its participant and class."""

    def __init__(self, store: Optional[DocumentStore], find_payment: PaymentLookup) -> None:
        self._store = store
        self._find_payment = find_payment

    def resolve(self, payment_id: str) -> Optional[PaymentDetail]:
        """
        Join a payment with its participant and the participant's class.

        Args:
            payment_id: Id of a payment in the current in-memory payment list.

        Returns:
            The joined detail, or None when the payment or participant is
            unavailable. A missing class still returns the participant with
            ``class_`` set to None.
        """
        payment = self._find_payment(payment_id)
        if payment is None or self._store is None:
            return None

        try:
            participant_data = self._store.get(f"participants/{payment.participant_id}")
            if not isinstance(participant_data, dict):
                logger.info("Participant unavailable for payment", payment_id=payment_id, participant_id=payment.participant_id)
                return None
            participant = Participant.from_store(payment.participant_id, participant_data)

            training_class = None
            if participant.class_id:
                class_data = self._store.get(f"classes/{participant.class_id}")
                if isinstance(class_data, dict):
                    training_class = TrainingClass.from_store(participant.class_id, class_data)
                else:
                    logger.info("Class unavailable for participant", payment_id=payment_id, class_id=participant.class_id)
        except ValidationError:
            logger.exception("Invalid participant or class record", payment_id=payment_id)
            return None
        except Exception:
            logger.exception("Failed to fetch payment detail", payment_id=payment_id)
            return None

        return PaymentDetail(participant=participant, class_=training_class)


class PaymentDetailCache:
    """Session-scoped memo of resolved payment details.

    A session's details live as one ``{payment_id: PaymentDetail}`` mapping
    under the single backend key ``{namespace}_payment_details``, so the
    backend's entry count grows with sessions, not with payments. The mapping
    only grows in one merge per ``ensure`` call or shrinks through ``evict``;
    a populated entry is never refreshed. ``timeout`` bounds how long an idle
    session's mapping is kept after its last merge.
    """

    # Serialises read-merge-write of a mapping across request threads.
    _merge_lock = threading.Lock()

    def __init__(self, resolver: PaymentDetailResolver, backend: Any, namespace: str, max_workers: int = DETAIL_FETCH_MAX_WORKERS, timeout: int = PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS) -> None:
        if not namespace:
            raise ValueError("namespace must be a non-empty string")
        self._resolver = resolver
        self._backend = backend
        self._namespace = namespace
        self._max_workers = max(1, max_workers)
        self._timeout = timeout

    @property
    def key(self) -> str:
        return f"{self._namespace}_payment_details"

    def _load(self) -> Dict[str, PaymentDetail]:
        return dict(self._backend.get(self.key) or {})

    def get(self, payment_id: str) -> Optional[PaymentDetail]:
        return self._load().get(payment_id)

    def get_many(self, payment_ids: Iterable[str]) -> Dict[str, PaymentDetail]:
        """Return cached details for the given ids, skipping misses."""
        details = self._load()
        return {pid: details[pid] for pid in dict.fromkeys(payment_ids) if pid in details}

    def ensure(self, payment_ids: Iterable[str]) -> Dict[str, PaymentDetail]:
        """
        Make sure every id has a resolved detail, fetching only cache misses.

        Misses are resolved concurrently. Results are merged in a single
        write once every lookup has settled; ids that failed or are
        unavailable are left out and will be attempted again next time.

        Args:
            payment_ids: Payment ids shown on the current page.

        Returns:
            Mapping of payment id to detail for every id that is available.
        """
        ids = list(dict.fromkeys(pid for pid in payment_ids if pid))
        cached = self.get_many(ids)
        missing = [pid for pid in ids if pid not in cached]
        if not missing:
            return cached

        logger.info("Resolving payment details", namespace=self._namespace, missing=len(missing), cached=len(cached))
        resolved: Dict[str, PaymentDetail] = {}
        worker_count = min(self._max_workers, len(missing))

        with ThreadPoolExecutor(max_workers=worker_count) as executor:
            futures = {executor.submit(self._resolver.resolve, pid): pid for pid in missing}
            for future in as_completed(futures):
                payment_id = futures[future]
                try:
                    detail = future.result()
                except Exception:
                    logger.exception("Payment detail lookup failed", payment_id=payment_id)
                    continue
                if detail is not None:
                    resolved[payment_id] = detail

        if resolved:
            with self._merge_lock:
                merged = self._load()
                merged.update(resolved)
                self._backend.set(self.key, merged, timeout=self._timeout)

        logger.info("Merged payment details", namespace=self._namespace, resolved=len(resolved), unavailable=len(missing) - len(resolved))
        return {**cached, **resolved}

    def evict(self, payment_id: str) -> None:
        """
        Drop the cached detail for a payment deleted through this session.

        Only this namespace is touched. Details held by other sessions, and
        payments deleted outside the dashboard, stay in their mappings until
        those expire with ``timeout``; push keys are never reused, so such
        entries are never rendered again.
        """
        with self._merge_lock:
            details = self._load()
            if details.pop(payment_id, None) is None:
                return
            if details:
                self._backend.set(self.key, details, timeout=self._timeout)
            else:
                self._backend.delete(self.key)
        logger.info("Evicted payment detail", namespace=self._namespace, payment_id=payment_id)
