"""Payment file repository and the verification write."""

from typing import Any, Optional

from config import DETAIL_FETCH_MAX_WORKERS, PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS
from core.models import PaymentFile, PaymentFileFormData
from core.payment_details import PaymentDetailCache, PaymentDetailResolver
from document_store import DocumentStore
from repositories.records import RecordRepository
from utils.filters import verified_payments


class PaymentRepository(RecordRepository[PaymentFile]):
    def __init__(self, store: Optional[DocumentStore]) -> None:
        super().__init__(store, "payment_files", PaymentFile, "payment", timestamps=False)

    @property
    def verified(self) -> list[PaymentFile]:
        return verified_payments(self.items)

    def update(self, record_id: str, form: PaymentFileFormData) -> None:
        """
        Replace a payment record, accepting its participant when verified.

        Both paths go out in one multi-location update from the store root,
        so the payment and the participant status change together or not at
        all.

        Args:
            record_id: Payment id to overwrite.
            form: New payment values.
        """
        store = self._require_store()
        updates: dict[str, Any] = {f"{self.path}/{record_id}": form.to_store()}
        if form.verification_status == "verified":
            updates[f"participants/{form.participant_id}/status"] = "accepted"

        self._write("update", f"{self.path}/{record_id}", lambda: store.update("", updates), "Payment updated and participant status refreshed")

    def delete(self, record_id: str, detail_cache: Optional[PaymentDetailCache] = None) -> None:
        super().delete(record_id)
        if detail_cache is not None:
            detail_cache.evict(record_id)

    def resolver(self) -> PaymentDetailResolver:
        return PaymentDetailResolver(self._store, self.get_by_id)

    def detail_cache(self, backend: Any, namespace: str, max_workers: int = DETAIL_FETCH_MAX_WORKERS, timeout: int = PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS) -> PaymentDetailCache:
        return PaymentDetailCache(self.resolver(), backend, namespace, max_workers=max_workers, timeout=timeout)
