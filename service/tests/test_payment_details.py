"""Unit tests for the payment detail resolver and session cache."""

from typing import Optional

import pytest

import cache_provider
import config
from app import create_app
from core.models import PaymentFile
from core.payment_details import PaymentDetailCache, PaymentDetailResolver
from repositories.registry import Repositories


def _lookup(*payments: PaymentFile):
    by_id = {p.id: p for p in payments}

    def find(payment_id: str) -> Optional[PaymentFile]:
        return by_id.get(payment_id)

    return find


def _payment(payment_id: str, participant_id: str) -> PaymentFile:
    return PaymentFile(id=payment_id, participant_id=participant_id, file_path=f"proofs/{payment_id}.png")


def test_resolve_joins_participant_and_class(store) -> None:
    resolver = PaymentDetailResolver(store, _lookup(_payment("p1", "u1")))

    detail = resolver.resolve("p1")

    assert detail is not None
    assert detail.participant.id == "u1"
    assert detail.participant.name == "Alice"
    assert detail.class_ is not None
    assert detail.class_.id == "c1"
    assert detail.class_.name == "Yoga"
    assert store.reads == ["participants/u1", "classes/c1"]


def test_resolve_unknown_payment_does_not_touch_store(store) -> None:
    resolver = PaymentDetailResolver(store, _lookup())

    assert resolver.resolve("nope") is None
    assert store.reads == []


def test_resolve_missing_participant_skips_class_lookup(store) -> None:
    resolver = PaymentDetailResolver(store, _lookup(_payment("p9", "ghost")))

    assert resolver.resolve("p9") is None
    assert store.reads == ["participants/ghost"]


def test_resolve_missing_class_keeps_participant(store) -> None:
    resolver = PaymentDetailResolver(store, _lookup(_payment("p2", "u2")))

    detail = resolver.resolve("p2")

    assert detail is not None
    assert detail.participant.name == "Bob"
    assert detail.class_ is None


def test_resolve_participant_without_class_id(store) -> None:
    resolver = PaymentDetailResolver(store, _lookup(_payment("p3", "u3")))

    detail = resolver.resolve("p3")

    assert detail is not None
    assert detail.class_ is None
    assert store.reads == ["participants/u3"]


def test_resolve_store_error_is_unavailable(store) -> None:
    store.fail_on.add("get")
    resolver = PaymentDetailResolver(store, _lookup(_payment("p1", "u1")))

    assert resolver.resolve("p1") is None


def test_resolve_without_store_is_unavailable() -> None:
    resolver = PaymentDetailResolver(None, _lookup(_payment("p1", "u1")))

    assert resolver.resolve("p1") is None


def _cache(store, dummy_cache, *payments: PaymentFile) -> PaymentDetailCache:
    resolver = PaymentDetailResolver(store, _lookup(*payments))
    return PaymentDetailCache(resolver, dummy_cache, "session-1", max_workers=4)


def test_ensure_fetches_misses_and_merges_once(store, dummy_cache) -> None:
    cache = _cache(store, dummy_cache, _payment("p1", "u1"), _payment("p2", "u2"))

    details = cache.ensure(["p1", "p2"])

    assert set(details) == {"p1", "p2"}
    assert len(dummy_cache.set_calls) == 1
    key, merged, timeout = dummy_cache.set_calls[0]
    assert key == "session-1_payment_details"
    assert set(merged) == {"p1", "p2"}
    assert timeout == 3600


def test_ensure_cache_hit_issues_no_reads(store, dummy_cache) -> None:
    cache = _cache(store, dummy_cache, _payment("p1", "u1"))
    cache.ensure(["p1"])
    reads_after_first = list(store.reads)

    details = cache.ensure(["p1"])

    assert details["p1"].participant.name == "Alice"
    assert store.reads == reads_after_first
    assert len(dummy_cache.set_calls) == 1


def test_ensure_only_fetches_new_ids_on_next_page(store, dummy_cache) -> None:
    cache = _cache(store, dummy_cache, _payment("p1", "u1"), _payment("p3", "u3"))
    cache.ensure(["p1"])
    store.reads.clear()

    cache.ensure(["p1", "p3"])

    assert store.reads == ["participants/u3"]
    _, merged, _ = dummy_cache.set_calls[-1]
    assert set(merged) == {"p1", "p3"}


def test_ensure_leaves_unavailable_ids_out_of_merge(store, dummy_cache) -> None:
    cache = _cache(store, dummy_cache, _payment("p1", "u1"), _payment("p9", "ghost"))

    details = cache.ensure(["p1", "p9"])

    assert set(details) == {"p1"}
    _, merged, _ = dummy_cache.set_calls[0]
    assert set(merged) == {"p1"}

    # unavailable ids are attempted again on the next call
    store.reads.clear()
    cache.ensure(["p1", "p9"])
    assert store.reads == ["participants/ghost"]


def test_ensure_with_nothing_resolved_writes_nothing(store, dummy_cache) -> None:
    cache = _cache(store, dummy_cache, _payment("p9", "ghost"))

    assert cache.ensure(["p9"]) == {}
    assert dummy_cache.set_calls == []


def test_evict_removes_entry_immediately(store, dummy_cache) -> None:
    cache = _cache(store, dummy_cache, _payment("p1", "u1"), _payment("p3", "u3"))
    cache.ensure(["p1", "p3"])

    cache.evict("p1")

    assert cache.get("p1") is None
    assert cache.get_many(["p1", "p3"]).keys() == {"p3"}


def test_evicting_last_entry_drops_session_key(store, dummy_cache) -> None:
    cache = _cache(store, dummy_cache, _payment("p1", "u1"))
    cache.ensure(["p1"])

    cache.evict("p1")
    cache.evict("p1")

    assert cache.key not in dummy_cache.data


def test_entries_are_not_refreshed_after_source_changes(store, dummy_cache) -> None:
    cache = _cache(store, dummy_cache, _payment("p1", "u1"))
    cache.ensure(["p1"])

    store.update("participants/u1", {"name": "Alicia"})

    assert cache.ensure(["p1"])["p1"].participant.name == "Alice"


def test_namespaces_are_isolated(store, dummy_cache) -> None:
    resolver = PaymentDetailResolver(store, _lookup(_payment("p1", "u1")))
    first = PaymentDetailCache(resolver, dummy_cache, "session-a")
    second = PaymentDetailCache(resolver, dummy_cache, "session-b")
    first.ensure(["p1"])

    assert second.get_many(["p1"]) == {}


def test_evict_only_touches_own_namespace(store, dummy_cache) -> None:
    resolver = PaymentDetailResolver(store, _lookup(_payment("p1", "u1")))
    deleting = PaymentDetailCache(resolver, dummy_cache, "session-a")
    other = PaymentDetailCache(resolver, dummy_cache, "session-b")
    deleting.ensure(["p1"])
    other.ensure(["p1"])

    deleting.evict("p1")

    assert deleting.get("p1") is None
    assert other.get("p1") is not None
    assert dummy_cache.set_calls[-1][2] == 3600


def test_empty_namespace_is_rejected(store, dummy_cache) -> None:
    resolver = PaymentDetailResolver(store, _lookup())

    with pytest.raises(ValueError):
        PaymentDetailCache(resolver, dummy_cache, "")


def _bulk_store(make_store, count: int):
    participants = {f"u{i}": {"name": f"Person {i}"} for i in range(count)}
    payments = [_payment(f"p{i}", f"u{i}") for i in range(count)]
    return make_store({"participants": participants}), payments


def _simple_cache(tmp_path):
    create_app(repositories=Repositories.build(None), start_collections=False, instance_path=str(tmp_path))
    return cache_provider.get_cache()


def test_simple_cache_keeps_every_detail_past_threshold(make_store, tmp_path) -> None:
    store, payments = _bulk_store(make_store, 600)
    backend = _simple_cache(tmp_path)
    cache = PaymentDetailCache(PaymentDetailResolver(store, _lookup(*payments)), backend, "session-1", max_workers=4)
    ids = [p.id for p in payments]
    assert len(ids) > config.CACHE_THRESHOLD

    cache.ensure(ids)
    store.reads.clear()
    details = cache.ensure(ids)

    assert len(details) == 600
    assert store.reads == []


def test_simple_cache_keeps_sessions_below_threshold(make_store, tmp_path) -> None:
    store, payments = _bulk_store(make_store, 3)
    backend = _simple_cache(tmp_path)
    resolver = PaymentDetailResolver(store, _lookup(*payments))
    ids = [p.id for p in payments]
    caches = [PaymentDetailCache(resolver, backend, f"session-{n}") for n in range(config.CACHE_THRESHOLD)]
    for cache in caches:
        cache.ensure(ids)
    store.reads.clear()

    for cache in caches:
        cache.ensure(ids)

    assert store.reads == []
