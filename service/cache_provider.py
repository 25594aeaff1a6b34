from typing import Any, Optional

from config import PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS, logger

from flask_caching import Cache

_CACHE_STATE: dict[str, Any] = {"cache": None, "repositories": None}


def set_cache(instance: Cache) -> None:
    """Register the shared cache instance."""
    _CACHE_STATE["cache"] = instance


def get_cache() -> Optional[Cache]:
    return _CACHE_STATE["cache"]


def set_repositories(instance: Any) -> None:
    """Register the shared repositories container."""
    _CACHE_STATE["repositories"] = instance
    logger.info("Registered repositories", available=getattr(instance, "available", False))


def get_repositories() -> Any:
    repositories = _CACHE_STATE["repositories"]
    if repositories is None:
        raise RuntimeError("Repositories have not been registered")
    return repositories


def get_payment_detail_cache(namespace: str) -> Any:
    """Build the payment detail cache for one viewing session."""
    cache = get_cache()
    if cache is None:
        raise RuntimeError("Cache has not been registered")
    return get_repositories().payments.detail_cache(cache, namespace, timeout=PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS)
