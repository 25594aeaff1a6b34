"""
Shared pytest setup for unit tests.

We stub the global ``config`` module so imports do not build AWS sessions or read
Firebase credentials. The production logger accepts structured keyword arguments
(e.g. ``payment_id=...``), which the standard library logger rejects. We use a
LoggerAdapter to capture those kwargs and reattach them as ``extra`` metadata so
test logging stays informative without re-implementing the logger API.

``FakeDocumentStore`` is an in-memory tree with the same surface as the Firebase
adapter; it records every read and write so tests can assert on store traffic.
"""

import itertools
import logging
import os
import sys
import threading
import types
from typing import Any, Callable, Optional

import pytest
from botocore.exceptions import ClientError


class _StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that tolerates structured keyword arguments."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra", {})
        for key, value in list(kwargs.items()):
            if key in {"exc_info", "stack_info", "stacklevel", "extra"}:
                continue
            extra[key] = value
            kwargs.pop(key)
        kwargs["extra"] = extra
        if extra:
            msg = f"{msg} | {extra}"
        return msg, kwargs


def _build_test_logger() -> logging.LoggerAdapter:
    level_name = os.getenv("TEST_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logger = logging.getLogger("training-dashboard.tests")
    if not logger.handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logger.setLevel(level)
    return _StructuredLoggerAdapter(logger, {})


class _FakeS3Client:
    """Records uploads; presigns to a predictable URL."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, str, Optional[dict]]] = []
        self.fail_uploads = False

    def upload_fileobj(self, Fileobj: Any, Bucket: str, Key: str, ExtraArgs: Optional[dict] = None) -> None:
        if self.fail_uploads:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.uploads.append((Bucket, Key, ExtraArgs))

    def generate_presigned_url(self, operation: str, Params: dict, ExpiresIn: int) -> str:
        return f"https://{Params['Bucket']}.example.test/{Params['Key']}?expires={ExpiresIn}"


fake_config = types.ModuleType("config")
fake_config.logger = _build_test_logger()
fake_config.STAGE = "test"
fake_config.S3_BUCKET_NAME = "proof-bucket"
fake_config.s3_client = _FakeS3Client()
fake_config.FIREBASE_DATABASE_URL = None
fake_config.FIREBASE_CREDENTIALS_PATH = None
fake_config.PAYMENTS_PAGE_SIZE = 8
fake_config.DETAIL_FETCH_MAX_WORKERS = 4
fake_config.CACHE_THRESHOLD = 500
fake_config.PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS = 3600
sys.modules["config"] = fake_config

from document_store import DocumentStore, Subscription, apply_event  # noqa: E402


class _FakeSubscription(Subscription):
    def __init__(self, store: "FakeDocumentStore", entry: tuple[str, Callable[[Any], None]]) -> None:
        self._store = store
        self._entry = entry
        self.closed = False

    def close(self) -> None:
        self.closed = True
        self._store._subscribers.remove(self._entry)


class _ClosedSubscription(Subscription):
    def close(self) -> None:
        return None


class FakeDocumentStore(DocumentStore):
    """In-memory document store recording reads and writes."""

    def __init__(self, data: Optional[dict] = None) -> None:
        self._root: Any = data or {}
        self._lock = threading.Lock()
        self._keys = itertools.count(1)
        self._subscribers: list[tuple[str, Callable[[Any], None]]] = []
        self.reads: list[str] = []
        self.writes: list[tuple[str, str, Any]] = []
        self.fail_on: set[str] = set()

    def _value_at(self, path: str) -> Any:
        node = self._root
        for segment in [s for s in path.split("/") if s]:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def _check(self, operation: str, path: str) -> None:
        if operation in self.fail_on:
            raise ConnectionError(f"simulated {operation} failure at {path}")

    def _notify(self) -> None:
        for path, callback in list(self._subscribers):
            callback(self._value_at(path))

    def subscribe(self, path, on_value, on_error=None):
        if "subscribe" in self.fail_on:
            if on_error is not None:
                on_error(ConnectionError("simulated subscribe failure"))
            return _ClosedSubscription()
        entry = (path, on_value)
        self._subscribers.append(entry)
        on_value(self._value_at(path))
        return _FakeSubscription(self, entry)

    def get(self, path):
        with self._lock:
            self.reads.append(path)
            self._check("get", path)
            return self._value_at(path)

    def set(self, path, value):
        self._check("set", path)
        with self._lock:
            self.writes.append(("set", path, value))
            self._root = apply_event(self._root, "put", path, value) or {}
        self._notify()

    def update(self, path, values):
        self._check("update", path)
        with self._lock:
            self.writes.append(("update", path, values))
            self._root = apply_event(self._root, "patch", path, values) or {}
        self._notify()

    def delete(self, path):
        self._check("delete", path)
        with self._lock:
            self.writes.append(("delete", path, None))
            self._root = apply_event(self._root, "put", path, None) or {}
        self._notify()

    def push(self, path, value):
        self._check("push", path)
        key = f"-key{next(self._keys):04d}"
        with self._lock:
            self.writes.append(("push", f"{path}/{key}", value))
            self._root = apply_event(self._root, "put", f"{path}/{key}", value) or {}
        self._notify()
        return key


class DummyCache:
    """flask-caching stand-in that records writes."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.set_calls: list[tuple[str, Any, Optional[int]]] = []

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def set(self, key: str, value: Any, timeout: Optional[int] = None) -> None:
        self.set_calls.append((key, dict(value) if isinstance(value, dict) else value, timeout))
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore(
        {
            "participants": {
                "u1": {"name": "Alice", "email": "alice@example.com", "phoneNumber": "0812", "classId": "c1", "status": "pending", "type": "class", "createdAt": 1714521600000},
                "u2": {"name": "Bob", "email": "bob@example.com", "classId": "c-missing", "status": "pending", "type": "class"},
                "u3": {"name": "Cara", "email": "cara@example.com", "eventId": "e1", "status": "accepted", "type": "event"},
            },
            "classes": {
                "c1": {"name": "Yoga", "category": "Wellness", "type": "no private", "price": 100, "status": "active"},
            },
            "events": {
                "e1": {"title": "Summit", "location": "Hall A", "status": "upcoming", "createdAt": 10},
            },
            "payment_files": {
                "p1": {"participantId": "u1", "filePath": "https://files.example.com/p1.png", "verified": False, "verificationStatus": "pending"},
            },
        }
    )


@pytest.fixture
def dummy_cache() -> DummyCache:
    return DummyCache()


@pytest.fixture
def make_store() -> Callable[..., FakeDocumentStore]:
    return FakeDocumentStore
