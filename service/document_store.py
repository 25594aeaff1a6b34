"""Document store adapter over the Firebase Realtime Database."""

from __future__ import annotations

import copy
import threading
from typing import Any, Callable, Dict, Optional

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError

from config import FIREBASE_CREDENTIALS_PATH, FIREBASE_DATABASE_URL, logger

ValueCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle returned by ``DocumentStore.subscribe``; ``close`` stops updates."""

    def close(self) -> None:
        raise NotImplementedError


class DocumentStore:
    """Tree-structured key/value store with live subscriptions.

    Paths are slash separated (``participants/u1``). Values are JSON-like
    (dicts, lists, strings, numbers, booleans); ``None`` means absent.
    """

    def subscribe(self, path: str, on_value: ValueCallback, on_error: Optional[ErrorCallback] = None) -> Subscription:
        raise NotImplementedError

    def get(self, path: str) -> Any:
        raise NotImplementedError

    def set(self, path: str, value: Any) -> None:
        raise NotImplementedError

    def update(self, path: str, values: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError

    def push(self, path: str, value: Any) -> str:
        raise NotImplementedError


def _split_path(path: str) -> list[str]:
    return [segment for segment in (path or "").split("/") if segment]


def apply_event(snapshot: Any, event_type: str, path: str, data: Any) -> Any:
    """Return a new snapshot with a realtime ``put``/``patch`` event applied.

    ``path`` is relative to the listened reference; ``/`` targets the whole
    snapshot. ``None`` values delete the node they address.
    """
    segments = _split_path(path)

    if event_type == "patch":
        result = snapshot
        for key, value in (data or {}).items():
            child_path = "/".join(segments + _split_path(key))
            result = apply_event(result, "put", child_path, value)
        return result

    if not segments:
        return copy.deepcopy(data)

    root = copy.deepcopy(snapshot) if isinstance(snapshot, dict) else {}
    node = root
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            if data is None:
                return root or None
            child = {}
            node[segment] = child
        node = child

    leaf = segments[-1]
    if data is None:
        node.pop(leaf, None)
    else:
        node[leaf] = copy.deepcopy(data)
    return root or None


class _FirebaseSubscription(Subscription):
    def __init__(self, path: str, registration: Any) -> None:
        self._path = path
        self._registration = registration

    def close(self) -> None:
        if self._registration is None:
            return
        self._registration.close()
        self._registration = None
        logger.info("Closed store subscription", path=self._path)


class FirebaseDocumentStore(DocumentStore):
    """``DocumentStore`` backed by ``firebase_admin.db`` references."""

    def __init__(self, app: Optional[firebase_admin.App] = None) -> None:
        self._app = app

    def _ref(self, path: str) -> db.Reference:
        return db.reference(path or "/", app=self._app)

    def subscribe(self, path: str, on_value: ValueCallback, on_error: Optional[ErrorCallback] = None) -> Subscription:
        lock = threading.Lock()
        state: Dict[str, Any] = {"snapshot": None}

        def _listener(event: db.Event) -> None:
            with lock:
                state["snapshot"] = apply_event(state["snapshot"], event.event_type, event.path, event.data)
                current = copy.deepcopy(state["snapshot"])
            on_value(current)

        try:
            registration = self._ref(path).listen(_listener)
        except FirebaseError as exc:
            logger.exception("Failed to subscribe to store path", path=path)
            if on_error is not None:
                on_error(exc)
            return _FirebaseSubscription(path, None)

        logger.info("Subscribed to store path", path=path)
        return _FirebaseSubscription(path, registration)

    def get(self, path: str) -> Any:
        return self._ref(path).get()

    def set(self, path: str, value: Any) -> None:
        self._ref(path).set(value)

    def update(self, path: str, values: Dict[str, Any]) -> None:
        self._ref(path).update(values)

    def delete(self, path: str) -> None:
        self._ref(path).delete()

    def push(self, path: str, value: Any) -> str:
        return self._ref(path).push(value).key


def init_firebase() -> Optional[FirebaseDocumentStore]:
    """Initialise the Firebase app and return a store, or None on failure."""
    if not FIREBASE_DATABASE_URL:
        logger.error("FIREBASE_DATABASE_URL is not configured")
        return None

    try:
        if FIREBASE_CREDENTIALS_PATH:
            credential = credentials.Certificate(FIREBASE_CREDENTIALS_PATH)
        else:
            credential = credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(credential, {"databaseURL": FIREBASE_DATABASE_URL})
    except (ValueError, IOError, FirebaseError):
        logger.exception("Error initialising Firebase", database_url=FIREBASE_DATABASE_URL)
        return None

    logger.info("Initialised Firebase", database_url=FIREBASE_DATABASE_URL)
    return FirebaseDocumentStore(app)
