"""Request helpers shared by the dashboard routes."""

import secrets
import uuid
from functools import wraps
from typing import Any, Callable, Optional

from flask import abort, request, session

from config import logger
from utils.pagination import ListViewState

CSRF_SESSION_KEY = "_csrf_token"
SAFE_CSRF_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}
VIEW_SESSION_KEY = "view_session_id"
LIST_STATE_KEY_PREFIX = "list_state_"


def get_csrf_token() -> str:
    """Return the per-session CSRF token, generating one if missing."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def _is_valid_csrf(token: Optional[str]) -> bool:
    expected = session.get(CSRF_SESSION_KEY)
    if not token or not expected:
        return False
    return secrets.compare_digest(token, expected)


def enforce_csrf_protection() -> None:
    """Abort unsafe requests if the CSRF token is missing or invalid."""
    if request.method in SAFE_CSRF_METHODS:
        get_csrf_token()
        return

    token = request.form.get("csrf_token") or request.headers.get("X-CSRF-Token")
    if not _is_valid_csrf(token):
        logger.warning("CSRF validation failed", route=request.path, method=request.method)
        abort(400, description="Invalid CSRF token")


def get_view_session_id() -> str:
    """Id scoping per-session caches; created on first use."""
    view_session_id = session.get(VIEW_SESSION_KEY)
    if not view_session_id:
        view_session_id = uuid.uuid4().hex
        session[VIEW_SESSION_KEY] = view_session_id
    return view_session_id


def load_list_state(view: str) -> ListViewState:
    return ListViewState.from_dict(session.get(f"{LIST_STATE_KEY_PREFIX}{view}"))


def save_list_state(view: str, state: ListViewState) -> None:
    session[f"{LIST_STATE_KEY_PREFIX}{view}"] = state.to_dict()


def route_handler_logging(function: Callable[..., Any]) -> Callable[..., Any]:
    """Log entry into route handlers."""

    @wraps(function)
    def decorator(*args: Any, **kwargs: Any) -> Any:
        logger.info("Entering route", route=request.path, event_type="USER_TRAIL", method=request.method, view_session_id=session.get(VIEW_SESSION_KEY))

        return function(*args, **kwargs)

    return decorator
