"""Transient user notifications for the dashboard."""

from flask import flash, has_request_context

from config import logger


def notify(category: str, message: str, **context: object) -> None:
    """Flash a message for the next rendered page and log it.

    Outside a request (store listener threads, startup) only the log line is
    written.
    """
    if category == "error":
        logger.error(message, **context)
    else:
        logger.info(message, **context)

    if has_request_context():
        flash(message, category)
