"""Callback-scoped logging context.

Every queue operation runs inside ``callback_scope`` so log records
emitted while it is handling a request carry that request's id, even
when they come from collaborators (stores, sinks) that know nothing
about callbacks. Records emitted outside any scope are tagged ``-``.

Usage:
    from callback_queue.logging_context import callback_scope, get_callback_logger

    logger = get_callback_logger(__name__)
    with callback_scope("cb-1a2b3c4d"):
        logger.info("Accepting callback")  # [cb-1a2b3c4d] Accepting callback
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

NO_CALLBACK = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(callback_id)s]: %(message)s"

_current_callback: ContextVar[str] = ContextVar("current_callback", default=NO_CALLBACK)


def get_callback_id() -> str:
    """Id of the callback being handled in this context, or ``-``."""
    return _current_callback.get()


@contextmanager
def callback_scope(callback_id: str) -> Iterator[str]:
    """Tag log records with ``callback_id`` until the block exits."""
    token = _current_callback.set(callback_id)
    try:
        yield callback_id
    finally:
        _current_callback.reset(token)


class CallbackIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "callback_id"):
            record.callback_id = _current_callback.get()  # type: ignore[attr-defined]
        return True


def install_callback_filter(logger: logging.Logger | None = None) -> None:
    """Attach the filter to every handler of ``logger`` (root by default).

    Handler-level filters see records propagated from any logger, so
    ``%(callback_id)s`` is safe to use in handler format strings.
    """
    target = logger or logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(f, CallbackIdFilter) for f in handler.filters):
            handler.addFilter(CallbackIdFilter())


def get_callback_logger(name: str) -> logging.Logger:
    """Return a logger whose own records always carry ``callback_id``."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CallbackIdFilter) for f in logger.filters):
        logger.addFilter(CallbackIdFilter())
    return logger
