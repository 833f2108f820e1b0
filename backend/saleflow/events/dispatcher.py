# Overview: In-process publish/subscribe with one concurrent task per subscriber.

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from time import monotonic
from typing import Callable, Optional

from flask import Flask, current_app

from ..extensions import db
from .types import Event

Handler = Callable[[Event], None]

EXTENSION_KEY = "saleflow.events"


class EventDispatcher:
    """
    Fan domain events out to independent subscribers.

    - Subscriptions are keyed by event class; publishing delivers to the
      handlers registered for exactly that class.
    - publish() submits one task per handler to a thread pool and returns
      immediately. Handlers run concurrently, in no particular order.
    - Each task runs inside an application context with its own scoped DB
      session, removed when the task ends.
    - A handler exception is logged at the task boundary. It never reaches
      the publisher and never stops other handlers.
    - Nothing is persisted: an event with no subscribers is dropped.

    One instance per Flask app (see init_app); there is no module-level bus.
    """

    def __init__(self, app: Optional[Flask] = None, *, max_workers: Optional[int] = None):
        self._subscribers: dict[type[Event], list[Handler]] = {}
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._app: Optional[Flask] = None
        self._closed = False
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        workers = self._max_workers or app.config.get("EVENT_DISPATCH_WORKERS", 4)
        self._app = app
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="saleflow-events")
        app.extensions[EXTENSION_KEY] = self

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, event_type: type[Event], handler: Handler) -> None:
        if not (isinstance(event_type, type) and issubclass(event_type, Event)):
            raise TypeError(f"event_type must be an Event subclass, got {event_type!r}")
        with self._lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)

    def unsubscribe(self, event_type: type[Event], handler: Handler) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def subscribers(self, event_type: type[Event]) -> list[Handler]:
        with self._lock:
            return list(self._subscribers.get(event_type, []))

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def publish(self, event: Event) -> list[Future]:
        """
        Deliver event to every current subscriber of its class.

        Returns the scheduled tasks; callers are not expected to wait on them.
        """
        if self._app is None or self._executor is None:
            raise RuntimeError("EventDispatcher is not bound to an application (call init_app)")

        handlers = self.subscribers(type(event))
        if not handlers:
            self._app.logger.debug("No subscribers for %s; event dropped", event.topic)
            return []

        if self._closed:
            self._app.logger.warning("Dispatcher shut down; dropping %s", event.topic)
            return []

        futures = []
        for handler in handlers:
            future = self._executor.submit(self._deliver, handler, event)
            with self._lock:
                self._pending.add(future)
            future.add_done_callback(self._forget)
            futures.append(future)
        return futures

    def _deliver(self, handler: Handler, event: Event) -> None:
        with self._app.app_context():
            try:
                handler(event)
            except Exception:
                current_app.logger.exception(
                    "Subscriber %s failed for %s",
                    getattr(handler, "__qualname__", repr(handler)),
                    event.topic,
                )
            finally:
                db.session.remove()

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def wait_for_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every scheduled delivery has finished.

        Deliveries scheduled by handlers while waiting are waited on too.
        Returns False if the timeout elapsed first. Intended for tests.
        """
        deadline = None if timeout is None else monotonic() + timeout
        while True:
            with self._lock:
                pending = set(self._pending)
            if not pending:
                return True
            remaining = None if deadline is None else max(deadline - monotonic(), 0)
            _, not_done = wait(pending, timeout=remaining)
            if not_done and deadline is not None and monotonic() >= deadline:
                return False

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=wait_for_pending)


def get_dispatcher(app: Optional[Flask] = None) -> EventDispatcher:
    app = app or current_app
    return app.extensions[EXTENSION_KEY]
