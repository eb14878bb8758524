from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    collection: str
    doc_id: str
    data: dict = field(default_factory=dict)
    deleted: bool = False


Listener = Callable[[ChangeEvent], Any]
Predicate = Callable[[ChangeEvent], bool]


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``.

    Every subscription must be cancelled; use it as a context manager to
    scope the release.
    """

    def __init__(self, feed: "ChangeFeed", sub_id: int):
        self._feed = feed
        self._id = sub_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._feed._remove(self._id)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.cancel()


class ChangeFeed:
    """In-process change notifications published by the repositories after writes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._listeners: dict[int, tuple[str, Optional[Predicate], Listener]] = {}

    def subscribe(self, collection: str, listener: Listener, *, where: Optional[Predicate] = None) -> Subscription:
        with self._lock:
            sub_id = next(self._ids)
            self._listeners[sub_id] = (collection, where, listener)
        return Subscription(self, sub_id)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [
                (where, listener)
                for collection, where, listener in self._listeners.values()
                if collection == event.collection
            ]
        for where, listener in targets:
            if where is not None and not where(event):
                continue
            try:
                listener(event)
            except Exception:
                # A broken listener must not fail the write that triggered it.
                logger.exception("Change listener failed for %s/%s", event.collection, event.doc_id)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _remove(self, sub_id: int) -> None:
        with self._lock:
            self._listeners.pop(sub_id, None)
