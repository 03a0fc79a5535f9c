# orders/services/change_feed.py

"""
IN-PROCESS CHANGE FEED

A tiny pub/sub keyed by (table, event):
    subscribe("orders", callback, event="*") -> Subscription
    publish("orders", "update", {"id": ..., "user_id": ...})

Events: "insert" | "update" | "delete"; "*" subscribes to all three.

Subscribers get the changed record only as a hint. Consumers must re-read
full state (see bump/read of change versions below); nothing here applies
partial patches.

Change versions:
- "orders-version:all"           bumped on every order change
- "orders-version:user:<uuid>"   bumped when that user's order changes
Versions live in the shared cache alias (DatabaseCache) so every worker
bumps and reads the same counters.
Readers compare a version they saw earlier with the current one and
re-fetch the list when it moved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from django.conf import settings
from django.core.cache import caches

logger = logging.getLogger(__name__)

EVENTS = ("insert", "update", "delete")
ALL_EVENTS = "*"

Callback = Callable[[str, str, dict], None]


@dataclass
class Subscription:
    table: str
    event: str
    callback: Callback
    _feed: "ChangeFeed" = field(repr=False, default=None)

    def unsubscribe(self) -> None:
        if self._feed is not None:
            self._feed._remove(self)
            self._feed = None


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subs: list[Subscription] = []

    def subscribe(self, table: str, callback: Callback, event: str = ALL_EVENTS) -> Subscription:
        if event != ALL_EVENTS and event not in EVENTS:
            raise ValueError(f"Unknown event type: {event}")

        sub = Subscription(table=table, event=event, callback=callback, _feed=self)
        with self._lock:
            self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            self._subs = [s for s in self._subs if s is not sub]

    def publish(self, table: str, event: str, record: dict) -> int:
        if event not in EVENTS:
            raise ValueError(f"Unknown event type: {event}")

        with self._lock:
            targets = [
                s for s in self._subs if s.table == table and s.event in (ALL_EVENTS, event)
            ]

        delivered = 0
        for sub in targets:
            try:
                sub.callback(table, event, dict(record))
                delivered += 1
            except Exception:
                # Subscriber failures never reach the writer.
                logger.exception(
                    "Change feed subscriber failed",
                    extra={"table": table, "event": event},
                )
        return delivered


change_feed = ChangeFeed()


def subscribe(table: str, callback: Callback, event: str = ALL_EVENTS) -> Subscription:
    return change_feed.subscribe(table, callback, event)


def publish(table: str, event: str, record: dict) -> int:
    return change_feed.publish(table, event, record)


# -----------------------------
# order change versions
# -----------------------------
ORDERS_TABLE = "orders"
_GLOBAL_KEY = "orders-version:all"


def _user_key(user_id) -> str:
    return f"orders-version:user:{user_id}"


def _versions():
    return caches[getattr(settings, "SHARED_CACHE_ALIAS", "shared")]


def _bump(key: str) -> int:
    store = _versions()
    if store.add(key, 1, timeout=None):
        return 1
    try:
        return store.incr(key)
    except ValueError:
        # evicted between add and incr
        store.set(key, 1, timeout=None)
        return 1


def bump_order_versions(table: str, event: str, record: dict) -> None:
    _bump(_GLOBAL_KEY)
    user_id = record.get("user_id")
    if user_id:
        _bump(_user_key(user_id))


def current_version(*, user_id=None) -> int:
    key = _user_key(user_id) if user_id else _GLOBAL_KEY
    return int(_versions().get(key) or 0)
