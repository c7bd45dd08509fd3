"""Realtime change feed.

Committed row changes on the marketplace tables are fanned out to
subscribers registered on named channels. A subscription names a table,
an event (``INSERT``, ``UPDATE``, ``DELETE`` or ``*``) and optionally a
row filter written the PostgREST way (``is_available=eq.true``).

Changes are captured from the ORM session after each flush and only
published once the transaction commits; a rollback discards them, so
subscribers never see rows that were not persisted. Callbacks run
synchronously on the committing thread and must not block.
"""
from __future__ import annotations

import enum
import itertools
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from flask import current_app, has_app_context
from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from .errors import ValidationError

logger = logging.getLogger(__name__)

EVENTS = ("INSERT", "UPDATE", "DELETE", "*")
FEED_TABLES = ("sellers", "drinks", "ratings", "favorites", "contact_requests", "order_history")
FILTER_OPS = ("eq", "neq", "gt", "gte", "lt", "lte", "in")
PENDING_KEY = "brewnear_pending_changes"


def _jsonable(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def row_to_dict(obj) -> dict[str, Any]:
    """Column values of a mapped object, JSON-friendly."""
    mapper = inspect(obj).mapper
    return {attr.columns[0].name: _jsonable(getattr(obj, attr.key)) for attr in mapper.column_attrs}


@dataclass
class Change:
    table: str
    event: str
    record: dict[str, Any]
    commit_timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "eventType": self.event,
            "new": self.record if self.event != "DELETE" else {},
            "old": self.record if self.event == "DELETE" else {},
            "commit_timestamp": self.commit_timestamp,
        }


def _parse_scalar(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered == "null":
        return None
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            pass
    return raw


@dataclass(frozen=True)
class RowFilter:
    column: str
    op: str
    value: Any

    def matches(self, record: dict[str, Any]) -> bool:
        if self.column not in record:
            return False
        current = record[self.column]
        if self.op == "eq":
            return current == self.value
        if self.op == "neq":
            return current != self.value
        if self.op == "in":
            return current in self.value
        if current is None or self.value is None:
            return False
        try:
            if self.op == "gt":
                return current > self.value
            if self.op == "gte":
                return current >= self.value
            if self.op == "lt":
                return current < self.value
            return current <= self.value
        except TypeError:
            return False


def parse_filter(expression: str) -> RowFilter:
    """Parse ``column=op.value`` (``in`` takes ``(a,b,c)``)."""
    column, sep, rest = expression.partition("=")
    op, dot, raw = rest.partition(".")
    if not sep or not dot or not column or op not in FILTER_OPS:
        raise ValidationError(
            f"Invalid filter '{expression}'. Use column=op.value with op one of: {', '.join(FILTER_OPS)}",
            fields={"filter": expression},
        )
    if op == "in":
        items = raw.strip("()").split(",") if raw.strip("()") else []
        return RowFilter(column, op, tuple(_parse_scalar(item.strip()) for item in items))
    return RowFilter(column, op, _parse_scalar(raw))


@dataclass(eq=False)
class Subscription:
    id: int
    channel: str
    table: str
    event: str
    callback: Callable[[Change], None]
    row_filter: Optional[RowFilter] = None
    feed: Optional["ChangeFeed"] = field(default=None, repr=False)

    def wants(self, change: Change) -> bool:
        if change.table != self.table:
            return False
        if self.event != "*" and change.event != self.event:
            return False
        return self.row_filter is None or self.row_filter.matches(change.record)

    @property
    def active(self) -> bool:
        return self.feed is not None and self.feed.is_subscribed(self)

    def unsubscribe(self) -> None:
        if self.feed is not None:
            self.feed.unsubscribe(self)


class ChangeFeed:
    """Thread-safe registry of subscriptions."""

    def __init__(self, tables: tuple[str, ...] = FEED_TABLES) -> None:
        self.tables = tables
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, channel: str, table: str, callback: Callable[[Change], None],
                  event: str = "*", filter: str | RowFilter | None = None) -> Subscription:
        if table not in self.tables:
            raise ValidationError(f"Table '{table}' does not publish changes.", fields={"table": table})
        event = event.upper()
        if event not in EVENTS:
            raise ValidationError(f"Unknown event '{event}'.", fields={"event": event})
        row_filter = parse_filter(filter) if isinstance(filter, str) else filter
        with self._lock:
            subscription = Subscription(next(self._ids), channel, table, event, callback, row_filter, self)
            self._subscriptions[subscription.id] = subscription
        logger.debug("Subscribed %s to %s %s", channel, event, table)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.pop(subscription.id, None)

    def is_subscribed(self, subscription: Subscription) -> bool:
        with self._lock:
            return subscription.id in self._subscriptions

    def subscriptions(self, channel: str | None = None) -> list[Subscription]:
        with self._lock:
            subs = list(self._subscriptions.values())
        return [s for s in subs if channel is None or s.channel == channel]

    def publish(self, change: Change) -> int:
        """Deliver ``change`` to matching subscribers; returns the delivery count."""
        delivered = 0
        for subscription in self.subscriptions():
            if not subscription.wants(change):
                continue
            try:
                subscription.callback(change)
                delivered += 1
            except Exception:
                logger.exception("Realtime callback failed on channel %s", subscription.channel)
        return delivered


def subscribe_to_seller_availability(feed: ChangeFeed, callback: Callable[[Change], None]) -> Subscription:
    return feed.subscribe("seller-availability", "sellers", callback, event="UPDATE", filter="is_available=eq.true")


def subscribe_to_new_sellers(feed: ChangeFeed, callback: Callable[[Change], None]) -> Subscription:
    return feed.subscribe("new-sellers", "sellers", callback, event="INSERT")


def _capture_changes(session, flush_context) -> None:
    pending = session.info.setdefault(PENDING_KEY, [])
    for kind, objects in (("INSERT", session.new), ("UPDATE", session.dirty), ("DELETE", session.deleted)):
        for obj in objects:
            table = getattr(obj, "__tablename__", None)
            if table not in FEED_TABLES:
                continue
            if kind == "UPDATE" and not session.is_modified(obj, include_collections=False):
                continue
            pending.append(Change(table, kind, row_to_dict(obj)))


def _publish_changes(session) -> None:
    changes = session.info.pop(PENDING_KEY, None)
    if not changes or not has_app_context():
        return
    feed = current_app.extensions.get("change_feed")
    if feed is None:
        return
    for change in changes:
        feed.publish(change)


def _discard_changes(session, *args) -> None:
    session.info.pop(PENDING_KEY, None)


def install_session_hooks() -> None:
    """Attach change capture to every ORM session (idempotent)."""
    hooks = (
        ("after_flush", _capture_changes),
        ("after_commit", _publish_changes),
        ("after_rollback", _discard_changes),
    )
    for name, fn in hooks:
        if not event.contains(Session, name, fn):
            event.listen(Session, name, fn)
