"""
Server-Sent Events stream over the realtime change feed.

``GET /api/realtime/<table>?event=UPDATE&filter=is_available=eq.true``
keeps the connection open and writes one ``data:`` frame per committed
change. Public tables (sellers, drinks, ratings) may be watched by
anyone. Favourites, contact requests and orders need a token and are
always narrowed to the caller's own rows. The subscription is dropped
when the client disconnects.
"""

from __future__ import annotations

import json
import logging
import queue

from flask import Blueprint, Response, current_app, request

from ..errors import AuthenticationError, ValidationError
from ..realtime import Change
from .common import optional_user_id


logger = logging.getLogger(__name__)

realtime_bp = Blueprint("realtime", __name__)

# table -> column that must equal the caller's id
SCOPED_TABLES = {
    "favorites": "buyer_id",
    "contact_requests": "seller_id",
    "order_history": "seller_id",
}
QUEUE_SIZE = 100


def _frame(change: Change) -> str:
    return f"event: {change.event}\ndata: {json.dumps(change.to_dict())}\n\n"


@realtime_bp.route("/realtime/<string:table>", methods=["GET"])
def stream_changes(table: str) -> Response:
    feed = current_app.extensions["change_feed"]
    heartbeat = current_app.config.get("REALTIME_HEARTBEAT_SECONDS", 15)
    row_filter = request.args.get("filter") or None

    if table in SCOPED_TABLES:
        user_id = optional_user_id()
        if user_id is None:
            raise AuthenticationError("Sign in to follow this feed.")
        if row_filter:
            raise ValidationError("Filters are not supported on this feed.", fields={"filter": row_filter})
        row_filter = f"{SCOPED_TABLES[table]}=eq.{user_id}"

    events: queue.Queue = queue.Queue(maxsize=QUEUE_SIZE)

    def deliver(change: Change) -> None:
        try:
            events.put_nowait(change)
        except queue.Full:
            logger.warning("Dropping %s change for a slow realtime client on %s", change.event, table)

    subscription = feed.subscribe(
        f"sse:{table}", table, deliver, event=request.args.get("event", "*"), filter=row_filter
    )

    def generate():
        try:
            while True:
                try:
                    change = events.get(timeout=heartbeat)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                yield _frame(change)
        finally:
            subscription.unsubscribe()
            logger.debug("Realtime client left %s", table)

    response = Response(
        generate(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
    # the generator's finally block never runs if streaming never started
    response.call_on_close(subscription.unsubscribe)
    return response
