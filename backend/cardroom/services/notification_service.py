# Overview: Service-layer operations for the notification outbox.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import NotificationEvent
from cardroom.time_utils import utcnow


EVENT_SESSION_CLOSED = "session.closed"
EVENT_CREDIT_REQUESTED = "credit.requested"
EVENT_CREDIT_APPROVED = "credit.approved"
EVENT_CREDIT_REJECTED = "credit.rejected"


def publish(event_type: str, payload: dict, *, session_id: int | None = None) -> NotificationEvent:
    """
    Queue an event for the dispatcher.

    Written in the caller's unit of work so the event exists only if the
    ledger change it describes was committed.
    """
    event = NotificationEvent(
        event_type=event_type,
        session_id=session_id,
        payload=payload,
        status=NotificationEvent.STATUS_PENDING,
    )
    db.session.add(event)
    db.session.flush()
    current_app.logger.info("Queued notification %s (%s)", event.id, event_type)
    return event


def pending_events(limit: int = 100) -> list[NotificationEvent]:
    return db.session.query(NotificationEvent).filter_by(
        status=NotificationEvent.STATUS_PENDING
    ).order_by(NotificationEvent.id).limit(limit).all()


def mark_dispatched(event_id: int) -> NotificationEvent | None:
    event = db.session.get(NotificationEvent, event_id)
    if not event:
        return None
    event.status = NotificationEvent.STATUS_DISPATCHED
    event.dispatched_at = utcnow()
    db.session.commit()
    return event
