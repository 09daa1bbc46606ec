"""Event sinks: fire-and-forget observers of reservation transitions"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from meeting_rooms.domain.enums import EventName
from meeting_rooms.domain.repositories import EventSink

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoggingEventSink(EventSink):
    async def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        reservation = payload.get("reservation", {})
        logger.info(
            "event=%s reservation=%s room=%s status=%s actor=%s",
            event_name,
            reservation.get("reservation_id"),
            reservation.get("room_id"),
            reservation.get("status"),
            payload.get("actor_id"),
        )


class AuditEntry(BaseModel):
    entry_id: UUID = Field(default_factory=uuid4)
    event: str
    reservation_id: Optional[str] = None
    actor_id: Optional[str] = None
    status: Optional[str] = None
    occurred_at: datetime = Field(default_factory=_utcnow)
    snapshot: Dict[str, Any] = {}


class AuditTrailSink(EventSink):
    """Keeps an ordered in-memory audit trail of every transition"""

    def __init__(self):
        self._entries: List[AuditEntry] = []

    async def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        reservation = payload.get("reservation", {})
        self._entries.append(AuditEntry(
            event=event_name,
            reservation_id=reservation.get("reservation_id"),
            actor_id=payload.get("actor_id"),
            status=reservation.get("status"),
            snapshot=reservation,
        ))

    def trail(self, reservation_id: UUID) -> List[AuditEntry]:
        return [e for e in self._entries if e.reservation_id == str(reservation_id)]

    def entries(self) -> List[AuditEntry]:
        return list(self._entries)


class Notification(BaseModel):
    notification_id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    reservation_id: Optional[str] = None
    type: str
    title: str
    message: str
    sent_at: datetime = Field(default_factory=_utcnow)
    is_read: bool = False
    read_at: Optional[datetime] = None


_ORGANIZER_NOTICES = {
    EventName.APPROVED.value: ("reservation_approved", "Reservation approved"),
    EventName.REJECTED.value: ("reservation_rejected", "Reservation rejected"),
    EventName.CANCELLED.value: ("reservation_cancelled", "Reservation cancelled"),
}


class NotificationSink(EventSink):
    """Records internal notifications for approvers and organizers.

    ``approver_ids`` yields the users that review new requests (approvers
    and administrators); it is called on every event so directory changes
    are picked up.
    """

    def __init__(self, approver_ids: Callable[[], Iterable[UUID]]):
        self._approver_ids = approver_ids
        self._notifications: List[Notification] = []

    async def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        reservation = payload.get("reservation", {})
        reservation_id = reservation.get("reservation_id")
        title = reservation.get("title", "")

        if event_name == EventName.CREATED.value or (
                event_name == EventName.UPDATED.value and payload.get("approval_reset")):
            for user_id in self._approver_ids():
                self._notify(user_id, reservation_id, "reservation_created",
                             "New reservation request",
                             f"'{title}' is waiting for approval")
        elif event_name in _ORGANIZER_NOTICES:
            kind, heading = _ORGANIZER_NOTICES[event_name]
            message = f"Your reservation '{title}' is now {reservation.get('status')}"
            if reservation.get("rejection_reason"):
                message += f". Reason: {reservation['rejection_reason']}"
            self._notify(UUID(reservation["organizer_id"]), reservation_id, kind, heading, message)

    def _notify(self, user_id: UUID, reservation_id: Optional[str], kind: str,
                title: str, message: str) -> None:
        self._notifications.append(Notification(
            user_id=user_id,
            reservation_id=reservation_id,
            type=kind,
            title=title,
            message=message,
        ))
        logger.debug("notification %s queued for user %s", kind, user_id)

    def for_user(self, user_id: UUID, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        found = [n for n in self._notifications
                 if n.user_id == user_id and not (unread_only and n.is_read)]
        return sorted(found, key=lambda n: n.sent_at, reverse=True)[:limit]

    def mark_read(self, notification_id: UUID, user_id: UUID) -> Optional[Notification]:
        for notification in self._notifications:
            if notification.notification_id == notification_id and notification.user_id == user_id:
                notification.is_read = True
                notification.read_at = _utcnow()
                return notification
        return None


class CompositeEventSink(EventSink):
    """Fans an event out; a failing sink never stops the others"""

    def __init__(self, sinks: Iterable[EventSink]):
        self._sinks = list(sinks)

    async def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        for sink in self._sinks:
            try:
                await sink.publish(event_name, payload)
            except Exception:
                logger.exception("Event sink %s failed on %s", type(sink).__name__, event_name)
