"""FastAPI routes for notification operations — queue health and dead letters (admins only)."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from marketplace.access import Actor
from marketplace.api.dependencies import current_actor
from marketplace.api.schemas import DeadLetterListResponse, NotificationRecordResponse, QueueCountsResponse
from marketplace.errors import Forbidden
from marketplace.jobs import get_queue
from marketplace.notification.record import NotificationRecord


def require_admin(actor: Actor = Depends(current_actor)) -> Actor:
    if not actor.is_admin:
        raise Forbidden("Admin access required")
    return actor


notification_router = APIRouter(prefix="/notifications", tags=["notifications"], dependencies=[Depends(require_admin)])


@notification_router.get("/queue", response_model=QueueCountsResponse)
def queue_counts() -> QueueCountsResponse:
    return QueueCountsResponse(counts=get_queue().counts())


@notification_router.get("/dead-letters", response_model=DeadLetterListResponse)
def dead_letters() -> DeadLetterListResponse:
    return DeadLetterListResponse(dead_letters=get_queue().dead_letters())


@notification_router.get("/{record_id}", response_model=NotificationRecordResponse)
def get_record(record_id: str) -> NotificationRecordResponse:
    record = current_domain.repository_for(NotificationRecord).get(record_id)
    return NotificationRecordResponse(
        record_id=str(record.id),
        channel=record.channel,
        target=record.target,
        recipient=record.recipient,
        event_name=record.event_name,
        status=record.status,
        attempts=record.attempts,
        last_error=record.last_error,
        provider_message_id=record.provider_message_id,
        correlation=record.correlation,
        sent_at=record.sent_at,
    )
