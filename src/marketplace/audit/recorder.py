"""Audit recorder port and its two adapters.

The fulfillment core only ever calls ``record(event_name, payload)``.
Reporting and KPI aggregation read what the recorder stores.
"""

import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from marketplace.audit.event import AuditEvent

logger = structlog.get_logger(__name__)

# Payload keys lifted onto AuditEvent columns; the rest goes into details
_COLUMNS = ("actor_type", "actor_id", "order_id", "user_id", "vendor_id")


class AuditRecorder(ABC):
    @abstractmethod
    def record(self, event_name: str, payload: dict) -> None: ...


class InMemoryAuditRecorder(AuditRecorder):
    """Keeps events in a list for test assertions."""

    def __init__(self):
        self.events: list[dict] = []

    def record(self, event_name: str, payload: dict) -> None:
        self.events.append({"event_name": event_name, **payload})

    def named(self, event_name: str) -> list[dict]:
        return [event for event in self.events if event["event_name"] == event_name]

    def reset(self):
        self.events.clear()


class RepositoryAuditRecorder(AuditRecorder):
    """Persists AuditEvent rows through the domain repository."""

    def record(self, event_name: str, payload: dict) -> None:
        columns = {key: payload.get(key) for key in _COLUMNS if payload.get(key) is not None}
        details = {key: value for key, value in payload.items() if key not in _COLUMNS}
        event = AuditEvent(
            event_name=event_name,
            details=json.dumps(details, default=str),
            recorded_at=datetime.now(UTC),
            **{key: str(value) for key, value in columns.items()},
        )
        current_domain.repository_for(AuditEvent).add(event)
        logger.info("Audit event recorded", event_name=event_name, **columns)
