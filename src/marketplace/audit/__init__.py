"""Audit recorder registry.

Provides get_recorder() / set_recorder() / reset_recorder() to swap the
active recorder, plus record_safely() which every post-commit caller uses so
that an audit failure never undoes or fails a business operation.
"""

import structlog

from marketplace.audit.recorder import AuditRecorder, RepositoryAuditRecorder

logger = structlog.get_logger(__name__)

_current_recorder: AuditRecorder | None = None


def get_recorder() -> AuditRecorder:
    """Return the active recorder. Defaults to RepositoryAuditRecorder."""
    global _current_recorder
    if _current_recorder is None:
        _current_recorder = RepositoryAuditRecorder()
    return _current_recorder


def set_recorder(recorder: AuditRecorder) -> None:
    global _current_recorder
    _current_recorder = recorder


def reset_recorder() -> None:
    global _current_recorder
    _current_recorder = None


def record_safely(event_name: str, payload: dict) -> None:
    try:
        get_recorder().record(event_name, payload)
    except Exception as exc:
        logger.error("Audit record failed", event_name=event_name, error=str(exc))
