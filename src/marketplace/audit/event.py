"""AuditEvent aggregate — append-only analytics and audit log rows."""

from protean.fields import DateTime, Identifier, String, Text

from marketplace.domain import marketplace


@marketplace.aggregate
class AuditEvent:
    event_name = String(required=True, max_length=100)
    actor_type = String(max_length=20)
    actor_id = String(max_length=255)
    order_id = Identifier()
    user_id = Identifier()
    vendor_id = Identifier()
    details = Text()  # JSON
    recorded_at = DateTime(required=True)
