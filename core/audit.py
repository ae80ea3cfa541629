"""
Audit trail for billing mutations.

Every create, update, delete and conversion of a document or tax rate is
logged here. The audit log is append-only and tenant-attributed. When a
Transaction is passed, the entry is written inside it, so an aborted
operation leaves no audit row either.
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient, Transaction
from utils.tenant_context import get_current_tenant_id
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CONVERT = "convert"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Returns:
        {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if nothing changed. updated_at is ignored by default.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    for key in set(old.keys()) | set(new.keys()):
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class AuditLogger:
    """
    Audit trail writer.

    Pass model_dump(mode="json") output so UUIDs, dates and Decimals are
    JSON-compatible:

        audit.log_change(
            entity_type="invoice",
            entity_id=document.id,
            action=AuditAction.CREATE,
            changes={"created": document.model_dump(mode="json")},
            tx=tx,
        )
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        user_id: UUID | None = None,
        tx: Transaction | None = None,
    ) -> None:
        """
        Log an entity change.

        Changes format by action:
        - CREATE: {"created": {full entity data}}
        - UPDATE: {"field": {"old": old_val, "new": new_val}, ...}
        - DELETE: {"deleted": {full entity data at deletion}}
        - CONVERT: {"quote_id": ..., "invoice_id": ...}
        """
        if user_id is None:
            user_id = get_current_tenant_id()

        query = """
            INSERT INTO audit_log (id, user_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            uuid4(),
            user_id,
            entity_type,
            entity_id,
            action.value,
            Json(changes),
            now_utc(),
        )

        if tx is not None:
            tx.execute(query, params)
        else:
            self.postgres.execute(query, params)

    def get_entity_history(self, entity_type: str, entity_id: UUID) -> list[dict[str, Any]]:
        """Full audit history for an entity, newest first."""
        return self.postgres.execute(
            """
            SELECT id, user_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s AND user_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, entity_id, get_current_tenant_id())
        )
