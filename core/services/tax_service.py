"""
Tax rate service.

A tax rate is a named gst percentage with its breakdown (cgst + sgst for
intra-state supply, igst for inter-state). Products and line items point at
a rate by tax_id, so a rate still in use cannot be deleted.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.errors import DependencyConflict, NotFound, ValidationFailed
from core.models import TaxRate, TaxRateCreate, TaxRateUpdate
from core.money import validate_tax_split
from core.storage import storage_errors
from utils.tenant_context import get_current_tenant_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {
    "name", "hsn_sac_code", "description", "gst", "cgst", "sgst", "igst",
}

# Tables whose rows reference a tax rate by tax_id
_DEPENDENT_TABLES = ("products", "invoice_items", "quote_items", "purchase_invoice_items")


class TaxService:
    """Service for tax rate operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    def create(self, data: TaxRateCreate) -> TaxRate:
        """
        Create a tax rate.

        Raises:
            TaxSplitMismatch: breakdown does not add up to gst
        """
        validate_tax_split(data.gst, data.cgst, data.sgst, data.igst)

        user_id = get_current_tenant_id()
        now = now_utc()

        with storage_errors("save the tax rate"):
            row = self.postgres.execute_returning(
                """
                INSERT INTO taxes (
                    id, user_id, name, hsn_sac_code, description,
                    gst, cgst, sgst, igst, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), user_id, data.name, data.hsn_sac_code, data.description,
                    data.gst, data.cgst, data.sgst, data.igst, now, now
                )
            )[0]

        tax = TaxRate.model_validate(row)

        self.audit.log_change(
            entity_type="tax",
            entity_id=tax.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )

        logger.info(f"Created tax rate {tax.id} ({tax.name}, gst {tax.gst})")
        return tax

    def get_by_id(self, tax_id: UUID) -> TaxRate | None:
        row = self.postgres.execute_single(
            "SELECT * FROM taxes WHERE id = %s AND user_id = %s",
            (tax_id, get_current_tenant_id())
        )
        if row is None:
            return None
        return TaxRate.model_validate(row)

    def list_all(self) -> list[TaxRate]:
        """All of the tenant's tax rates ordered by name."""
        rows = self.postgres.execute(
            "SELECT * FROM taxes WHERE user_id = %s ORDER BY name ASC",
            (get_current_tenant_id(),)
        )
        return [TaxRate.model_validate(row) for row in rows]

    def update(self, tax_id: UUID, data: TaxRateUpdate) -> TaxRate:
        """
        Update tax rate fields.

        The breakdown rule is checked on the merged result, so sending only
        cgst is validated against the stored sgst and gst.

        Raises:
            NotFound, TaxSplitMismatch
        """
        current = self.get_by_id(tax_id)
        if current is None:
            raise NotFound("Tax", tax_id)

        updates = data.model_dump(exclude_unset=True)
        if not updates:
            return current

        for field in updates:
            if field not in _UPDATABLE_COLUMNS:
                logger.warning(f"Attempted to update unknown field '{field}' on tax {tax_id}")
        valid_updates = {k: v for k, v in updates.items() if k in _UPDATABLE_COLUMNS}

        if valid_updates.get("name", current.name) is None or valid_updates.get("gst", current.gst) is None:
            raise ValidationFailed("name and gst cannot be null")

        merged = current.model_copy(update=valid_updates)
        validate_tax_split(merged.gst, merged.cgst, merged.sgst, merged.igst)

        set_parts = [f"{field} = %s" for field in valid_updates]
        params = list(valid_updates.values())
        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.extend([tax_id, get_current_tenant_id()])

        with storage_errors("save the tax rate"):
            row = self.postgres.execute_returning(
                f"""
                UPDATE taxes
                SET {', '.join(set_parts)}
                WHERE id = %s AND user_id = %s
                RETURNING *
                """,
                tuple(params)
            )[0]

        updated = TaxRate.model_validate(row)

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                entity_type="tax",
                entity_id=tax_id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return updated

    def delete(self, tax_id: UUID) -> None:
        """
        Delete a tax rate nothing references.

        Raises:
            NotFound: missing or owned by another tenant
            DependencyConflict: products or line items still use the rate
        """
        current = self.get_by_id(tax_id)
        if current is None:
            raise NotFound("Tax", tax_id)

        user_id = get_current_tenant_id()
        in_use = [
            table for table in _DEPENDENT_TABLES
            if self.postgres.execute_scalar(
                f"SELECT 1 FROM {table} WHERE tax_id = %s AND user_id = %s LIMIT 1",
                (tax_id, user_id)
            ) is not None
        ]
        if in_use:
            raise DependencyConflict(
                f"Tax {current.name} is referenced by {in_use[0]} and cannot be deleted",
                [f"referenced by {table}" for table in in_use],
            )

        # A reference added after the checks above still trips the foreign key
        with storage_errors(
            "delete the tax rate",
            on_integrity=lambda e: DependencyConflict(
                f"Tax {current.name} is referenced and cannot be deleted",
                ["referenced by another record"],
            ),
        ):
            self.postgres.execute(
                "DELETE FROM taxes WHERE id = %s AND user_id = %s",
                (tax_id, user_id)
            )

        self.audit.log_change(
            entity_type="tax",
            entity_id=tax_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")}
        )
        logger.info(f"Deleted tax rate {tax_id} ({current.name})")
