"""
Product catalog service.

Products are templates for line items. Documents copy name, price and tax
from a product when they are written, and a line item's product_id is set
to NULL when its product is deleted, so a product can always be removed.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import BillingConfig
from core.errors import NotFound, ValidationFailed
from core.models import Product, ProductCreate, ProductPage, ProductUpdate
from core.storage import storage_errors
from utils.tenant_context import get_current_tenant_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {"name", "description", "hsn_code", "price_cents", "tax_id"}
_NON_NULLABLE = {"name", "price_cents"}


class ProductService:
    """Service for product catalog operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, config: BillingConfig | None = None):
        self.postgres = postgres
        self.audit = audit
        self.config = config or BillingConfig()

    def create(self, data: ProductCreate) -> Product:
        """
        Create a product.

        Raises:
            NotFound: tax_id is not one of the tenant's tax rates
        """
        user_id = get_current_tenant_id()
        if data.tax_id is not None:
            self._require_tax(data.tax_id)

        now = now_utc()
        with storage_errors("save the product"):
            row = self.postgres.execute_returning(
                """
                INSERT INTO products (
                    id, user_id, name, description, hsn_code,
                    price_cents, tax_id, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), user_id, data.name, data.description, data.hsn_code,
                    data.price_cents, data.tax_id, now, now
                )
            )[0]

        product = Product.model_validate(row)

        self.audit.log_change(
            entity_type="product",
            entity_id=product.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )

        logger.info(f"Created product {product.id} ({product.name})")
        return product

    def get_by_id(self, product_id: UUID) -> Product | None:
        row = self.postgres.execute_single(
            "SELECT * FROM products WHERE id = %s AND user_id = %s",
            (product_id, get_current_tenant_id())
        )
        if row is None:
            return None
        return Product.model_validate(row)

    def list_page(self, page: int = 1, limit: int | None = None) -> ProductPage:
        """One page of the tenant's products ordered by name."""
        user_id = get_current_tenant_id()
        limit = min(limit or self.config.default_page_size, self.config.max_page_size)

        total = self.postgres.execute_scalar(
            "SELECT COUNT(*) FROM products WHERE user_id = %s",
            (user_id,)
        ) or 0
        rows = self.postgres.execute(
            """
            SELECT * FROM products
            WHERE user_id = %s
            ORDER BY name ASC, created_at ASC
            LIMIT %s OFFSET %s
            """,
            (user_id, limit, (page - 1) * limit)
        )

        return ProductPage(
            products=[Product.model_validate(row) for row in rows],
            page=page,
            limit=limit,
            total_entries=total,
        )

    def update(self, product_id: UUID, data: ProductUpdate) -> Product:
        """
        Update product fields. Saved documents keep the values they copied.

        Raises:
            NotFound: product missing, or tax_id is not the tenant's
            ValidationFailed: name or price sent as null
        """
        current = self.get_by_id(product_id)
        if current is None:
            raise NotFound("Product", product_id)

        updates = data.model_dump(exclude_unset=True)
        if not updates:
            return current

        for field in _NON_NULLABLE & updates.keys():
            if updates[field] is None:
                raise ValidationFailed(f"{field} cannot be null")
        if updates.get("tax_id") is not None:
            self._require_tax(updates["tax_id"])

        valid_updates = {k: v for k, v in updates.items() if k in _UPDATABLE_COLUMNS}

        set_parts = [f"{field} = %s" for field in valid_updates]
        params = list(valid_updates.values())
        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.extend([product_id, get_current_tenant_id()])

        with storage_errors("save the product"):
            row = self.postgres.execute_returning(
                f"""
                UPDATE products
                SET {', '.join(set_parts)}
                WHERE id = %s AND user_id = %s
                RETURNING *
                """,
                tuple(params)
            )[0]

        updated = Product.model_validate(row)

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                entity_type="product",
                entity_id=product_id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return updated

    def delete(self, product_id: UUID) -> None:
        """
        Delete a product. Line items that pointed at it keep their copied values.

        Raises:
            NotFound: missing or owned by another tenant
        """
        current = self.get_by_id(product_id)
        if current is None:
            raise NotFound("Product", product_id)

        with storage_errors("delete the product"):
            self.postgres.execute(
                "DELETE FROM products WHERE id = %s AND user_id = %s",
                (product_id, get_current_tenant_id())
            )

        self.audit.log_change(
            entity_type="product",
            entity_id=product_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")}
        )
        logger.info(f"Deleted product {product_id} ({current.name})")

    def _require_tax(self, tax_id: UUID) -> None:
        found = self.postgres.execute_scalar(
            "SELECT 1 FROM taxes WHERE id = %s AND user_id = %s",
            (tax_id, get_current_tenant_id())
        )
        if found is None:
            raise NotFound("Tax", tax_id)
