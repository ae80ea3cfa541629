"""
SQL for billing documents and their line items.

One repository instance is bound to one open Transaction, one DocumentKind
and one tenant. Every statement filters on user_id; RLS is the second line
of defence, not the only one.
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from clients.postgres_client import Transaction
from core.models.document import (
    Document,
    DocumentFilter,
    DocumentKind,
    LineItem,
    LineItemCreate,
)
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_BASE_COLUMNS = (
    "number", "issue_date",
    "sub_total_cents", "discount_cents", "total_tax_cents", "total_cents",
    "notes", "gst", "cgst", "sgst", "igst",
)

_HEADER_COLUMNS = {
    DocumentKind.INVOICE: _BASE_COLUMNS + (
        "due_date", "status", "client_id", "shipping_address_id", "quote_id",
    ),
    DocumentKind.QUOTE: _BASE_COLUMNS + (
        "due_date", "status", "client_id", "shipping_address_id",
    ),
    DocumentKind.PURCHASE_INVOICE: _BASE_COLUMNS + (
        "seller_name", "seller_address",
    ),
}

_ITEM_COLUMNS = (
    "product_name", "product_description", "hsn_code",
    "price_cents", "quantity", "total_price_cents", "taxable_amount_cents",
    "product_id", "tax_id",
)


def header_columns(kind: DocumentKind) -> tuple[str, ...]:
    """Columns a document of this kind stores."""
    return _HEADER_COLUMNS[kind]


class DocumentRepository:
    """Document + line item persistence for one kind inside one transaction."""

    def __init__(self, tx: Transaction, kind: DocumentKind, tenant_id: UUID):
        self.tx = tx
        self.kind = kind
        self.tenant_id = tenant_id
        self._table = kind.table
        self._items_table = kind.items_table

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def number_exists(self, number: str, exclude_id: UUID | None = None) -> bool:
        """Fast-path uniqueness check. The unique index is the real guard."""
        query = f"SELECT 1 FROM {self._table} WHERE user_id = %s AND number = %s"
        params: list[Any] = [self.tenant_id, number]
        if exclude_id is not None:
            query += " AND id <> %s"
            params.append(exclude_id)
        return self.tx.execute_scalar(query + " LIMIT 1", tuple(params)) is not None

    def get(self, document_id: UUID, with_items: bool = True, lock: bool = False) -> Document | None:
        """Document owned by the tenant, or None. lock takes a row lock until commit."""
        query = f"SELECT * FROM {self._table} WHERE id = %s AND user_id = %s"
        if lock:
            query += " FOR UPDATE"
        row = self.tx.execute_single(query, (document_id, self.tenant_id))
        if row is None:
            return None

        items = self.list_items(document_id) if with_items else []
        return self._to_document(row, items)

    def list_items(self, document_id: UUID) -> list[LineItem]:
        rows = self.tx.execute(
            f"""
            SELECT * FROM {self._items_table}
            WHERE document_id = %s AND user_id = %s
            ORDER BY position ASC, created_at ASC
            """,
            (document_id, self.tenant_id)
        )
        return [LineItem.model_validate(row) for row in rows]

    def list_page(self, filters: DocumentFilter, limit: int, offset: int) -> tuple[list[Document], int]:
        """Page of documents matching filters, plus the unpaged count."""
        where = ["user_id = %s"]
        params: list[Any] = [self.tenant_id]

        columns = header_columns(self.kind)
        if filters.status is not None and "status" in columns:
            where.append("status = %s")
            params.append(filters.status)
        if filters.client_id is not None and "client_id" in columns:
            where.append("client_id = %s")
            params.append(filters.client_id)
        if filters.issue_date_from is not None:
            where.append("issue_date >= %s")
            params.append(filters.issue_date_from)
        if filters.issue_date_to is not None:
            where.append("issue_date <= %s")
            params.append(filters.issue_date_to)
        if "due_date" in columns:
            if filters.due_date_from is not None:
                where.append("due_date >= %s")
                params.append(filters.due_date_from)
            if filters.due_date_to is not None:
                where.append("due_date <= %s")
                params.append(filters.due_date_to)

        where_sql = " AND ".join(where)
        total = self.tx.execute_scalar(
            f"SELECT COUNT(*) FROM {self._table} WHERE {where_sql}",
            tuple(params)
        ) or 0

        rows = self.tx.execute(
            f"""
            SELECT * FROM {self._table}
            WHERE {where_sql}
            ORDER BY issue_date DESC, created_at DESC
            LIMIT %s OFFSET %s
            """,
            tuple(params) + (limit, offset)
        )
        if not rows:
            return [], total

        items_by_document: dict[str, list[LineItem]] = {}
        item_rows = self.tx.execute(
            f"""
            SELECT * FROM {self._items_table}
            WHERE document_id = ANY(%s::uuid[]) AND user_id = %s
            ORDER BY position ASC, created_at ASC
            """,
            ([row["id"] for row in rows], self.tenant_id)
        )
        for item_row in item_rows:
            item = LineItem.model_validate(item_row)
            items_by_document.setdefault(str(item.document_id), []).append(item)

        documents = [
            self._to_document(row, items_by_document.get(str(row["id"]), []))
            for row in rows
        ]
        return documents, total

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, fields: dict[str, Any]) -> Document:
        """Insert a header row. Unknown keys are dropped with a warning."""
        values = self._known_columns(fields)
        now = now_utc()

        columns = ["id", "user_id", *values.keys(), "created_at", "updated_at"]
        params = [uuid4(), self.tenant_id, *values.values(), now, now]

        row = self.tx.execute_returning(
            f"""
            INSERT INTO {self._table} ({', '.join(columns)})
            VALUES ({', '.join(['%s'] * len(columns))})
            RETURNING *
            """,
            tuple(params)
        )[0]
        return self._to_document(row, [])

    def update(self, document_id: UUID, fields: dict[str, Any]) -> Document:
        """Apply fields to the header and stamp updated_at."""
        values = self._known_columns(fields)

        set_parts = [f"{column} = %s" for column in values]
        params: list[Any] = list(values.values())
        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.extend([document_id, self.tenant_id])

        row = self.tx.execute_returning(
            f"""
            UPDATE {self._table}
            SET {', '.join(set_parts)}
            WHERE id = %s AND user_id = %s
            RETURNING *
            """,
            tuple(params)
        )[0]
        return self._to_document(row, [])

    def delete(self, document_id: UUID) -> bool:
        """Delete a header row and its items."""
        self.delete_items(document_id)
        rows = self.tx.execute_returning(
            f"DELETE FROM {self._table} WHERE id = %s AND user_id = %s RETURNING id",
            (document_id, self.tenant_id)
        )
        return bool(rows)

    def insert_items(self, document_id: UUID, items: list[LineItemCreate]) -> list[LineItem]:
        """Insert items in order; position records the client's ordering."""
        if not items:
            return []

        now = now_utc()
        columns = ("id", "user_id", "document_id", "position", *_ITEM_COLUMNS, "created_at")
        placeholders = "(" + ", ".join(["%s"] * len(columns)) + ")"

        params: list[Any] = []
        for position, item in enumerate(items):
            data = item.model_dump()
            params.extend([uuid4(), self.tenant_id, document_id, position])
            params.extend(data[column] for column in _ITEM_COLUMNS)
            params.append(now)

        rows = self.tx.execute_returning(
            f"""
            INSERT INTO {self._items_table} ({', '.join(columns)})
            VALUES {', '.join([placeholders] * len(items))}
            RETURNING *
            """,
            tuple(params)
        )
        created = [LineItem.model_validate(row) for row in rows]
        return sorted(created, key=lambda item: item.position)

    def delete_items(self, document_id: UUID) -> int:
        rows = self.tx.execute_returning(
            f"DELETE FROM {self._items_table} WHERE document_id = %s AND user_id = %s RETURNING id",
            (document_id, self.tenant_id)
        )
        return len(rows)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _known_columns(self, fields: dict[str, Any]) -> dict[str, Any]:
        columns = header_columns(self.kind)
        for field in fields:
            if field not in columns:
                logger.warning(f"Ignoring unknown field '{field}' for {self.kind.value}")
        return {column: fields[column] for column in columns if column in fields}

    def _to_document(self, row: dict[str, Any], items: list[LineItem]) -> Document:
        return Document.model_validate({**row, "kind": self.kind, "items": items})
