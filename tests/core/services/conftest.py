"""In-memory storage fakes for service tests.

FakePostgres.transaction() snapshots the store and restores it when the
block raises, the same all-or-nothing contract PostgresClient.transaction()
gives. FakeDocumentRepository mirrors DocumentRepository over plain dicts,
including the (user_id, number) unique index.
"""

import copy
from contextlib import contextmanager
from datetime import date
from unittest.mock import Mock
from uuid import uuid4

import psycopg2
import psycopg2.errors
import pytest

from core.audit import AuditLogger
from core.event_bus import EventBus
from core.models import (
    Document,
    DocumentCreate,
    DocumentKind,
    LineItem,
    LineItemCreate,
)
from core.repositories.document_repository import header_columns
from utils.timezone import now_utc


class InMemoryStore:
    """Header and item rows per kind, keyed by id."""

    def __init__(self):
        self.headers = {kind: {} for kind in DocumentKind}
        self.items = {kind: {} for kind in DocumentKind}
        # Name of a repository method that should raise a driver error
        self.fail_on: str | None = None
        # Skip the fast-path number check so only the unique index catches duplicates
        self.bypass_number_check = False
        # (kind, document_id) of every row read with lock=True
        self.locked: list = []

    def maybe_fail(self, operation: str) -> None:
        if self.fail_on == operation:
            raise psycopg2.OperationalError(f"connection lost during {operation}")


class FakeTransaction:
    def __init__(self, store: InMemoryStore):
        self.store = store


class FakePostgres:
    """Stands in for PostgresClient; only transaction() is used by DocumentService."""

    def __init__(self, store: InMemoryStore):
        self.store = store
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy((self.store.headers, self.store.items))
        try:
            yield FakeTransaction(self.store)
            self.commits += 1
        except BaseException:
            self.store.headers, self.store.items = snapshot
            self.rollbacks += 1
            raise


class FakeDocumentRepository:
    """Dict-backed DocumentRepository with the same tenant filtering."""

    def __init__(self, tx: FakeTransaction, kind: DocumentKind, tenant_id):
        self.store = tx.store
        self.kind = kind
        self.tenant_id = tenant_id

    @property
    def _headers(self) -> dict:
        return self.store.headers[self.kind]

    @property
    def _items(self) -> dict:
        return self.store.items[self.kind]

    def _owned(self, document_id):
        row = self._headers.get(document_id)
        if row is None or row["user_id"] != self.tenant_id:
            return None
        return row

    def number_exists(self, number, exclude_id=None):
        if self.store.bypass_number_check:
            return False
        return any(
            row["user_id"] == self.tenant_id and row["number"] == number and row["id"] != exclude_id
            for row in self._headers.values()
        )

    def get(self, document_id, with_items=True, lock=False):
        row = self._owned(document_id)
        if row is None:
            return None
        if lock:
            self.store.locked.append((self.kind, document_id))
        items = self.list_items(document_id) if with_items else []
        return self._to_document(row, items)

    def list_items(self, document_id):
        rows = [
            row for row in self._items.values()
            if row["document_id"] == document_id and row["user_id"] == self.tenant_id
        ]
        return [LineItem.model_validate(row) for row in sorted(rows, key=lambda r: r["position"])]

    def list_page(self, filters, limit, offset):
        rows = [row for row in self._headers.values() if row["user_id"] == self.tenant_id]
        if filters.status is not None:
            rows = [row for row in rows if row.get("status") == filters.status]
        if filters.client_id is not None:
            rows = [row for row in rows if row.get("client_id") == filters.client_id]
        if filters.issue_date_from is not None:
            rows = [row for row in rows if row["issue_date"] >= filters.issue_date_from]
        if filters.issue_date_to is not None:
            rows = [row for row in rows if row["issue_date"] <= filters.issue_date_to]
        rows.sort(key=lambda r: (r["issue_date"], r["created_at"]), reverse=True)
        page = rows[offset:offset + limit]
        return [self._to_document(row, self.list_items(row["id"])) for row in page], len(rows)

    def insert(self, fields):
        self.store.maybe_fail("insert")
        columns = header_columns(self.kind)
        if any(
            row["user_id"] == self.tenant_id and row["number"] == fields["number"]
            for row in self._headers.values()
        ):
            raise psycopg2.errors.UniqueViolation("duplicate key value violates unique constraint")

        now = now_utc()
        row = {column: None for column in columns}
        row["discount_cents"] = 0
        if "status" in columns:
            row["status"] = self.kind.initial_status
        row.update({k: v for k, v in fields.items() if k in columns})
        row.update(id=uuid4(), user_id=self.tenant_id, created_at=now, updated_at=now)
        self._headers[row["id"]] = row
        return self._to_document(row, [])

    def update(self, document_id, fields):
        self.store.maybe_fail("update")
        row = self._owned(document_id)
        columns = header_columns(self.kind)
        row.update({k: v for k, v in fields.items() if k in columns})
        row["updated_at"] = now_utc()
        return self._to_document(row, [])

    def delete(self, document_id):
        self.delete_items(document_id)
        self.store.maybe_fail("delete")
        return self._headers.pop(document_id, None) is not None

    def insert_items(self, document_id, items):
        self.store.maybe_fail("insert_items")
        created = []
        for position, item in enumerate(items):
            row = {
                **item.model_dump(),
                "id": uuid4(),
                "user_id": self.tenant_id,
                "document_id": document_id,
                "position": position,
                "created_at": now_utc(),
            }
            self._items[row["id"]] = row
            created.append(LineItem.model_validate(row))
        return created

    def delete_items(self, document_id):
        self.store.maybe_fail("delete_items")
        doomed = [
            item_id for item_id, row in self._items.items()
            if row["document_id"] == document_id and row["user_id"] == self.tenant_id
        ]
        for item_id in doomed:
            del self._items[item_id]
        return len(doomed)

    def _to_document(self, row, items):
        return Document.model_validate({**row, "kind": self.kind, "items": items})


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_postgres(store):
    return FakePostgres(store)


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published(event_bus):
    """Every event the bus delivers, in order."""
    events = []
    for name in (
        "DocumentCreated", "DocumentUpdated", "DocumentDeleted",
        "DocumentStatusChanged", "QuoteConverted",
    ):
        event_bus.subscribe(name, events.append)
    return events


@pytest.fixture
def make_document_service(fake_postgres, audit, event_bus):
    """Build a DocumentService over the in-memory store with a given config."""
    from core.services.document_service import DocumentService

    def _make(config=None):
        return DocumentService(
            fake_postgres, audit, event_bus,
            config=config,
            repository_factory=FakeDocumentRepository,
        )

    return _make


@pytest.fixture
def document_service(make_document_service):
    return make_document_service()


@pytest.fixture
def make_document():
    """Build a valid DocumentCreate: one 2 x 10.00 line with 2.00 tax."""

    def _make(number="INV-001", **overrides):
        items = overrides.pop("items", None) or [
            LineItemCreate(
                product_name="Widget",
                price_cents=1000,
                quantity=2,
                total_price_cents=2000,
                taxable_amount_cents=200,
            )
        ]
        data = {
            "number": number,
            "issue_date": date(2024, 3, 1),
            "due_date": date(2024, 3, 31),
            "sub_total_cents": 1800,
            "total_tax_cents": 200,
            "total_cents": 2000,
            "items": items,
        }
        data.update(overrides)
        return DocumentCreate(**data)

    return _make
