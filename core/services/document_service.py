"""
Document lifecycle for invoices, quotes and purchase invoices.

One service handles all three kinds; DocumentKind picks the tables and the
status rules. Every write follows the same shape:

1. Validate money and status with pure functions. Checks that depend on
   the stored row run inside the transaction against a locked read.
2. Open one transaction, write header + items + audit row, commit.
3. Publish the domain event.

A validation failure therefore never leaves a partial write behind, and a
failure inside the transaction rolls back everything in it.
"""

import logging
from contextlib import contextmanager
from uuid import UUID

import psycopg2
import psycopg2.errors

from clients.postgres_client import PostgresClient, Transaction
from core import lifecycle, money
from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import BillingConfig
from core.errors import (
    DuplicateDocumentNumber,
    NotFound,
    StorageFailure,
    ValidationFailed,
)
from core.event_bus import EventBus
from core.events import (
    DocumentCreated,
    DocumentDeleted,
    DocumentStatusChanged,
    DocumentUpdated,
    QuoteConverted,
)
from core.models import (
    Document,
    DocumentCreate,
    DocumentFilter,
    DocumentKind,
    DocumentPage,
    DocumentUpdate,
    InvoiceStatus,
    LineItemCreate,
    QuoteStatus,
)
from core.repositories.document_repository import DocumentRepository, header_columns
from utils.tenant_context import get_current_tenant_id

logger = logging.getLogger(__name__)

_NON_NULLABLE = {
    "number", "issue_date",
    "sub_total_cents", "discount_cents", "total_tax_cents", "total_cents",
}

_TAX_SPLIT_FIELDS = ("gst", "cgst", "sgst", "igst")

# Header fields copied from a quote onto the invoice it becomes
_CONVERTED_FIELDS = (
    "issue_date", "due_date", "client_id", "shipping_address_id",
    "sub_total_cents", "discount_cents", "total_tax_cents", "total_cents",
    "notes", "gst", "cgst", "sgst", "igst",
)


class DocumentService:
    """Create, update, delete, read and convert billing documents."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        event_bus: EventBus,
        config: BillingConfig | None = None,
        repository_factory=DocumentRepository,
    ):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or BillingConfig()
        self._repository_factory = repository_factory

    # -------------------------------------------------------------------------
    # Transaction scope
    # -------------------------------------------------------------------------

    @contextmanager
    def _transaction(self, kind: DocumentKind, number: str | None = None):
        """
        One atomic unit of work.

        A unique violation on the document number index (a race the fast-path
        check lost) surfaces as DuplicateDocumentNumber; any other driver error
        becomes StorageFailure. Either way the transaction has rolled back.
        """
        try:
            with self.postgres.transaction() as tx:
                yield tx
        except psycopg2.errors.UniqueViolation as e:
            if number is None:
                logger.exception(f"Unexpected unique violation on {kind.value}")
                raise StorageFailure("Could not save the document") from e
            raise DuplicateDocumentNumber(kind.label, number) from e
        except psycopg2.Error as e:
            logger.exception(f"Storage failure on {kind.value}")
            raise StorageFailure(
                "Could not save the document", [str(e).strip() or e.__class__.__name__]
            ) from e

    def _repo(self, tx: Transaction, kind: DocumentKind) -> DocumentRepository:
        return self._repository_factory(tx, kind, get_current_tenant_id())

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, kind: DocumentKind, document_id: UUID) -> Document:
        """
        Load a document with its line items.

        Raises:
            NotFound: missing, or owned by another tenant
        """
        with self._transaction(kind) as tx:
            document = self._repo(tx, kind).get(document_id)

        if document is None:
            raise NotFound(kind.label, document_id)
        return document

    def list(self, kind: DocumentKind, filters: DocumentFilter | None = None) -> DocumentPage:
        """One page of the tenant's documents of a kind, newest issue date first."""
        filters = filters or DocumentFilter()

        if filters.status is not None:
            try:
                status = kind.parse_status(filters.status)
            except ValueError as e:
                raise ValidationFailed(str(e))
            filters = filters.model_copy(update={"status": status})

        limit = min(filters.limit or self.config.default_page_size, self.config.max_page_size)
        offset = (filters.page - 1) * limit

        with self._transaction(kind) as tx:
            documents, total = self._repo(tx, kind).list_page(filters, limit, offset)

        return DocumentPage(
            documents=documents,
            page=filters.page,
            limit=limit,
            total_entries=total,
        )

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create(self, kind: DocumentKind, data: DocumentCreate) -> Document:
        """
        Create a document and its line items atomically.

        All three aggregates (sub_total, total_tax, total) are checked
        against the items before anything is written.

        Raises:
            ValidationFailed: a line item, aggregate, tax split or status is invalid
            DuplicateDocumentNumber: number already used for this kind by the tenant
        """
        status = lifecycle.initial_status(kind, data.status)

        money.validate_line_items(data.items)
        money.validate_document_totals(
            data.items,
            sub_total=data.sub_total_cents,
            total_tax=data.total_tax_cents,
            total=data.total_cents,
            discount=data.discount_cents,
        )
        money.validate_tax_split(data.gst, data.cgst, data.sgst, data.igst)

        fields = self._header_fields(kind, data.model_dump(exclude={"items", "status"}))
        if status is not None:
            fields["status"] = status

        with self._transaction(kind, number=data.number) as tx:
            repo = self._repo(tx, kind)

            if repo.number_exists(data.number):
                raise DuplicateDocumentNumber(kind.label, data.number)

            document = repo.insert(fields)
            items = repo.insert_items(document.id, data.items)
            document = document.model_copy(update={"items": items})

            self.audit.log_change(
                entity_type=kind.value,
                entity_id=document.id,
                action=AuditAction.CREATE,
                changes={
                    "created": document.model_dump(mode="json", exclude={"items"}),
                    "items": len(items),
                },
                tx=tx,
            )

        logger.info(f"Created {kind.value} {document.id} ({document.number}) with {len(items)} items")
        self.event_bus.publish(DocumentCreated.create(document=document))
        return document

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update(self, kind: DocumentKind, document_id: UUID, data: DocumentUpdate) -> Document:
        """
        Apply a partial update.

        Fields the client did not send keep their stored values. Aggregates
        that were sent are checked against the new items when items were
        sent, otherwise against the stored items. Sending items replaces
        the whole item set inside the same transaction as the header.

        Status, aggregate and tax split checks read the row under lock in
        the write transaction, so a concurrent item replacement cannot slip
        in between the check and the write.

        Raises:
            NotFound, ValidationFailed, DuplicateDocumentNumber
        """
        supplied = data.supplied()

        for field in _NON_NULLABLE & supplied.keys():
            if supplied[field] is None:
                raise ValidationFailed(f"{field} cannot be null")
        if data.items_supplied:
            if data.items is None:
                raise ValidationFailed("items cannot be null")
            money.validate_line_items(data.items)

        if not supplied and not data.items_supplied:
            return self.get(kind, document_id)

        new_number = supplied.get("number")

        with self._transaction(kind, number=new_number) as tx:
            repo = self._repo(tx, kind)

            existing = repo.get(document_id, lock=True)
            if existing is None:
                raise NotFound(kind.label, document_id)

            if "status" in supplied:
                supplied["status"] = lifecycle.check_transition(kind, existing.status, supplied["status"])

            self._validate_update_money(existing, supplied, data)

            if any(f in supplied for f in _TAX_SPLIT_FIELDS):
                merged = {f: supplied.get(f, getattr(existing, f)) for f in _TAX_SPLIT_FIELDS}
                money.validate_tax_split(**merged)

            number_changed = new_number is not None and new_number != existing.number
            if number_changed and repo.number_exists(new_number, exclude_id=document_id):
                raise DuplicateDocumentNumber(kind.label, new_number)

            updated = repo.update(document_id, self._header_fields(kind, supplied))

            if data.items_supplied:
                repo.delete_items(document_id)
                items = repo.insert_items(document_id, data.items)
            else:
                items = repo.list_items(document_id)
            updated = updated.model_copy(update={"items": items})

            changes = compute_changes(
                existing.model_dump(mode="json", exclude={"items"}),
                updated.model_dump(mode="json", exclude={"items"}),
            )
            if data.items_supplied:
                changes["items"] = {"old": len(existing.items), "new": len(items), "replaced": True}

            if changes:
                self.audit.log_change(
                    entity_type=kind.value,
                    entity_id=document_id,
                    action=AuditAction.UPDATE,
                    changes=changes,
                    tx=tx,
                )

        logger.info(f"Updated {kind.value} {document_id} ({', '.join(sorted(changes)) or 'no changes'})")
        self.event_bus.publish(DocumentUpdated.create(document=updated, items_replaced=data.items_supplied))
        if updated.status != existing.status:
            self.event_bus.publish(
                DocumentStatusChanged.create(document=updated, previous_status=existing.status)
            )
        return updated

    def _validate_update_money(self, existing: Document, supplied: dict, data: DocumentUpdate) -> None:
        discount = supplied.get("discount_cents", existing.discount_cents)
        aggregates = {
            "sub_total": supplied.get("sub_total_cents"),
            "total_tax": supplied.get("total_tax_cents"),
            "total": supplied.get("total_cents"),
        }

        if data.items_supplied:
            money.validate_document_totals(data.items, discount=discount, **aggregates)
        elif any(value is not None for value in aggregates.values()):
            money.validate_document_totals(existing.items, discount=discount, **aggregates)

    def change_status(self, kind: DocumentKind, document_id: UUID, status: str) -> Document:
        """
        Externally triggered status transition (payment recorded, quote accepted).

        Raises:
            InvalidStatusTransition: not allowed from the current status
        """
        return self.update(kind, document_id, DocumentUpdate(status=status))

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete(self, kind: DocumentKind, document_id: UUID) -> None:
        """
        Delete a document and all its line items in one transaction.

        Raises:
            NotFound: missing, or owned by another tenant
        """
        with self._transaction(kind) as tx:
            repo = self._repo(tx, kind)

            current = repo.get(document_id)
            if current is None:
                raise NotFound(kind.label, document_id)

            repo.delete(document_id)

            self.audit.log_change(
                entity_type=kind.value,
                entity_id=document_id,
                action=AuditAction.DELETE,
                changes={"deleted": current.model_dump(mode="json")},
                tx=tx,
            )

        logger.info(f"Deleted {kind.value} {document_id} ({current.number})")
        self.event_bus.publish(DocumentDeleted.create(document=current))

    # -------------------------------------------------------------------------
    # Quote -> Invoice
    # -------------------------------------------------------------------------

    def convert_quote_to_invoice(self, quote_id: UUID, invoice_number: str | None = None) -> Document:
        """
        Turn a DRAFT or ACCEPTED quote into a PENDING invoice.

        In one transaction: the quote becomes CONVERTED_TO_INVOICE, a new
        invoice copies the quote's amounts verbatim (already validated when
        the quote was saved) with a back-reference to the quote, and every
        line item is copied unchanged. The invoice number defaults to the
        quote number.

        Raises:
            NotFound: quote missing or owned by another tenant
            QuoteAlreadyConverted: quote was converted before
            InvalidStatusTransition: quote is DECLINED
            DuplicateDocumentNumber: an invoice already uses the number
        """
        quote = self.get(DocumentKind.QUOTE, quote_id)
        lifecycle.check_convertible(quote.id, quote.status, self.config.allow_quote_reconversion)

        number = invoice_number if invoice_number is not None else quote.number
        if not number.strip():
            raise ValidationFailed("number cannot be empty")

        with self._transaction(DocumentKind.INVOICE, number=number) as tx:
            quotes = self._repo(tx, DocumentKind.QUOTE)
            invoices = self._repo(tx, DocumentKind.INVOICE)

            # Re-read under lock so two concurrent conversions serialize here
            quote = quotes.get(quote_id, lock=True)
            if quote is None:
                raise NotFound(DocumentKind.QUOTE.label, quote_id)
            lifecycle.check_convertible(quote.id, quote.status, self.config.allow_quote_reconversion)

            if invoices.number_exists(number):
                raise DuplicateDocumentNumber(DocumentKind.INVOICE.label, number)

            quotes.update(quote_id, {"status": QuoteStatus.CONVERTED_TO_INVOICE.value})

            fields = {field: getattr(quote, field) for field in _CONVERTED_FIELDS}
            fields.update(
                number=number,
                status=InvoiceStatus.PENDING.value,
                quote_id=quote.id,
            )
            invoice = invoices.insert(fields)

            copied = [
                LineItemCreate.model_validate(item.model_dump(include=set(LineItemCreate.model_fields)))
                for item in quote.items
            ]
            items = invoices.insert_items(invoice.id, copied)
            invoice = invoice.model_copy(update={"items": items})

            self.audit.log_change(
                entity_type=DocumentKind.QUOTE.value,
                entity_id=quote.id,
                action=AuditAction.CONVERT,
                changes={
                    "status": {"old": quote.status, "new": QuoteStatus.CONVERTED_TO_INVOICE.value},
                    "invoice_id": str(invoice.id),
                },
                tx=tx,
            )
            self.audit.log_change(
                entity_type=DocumentKind.INVOICE.value,
                entity_id=invoice.id,
                action=AuditAction.CREATE,
                changes={
                    "created": invoice.model_dump(mode="json", exclude={"items"}),
                    "items": len(items),
                },
                tx=tx,
            )

        logger.info(f"Converted quote {quote_id} into invoice {invoice.id} ({invoice.number})")
        self.event_bus.publish(QuoteConverted.create(quote_id=quote.id, invoice=invoice))
        return invoice

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _header_fields(kind: DocumentKind, values: dict) -> dict:
        """Keep the columns this kind stores; warn about foreign fields that carry a value."""
        columns = header_columns(kind)
        fields = {}
        for key, value in values.items():
            if key in columns:
                fields[key] = value
            elif value is not None:
                logger.warning(f"Ignoring field '{key}' not stored on {kind.value}")
        return fields
