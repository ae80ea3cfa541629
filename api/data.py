"""GET /api/data: unified read endpoint."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.models import DocumentFilter, DocumentKind, DocumentView, ProductView


DOCUMENT_TYPES = {
    "invoices": DocumentKind.INVOICE,
    "quotes": DocumentKind.QUOTE,
    "purchase_invoices": DocumentKind.PURCHASE_INVOICE,
}

VALID_TYPES = set(DOCUMENT_TYPES) | {"taxes", "products", "dashboard"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    document_svc = services["document"]
    tax_svc = services["tax"]
    product_svc = services["product"]
    dashboard_svc = services["dashboard"]

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        status: str | None = Query(None),
        client_id: str | None = Query(None),
        issue_date_from: date | None = Query(None),
        issue_date_to: date | None = Query(None),
        due_date_from: date | None = Query(None),
        due_date_to: date | None = Query(None),
        page: int = Query(1, ge=1),
        limit: int | None = Query(None, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type in DOCUMENT_TYPES:
            filters = DocumentFilter(
                status=status,
                client_id=UUID(client_id) if client_id else None,
                issue_date_from=issue_date_from,
                issue_date_to=issue_date_to,
                due_date_from=due_date_from,
                due_date_to=due_date_to,
                page=page,
                limit=limit,
            )
            return _handle_documents(document_svc, DOCUMENT_TYPES[type], id, filters)

        if type == "taxes":
            return _handle_taxes(tax_svc, id)

        if type == "products":
            return _handle_products(product_svc, id, page, limit)

        if type == "dashboard":
            summary = dashboard_svc.summary()
            return success_response(summary.model_dump(mode="json")).model_dump(mode="json")

    return router


def _handle_documents(document_svc, kind, id, filters):
    if id:
        document = document_svc.get(kind, UUID(id))
        return success_response(
            DocumentView.from_document(document).model_dump(mode="json")
        ).model_dump(mode="json")

    result = document_svc.list(kind, filters)
    return success_response({
        "documents": [
            DocumentView.from_document(d).model_dump(mode="json") for d in result.documents
        ],
        "page": result.page,
        "limit": result.limit,
        "total_entries": result.total_entries,
        "total_pages": result.total_pages,
    }).model_dump(mode="json")


def _handle_taxes(tax_svc, id):
    if id:
        tax = tax_svc.get_by_id(UUID(id))
        if tax is None:
            raise ValueError(f"Tax {id} not found")
        return success_response(tax.model_dump(mode="json")).model_dump(mode="json")

    taxes = tax_svc.list_all()
    return success_response(
        [t.model_dump(mode="json") for t in taxes]
    ).model_dump(mode="json")


def _handle_products(product_svc, id, page, limit):
    if id:
        product = product_svc.get_by_id(UUID(id))
        if product is None:
            raise ValueError(f"Product {id} not found")
        return success_response(
            ProductView.from_product(product).model_dump(mode="json")
        ).model_dump(mode="json")

    result = product_svc.list_page(page, limit)
    return success_response({
        "products": [ProductView.from_product(p).model_dump(mode="json") for p in result.products],
        "page": result.page,
        "limit": result.limit,
        "total_entries": result.total_entries,
        "total_pages": result.total_pages,
    }).model_dump(mode="json")
