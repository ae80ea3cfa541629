"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import (
    DocumentCreatePayload, DocumentUpdatePayload, DocumentView, DocumentKind,
    ProductCreatePayload, ProductUpdatePayload, ProductView,
    TaxRateCreate, TaxRateUpdate,
)


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    document_svc = services["document"]
    handlers = {
        "invoice": DocumentHandler(document_svc, DocumentKind.INVOICE),
        "quote": QuoteHandler(document_svc),
        "purchase_invoice": PurchaseInvoiceHandler(document_svc),
        "tax": TaxHandler(services["tax"]),
        "product": ProductHandler(services["product"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}", None)
        result = method(body.data)
        return success_response(result).model_dump(mode="json")

    return router


def _require_id(data: dict) -> UUID:
    if "id" not in data:
        raise ValueError("'id' is required")
    return UUID(str(data.pop("id")))


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class DocumentHandler:
    """Invoice actions. Amounts arrive and leave in major units."""

    ALLOWED_ACTIONS = {"create", "update", "delete", "set_status"}

    def __init__(self, service, kind: DocumentKind):
        self.service = service
        self.kind = kind

    def _handle_create(self, data: dict):
        payload = DocumentCreatePayload.model_validate(data)
        document = self.service.create(self.kind, payload.to_minor())
        return DocumentView.from_document(document).model_dump(mode="json")

    def _handle_update(self, data: dict):
        document_id = _require_id(data)
        payload = DocumentUpdatePayload.model_validate(data)
        document = self.service.update(self.kind, document_id, payload.to_minor())
        return DocumentView.from_document(document).model_dump(mode="json")

    def _handle_delete(self, data: dict):
        self.service.delete(self.kind, _require_id(data))
        return {"deleted": True}

    def _handle_set_status(self, data: dict):
        document_id = _require_id(data)
        if "status" not in data:
            raise ValueError("'status' is required")
        document = self.service.change_status(self.kind, document_id, data["status"])
        return DocumentView.from_document(document).model_dump(mode="json")


class QuoteHandler(DocumentHandler):
    ALLOWED_ACTIONS = {"create", "update", "delete", "set_status", "convert"}

    def __init__(self, service):
        super().__init__(service, DocumentKind.QUOTE)

    def _handle_convert(self, data: dict):
        invoice = self.service.convert_quote_to_invoice(
            _require_id(data), data.get("invoice_number")
        )
        return DocumentView.from_document(invoice).model_dump(mode="json")


class PurchaseInvoiceHandler(DocumentHandler):
    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        super().__init__(service, DocumentKind.PURCHASE_INVOICE)


class TaxHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        tax = self.service.create(TaxRateCreate(**data))
        return tax.model_dump(mode="json")

    def _handle_update(self, data: dict):
        tax_id = _require_id(data)
        tax = self.service.update(tax_id, TaxRateUpdate(**data))
        return tax.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        self.service.delete(_require_id(data))
        return {"deleted": True}


class ProductHandler:
    """Product catalog actions. Price arrives and leaves in major units."""

    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        product = self.service.create(ProductCreatePayload.model_validate(data).to_minor())
        return ProductView.from_product(product).model_dump(mode="json")

    def _handle_update(self, data: dict):
        product_id = _require_id(data)
        payload = ProductUpdatePayload.model_validate(data)
        product = self.service.update(product_id, payload.to_minor())
        return ProductView.from_product(product).model_dump(mode="json")

    def _handle_delete(self, data: dict):
        self.service.delete(_require_id(data))
        return {"deleted": True}
