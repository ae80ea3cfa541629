"""API test fixtures: the assembled app over mocked services and sessions."""

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import Mock
from uuid import uuid4

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from auth.session import SessionResolver
from auth.types import Session
from core.models import Document, DocumentKind, LineItem, Product, TaxRate
from core.services import DashboardService, DocumentService, ProductService, TaxService
from utils.timezone import now_utc


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def document_service():
    return Mock(spec=DocumentService)


@pytest.fixture
def tax_service():
    return Mock(spec=TaxService)


@pytest.fixture
def product_service():
    return Mock(spec=ProductService)


@pytest.fixture
def dashboard_service():
    return Mock(spec=DashboardService)


@pytest.fixture
def services(document_service, tax_service, product_service, dashboard_service):
    return {
        "document": document_service,
        "tax": tax_service,
        "product": product_service,
        "dashboard": dashboard_service,
    }


# =============================================================================
# SAMPLE ENTITIES
# =============================================================================


@pytest.fixture
def make_stored_document(test_user_id):
    """Build a stored-looking document of any kind."""

    def _make(kind=DocumentKind.INVOICE, **overrides):
        now = now_utc()
        document_id = overrides.pop("id", uuid4())
        item = LineItem(
            id=uuid4(), document_id=document_id, user_id=test_user_id,
            product_name="Widget", price_cents=1000, quantity=2,
            total_price_cents=2000, taxable_amount_cents=200,
            created_at=now,
        )
        data = dict(
            id=document_id, kind=kind, user_id=test_user_id,
            number="INV-001", issue_date=date(2024, 3, 1), due_date=date(2024, 3, 31),
            status=kind.initial_status,
            sub_total_cents=1800, discount_cents=0, total_tax_cents=200, total_cents=2000,
            created_at=now, updated_at=now,
            items=[item],
        )
        data.update(overrides)
        return Document(**data)

    return _make


@pytest.fixture
def stored_tax(test_user_id):
    now = now_utc()
    return TaxRate(
        id=uuid4(), user_id=test_user_id, name="GST 18",
        hsn_sac_code=None, description=None,
        gst=Decimal("18"), cgst=Decimal("9"), sgst=Decimal("9"), igst=None,
        created_at=now, updated_at=now,
    )


@pytest.fixture
def stored_product(test_user_id):
    now = now_utc()
    return Product(
        id=uuid4(), user_id=test_user_id, name="Widget",
        description=None, hsn_code="8471", price_cents=1250, tax_id=None,
        created_at=now, updated_at=now,
    )


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_session_resolver(test_user_id):
    now = now_utc()
    mock = Mock(spec=SessionResolver)
    mock.resolve.return_value = Session(
        token="test-token",
        user_id=test_user_id,
        created_at=now,
        expires_at=now + timedelta(hours=24),
        last_activity_at=now,
    )
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(mock_session_resolver, services):
    return create_app(services, mock_session_resolver)


@pytest.fixture
def client(app):
    """Authenticated test client."""
    c = TestClient(app, raise_server_exceptions=False)
    c.headers["Authorization"] = "Bearer test-token"
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no token)."""
    return TestClient(app, raise_server_exceptions=False)
