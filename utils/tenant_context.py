"""Propagate the owning tenant (user) through the call stack using contextvars."""

from contextvars import ContextVar
from uuid import UUID
from contextlib import contextmanager

_current_tenant_id: ContextVar[UUID | None] = ContextVar("current_tenant_id", default=None)


def get_current_tenant_id() -> UUID:
    """
    Get the tenant ID for the current request.

    Raises RuntimeError if no tenant is set. Every document query is
    filtered by this value, so a missing tenant is a bug, not a
    reason to fall back to unscoped reads.
    """
    tenant_id = _current_tenant_id.get()
    if tenant_id is None:
        raise RuntimeError(
            "No tenant context set. Tenant-scoped code was called "
            "outside of an authenticated request."
        )
    return tenant_id


def peek_current_tenant_id() -> UUID | None:
    """Tenant ID if one is set, without failing."""
    return _current_tenant_id.get()


def set_current_tenant_id(tenant_id: UUID) -> None:
    """Set the tenant. Called by the auth middleware once the token resolves."""
    _current_tenant_id.set(tenant_id)


def clear_current_tenant_id() -> None:
    """Clear the tenant. Must run in a finally block so it never leaks across requests."""
    _current_tenant_id.set(None)


@contextmanager
def tenant_context(tenant_id: UUID):
    """
    Temporarily act as a tenant.

    Used by tests and by maintenance jobs that walk over tenants:

        with tenant_context(user_id):
            invoices = document_service.list(DocumentKind.INVOICE, DocumentFilter())
    """
    previous = _current_tenant_id.get()
    set_current_tenant_id(tenant_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_tenant_id()
        else:
            set_current_tenant_id(previous)
