"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc
from utils.tenant_context import (
    get_current_tenant_id,
    peek_current_tenant_id,
    set_current_tenant_id,
    clear_current_tenant_id,
    tenant_context,
)
