"""Billing configuration."""

from pydantic import BaseModel, Field


class BillingConfig(BaseModel):
    """
    Billing behaviour switches.

    Defaults reject anything ambiguous: a converted quote cannot be
    converted a second time unless explicitly allowed.
    """

    allow_quote_reconversion: bool = Field(
        default=False,
        description="Allow converting a quote that is already CONVERTED_TO_INVOICE",
    )

    default_page_size: int = Field(
        default=10,
        description="Documents per page when the caller does not ask",
        ge=1,
        le=100,
    )
    max_page_size: int = Field(
        default=100,
        description="Upper bound on documents per page",
        ge=1,
        le=500,
    )
