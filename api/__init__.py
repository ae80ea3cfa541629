"""HTTP surface of the billing service: response envelope and error codes."""

from api.base import (
    APIError,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
