"""Translation of psycopg2 errors into billing errors for catalog writes."""

import logging
from contextlib import contextmanager
from typing import Callable

import psycopg2

from core.errors import BillingError, StorageFailure

logger = logging.getLogger(__name__)


def driver_reason(error: psycopg2.Error) -> str:
    return str(error).strip() or error.__class__.__name__


@contextmanager
def storage_errors(action: str, on_integrity: Callable[[psycopg2.IntegrityError], BillingError] | None = None):
    """
    Re-raise driver errors from the block as billing errors.

    An integrity violation goes through on_integrity when one is given (a
    foreign key still pointing at a deleted row, say); any other driver
    error becomes StorageFailure.
    """
    try:
        yield
    except psycopg2.IntegrityError as e:
        if on_integrity is None:
            logger.exception(f"Integrity violation while trying to {action}")
            raise StorageFailure(f"Could not {action}", [driver_reason(e)]) from e
        raise on_integrity(e) from e
    except psycopg2.Error as e:
        logger.exception(f"Storage failure while trying to {action}")
        raise StorageFailure(f"Could not {action}", [driver_reason(e)]) from e
