"""Translation of ledger errors into HTTP responses"""

import logging

from fastapi import HTTPException

from crediario_ledger.domain.exceptions import (
    ConcurrentUpdateError,
    InconsistencyError,
    LedgerError,
    NotFoundError,
    OverpaymentError,
    PaymentMethodInUseError,
    ValidationError,
)
from crediario_ledger.infrastructure.observability.metrics import record_ledger_error

# First match wins; AccountNotFoundError is caught by NotFoundError
STATUS_BY_ERROR = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (OverpaymentError, 409),
    (PaymentMethodInUseError, 409),
    (ConcurrentUpdateError, 503),
    (InconsistencyError, 500),
)


def to_http_error(error: LedgerError, request_id: str) -> HTTPException:
    """Count, log and convert a ledger error; balances were already rolled back"""
    record_ledger_error(error)

    status_code = next((status for cls, status in STATUS_BY_ERROR if isinstance(error, cls)), 500)

    if isinstance(error, ConcurrentUpdateError):
        logging.warning(f"Ledger contention: {error}", extra={"request_id": request_id})
        return HTTPException(
            status_code=status_code,
            detail=str(error),
            headers={"Retry-After": "1"},
        )

    if status_code >= 500:
        logging.error(f"Ledger drift: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=status_code, detail="Ledger inconsistency detected; operation aborted")

    logging.warning(f"Ledger request rejected: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=status_code, detail=str(error))
