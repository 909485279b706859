"""Mapping of domain errors to HTTP responses"""

import logging

from fastapi import HTTPException

from factoring_engine.domain.exceptions import (
    ConflictError,
    DomainException,
    InvalidTransitionError,
    NotFoundError,
    PolicyViolationError,
    ValidationError,
)

STATUS_CODES = (
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (ConflictError, 409),
    (ValidationError, 422),
    (PolicyViolationError, 400),
)


def status_code_for(error: DomainException) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def domain_http_error(error: DomainException, request_id: str) -> HTTPException:
    """Translate a domain error; the Spanish message is safe to show to users"""
    status_code = status_code_for(error)
    if status_code == 500:
        logging.error(f"Unmapped domain error: {error.message}", extra={"request_id": request_id})
        return HTTPException(status_code=500, detail="Internal server error")
    logging.warning(
        f"{type(error).__name__}: {error.message}",
        extra={"request_id": request_id, "status_code": status_code},
    )
    return HTTPException(status_code=status_code, detail=error.message)


def internal_error(error: Exception, request_id: str) -> HTTPException:
    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
