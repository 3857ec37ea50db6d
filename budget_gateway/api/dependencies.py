"""Dependency injection for FastAPI endpoints"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException, Request

from budget_gateway.domain.exceptions import ConflictError, DomainException, NotFoundError, ValidationError
from budget_gateway.domain.models import Actor
from budget_gateway.infrastructure.database.document_store import DocumentStore
from budget_gateway.infrastructure.database.session import SessionLocal


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache
def get_store() -> DocumentStore:
    """Provide the process-wide document store"""
    return DocumentStore(SessionLocal)


def get_actor(
    x_user_id: str = Header(..., min_length=1, description="Acting user id"),
    x_user_name: Optional[str] = Header(None, description="Acting user display name"),
) -> Actor:
    """Identify the acting user from request headers"""
    return Actor(uid=x_user_id, display_name=x_user_name)


def http_error(error: Exception, request_id: str) -> HTTPException:
    """Map a service failure to an HTTP error that names the offending identifier"""
    headers = {"X-Error-Type": type(error).__name__}

    if isinstance(error, ValidationError):
        logging.warning(f"Validation failed: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=422, detail=str(error), headers=headers)
    if isinstance(error, NotFoundError):
        logging.warning(f"Not found: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=404, detail=str(error), headers=headers)
    if isinstance(error, ConflictError):
        logging.warning(f"Conflict: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=409, detail=str(error), headers=headers)
    if isinstance(error, DomainException):
        logging.error(f"Domain error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=500, detail=str(error), headers=headers)

    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
