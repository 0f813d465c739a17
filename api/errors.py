"""
api/errors.py -- Translate core Result failures into HTTP errors.

The core never raises across its boundary; it returns a Result tagged with an
ErrorKind. Route handlers hand failed Results to raise_for_result(), which
picks the status code from the kind and raises HTTPException with an
ErrorDetail dict. The http_exception_handler in api/main.py renders that dict
as the standard {"error": {...}} envelope.

Messages are passed through verbatim.
"""

from __future__ import annotations

from fastapi import HTTPException

from api.models import ErrorDetail
from core.results import ErrorKind, Result

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.user_exists: 409,
    ErrorKind.invalid_credentials: 401,
    ErrorKind.invalid_token: 401,
    ErrorKind.user_not_found: 401,
    ErrorKind.not_owner: 403,
    ErrorKind.organisation_not_found: 404,
    ErrorKind.malformed_credential: 500,
    ErrorKind.storage_error: 500,
}


def raise_for_result(result: Result) -> None:
    """Raise HTTPException if result is a failure; return None otherwise."""
    if result.success:
        return
    kind = result.kind or ErrorKind.storage_error
    raise HTTPException(
        status_code=_STATUS_BY_KIND.get(kind, 500),
        detail=ErrorDetail(
            code=kind.value,
            message=result.errors[0] if result.errors else kind.value,
            detail="; ".join(result.errors) if len(result.errors) > 1 else None,
        ).model_dump(),
    )
