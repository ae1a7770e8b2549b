"""
Domain error to HTTP error mapping
"""
from fastapi import HTTPException
from pydantic import ValidationError

from ..domain.exceptions import Conflict, FuddiError, InvalidLocation, NotFound, ValidationFailed


def to_http_exception(error: Exception) -> HTTPException:
    """Translate a domain (or pydantic) error into the HTTPException the routes raise"""
    if isinstance(error, ValidationFailed):
        return HTTPException(
            status_code=422,
            detail={"message": str(error), "issues": [issue.model_dump() for issue in error.issues]},
        )
    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail=error.errors(include_url=False, include_context=False))
    if isinstance(error, InvalidLocation):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, NotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, Conflict):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, FuddiError):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
