"""
Domain failures raised by the services.

Each one is an HTTPException so routers can let them propagate untouched and
FastAPI renders them as {"detail": ...} with the mapped status code.
"""

from fastapi import HTTPException


class NotFound(HTTPException):
    """A referenced entity does not exist."""

    def __init__(self, detail: str):
        super().__init__(status_code=404, detail=detail)


class Conflict(HTTPException):
    """An invariant would be violated (occupied bed, overlapping shift, duplicate request)."""

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class InvalidRequest(HTTPException):
    """Malformed input or a submission outside its allowed time window."""

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class InvalidState(HTTPException):
    """The action is not valid for the record's current status."""

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class Forbidden(HTTPException):
    """The caller has no rights over the target record."""

    def __init__(self, detail: str):
        super().__init__(status_code=403, detail=detail)
