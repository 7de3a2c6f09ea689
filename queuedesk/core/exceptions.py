"""
Error taxonomy for the queue service.

Every error is an ``HTTPException`` so services can raise them directly and
FastAPI turns them into responses without extra handlers.
"""
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidTransitionError(HTTPException):
    """The row exists but its current status does not allow the operation."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ConflictError(HTTPException):
    """A concurrent writer got there first, or the change would break an invariant."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class StoreError(HTTPException):
    def __init__(self, detail: str = "The queue store is unavailable, please retry"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
