from typing import Any, Optional

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """
    404 for a referenced issue/comment/attachment/user/lookup id that does not exist.
    """

    def __init__(self, resource: str, field: str = "id", value: Optional[Any] = None):
        detail = f"{resource} not found with {field} : '{value}'"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """
    400 for malformed filters, unknown lookups, cross-entity mismatches, invalid dates, failed uploads.
    """

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    """
    Raised when a permission check fails for an authenticated actor.
    """

    def __init__(self, detail: str = "You are not authorized to perform this action."):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def http_unauthorized(detail: str = "Invalid credentials") -> HTTPException:
    """
    401 Unauthorized response shortcut for missing or invalid credentials.
    """
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
