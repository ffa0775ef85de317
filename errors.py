# errors.py
from fastapi import HTTPException, status


class NotFound(HTTPException):
    def __init__(self, resource: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource.capitalize()} not found",
        )


class Forbidden(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=message)


class Unauthenticated(HTTPException):
    def __init__(self, message: str = "Unauthenticated."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ImageUploadError(Exception):
    """The external image host rejected or failed the upload."""
