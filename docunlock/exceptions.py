from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DocUnlockException(HTTPException):
    """Base error. Rendered as ``{"error": detail, **extra}`` by main.py."""

    def __init__(self, status_code: int, detail: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=status_code, detail=detail)
        self.extra = extra or {}


class ValidationError(DocUnlockException):
    def __init__(self, detail: str, **extra):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, extra)


class PaymentRequired(DocUnlockException):
    def __init__(self, section: Dict[str, Any], detail: str = "Payment required"):
        super().__init__(status.HTTP_402_PAYMENT_REQUIRED, detail, {"section": section})


class AccessDenied(DocUnlockException):
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class NotFound(DocUnlockException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class NoContent(NotFound):
    def __init__(self, detail: str = "No content available"):
        super().__init__(detail)


class Conflict(DocUnlockException):
    def __init__(self, detail: str):
        super().__init__(status.HTTP_409_CONFLICT, detail)


class PayloadTooLarge(DocUnlockException):
    def __init__(self, actual_size: int, max_size: int):
        super().__init__(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            "File too large",
            {
                "message": (
                    f"File size ({actual_size / 1024 / 1024:.2f}MB) exceeds the "
                    f"{max_size / 1024 / 1024:.2f}MB limit for direct storage "
                    "and no object storage is configured."
                ),
                "maxSize": max_size,
                "actualSize": actual_size,
            },
        )


class StorageNotConfigured(DocUnlockException):
    def __init__(self, detail: str = "Object storage is not configured"):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, detail)
