from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable machine-readable error kinds returned by the API."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    UPGRADE_REQUIRED = "UPGRADE_REQUIRED"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    CAPACITY_EXHAUSTED = "CAPACITY_EXHAUSTED"
    ALREADY_REDEEMED = "ALREADY_REDEEMED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    DUPLICATE_CODE = "DUPLICATE_CODE"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


__all__ = ["ErrorCode"]
