from __future__ import annotations

from typing import Optional


class ManagementApiError(Exception):
    """Base class for failures talking to the management API."""

    status: Optional[int] = None

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class Unauthorized(ManagementApiError):
    status = 401

    def __init__(self, message: str = "Unauthorized (401): the sbp_... access token is invalid.") -> None:
        super().__init__(message)


class Forbidden(ManagementApiError):
    status = 403

    def __init__(self, operation: str) -> None:
        super().__init__(f"Forbidden (403): the token is not allowed to access {operation}.")
        self.operation = operation


class NotFound(ManagementApiError):
    status = 404

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} is not available for this project type (404).")
        self.operation = operation


class RequestFailed(ManagementApiError):
    def __init__(self, operation: str, status: int, detail: str) -> None:
        super().__init__(f"{operation} failed ({status}): {detail}", status=status)
        self.operation = operation
        self.detail = detail


class ConnectionBlocked(ManagementApiError):
    def __init__(self, message: str = "Connection error: the request was blocked by the network or the proxy.") -> None:
        super().__init__(message)
