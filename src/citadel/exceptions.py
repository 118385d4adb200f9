"""
Custom exceptions for the Citadel client.
"""

from typing import Optional


class CitadelError(Exception):
    """Base exception for all Citadel client errors."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.message} (code {self.code})"
        return self.message


class ConnectionError(CitadelError):
    """Raised when the connection cannot be established or is lost."""
    pass


class TimeoutError(ConnectionError):
    """Raised when connecting, sending or receiving times out."""
    pass


class ServerDisconnectionError(ConnectionError):
    """Raised when the server closes the connection unexpectedly."""
    pass


class ProtocolError(CitadelError):
    """Raised when a reply does not match the expected code class or grammar."""
    pass


class AuthError(CitadelError):
    """Raised when the server rejects the user name or password."""
    pass


class PermissionError(CitadelError):
    """Raised when the server denies a privileged operation."""
    pass


class NotFoundError(CitadelError):
    """Raised when a referenced floor or room does not exist."""
    pass


class UserError(CitadelError):
    """Raised when a user operation is rejected."""
    pass
