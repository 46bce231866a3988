from typing import Any, Dict, Optional


class ArchonError(Exception):
    """base class for exceptions in Archon."""
    pass


class ProfileNotFoundError(ArchonError):
    """raised when a profile key is not in the config."""
    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f"Profile '{key}' not found. Run 'archon profile list' to see available profiles."
        )


class ProfileExistsError(ArchonError):
    """raised when creating a profile whose key is already taken."""
    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f"Profile '{key}' already exists. Use 'archon profile update' to modify it."
        )


class InvalidProfileKeyError(ArchonError):
    """raised when a profile key cannot be used as a token file name."""
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Invalid profile key '{key}'")


class NotAuthenticatedError(ArchonError):
    """raised when no credentials exist anywhere for the profile."""
    def __init__(self, message: str = "Not authenticated. Run: archon auth login"):
        super().__init__(message)


class SessionExpiredError(ArchonError):
    """raised when the server rejects a refresh token; the local record is already gone."""
    def __init__(self, message: str = "Session expired. Please login again."):
        super().__init__(message)


class LoginFailedError(ArchonError):
    """raised when the server rejects a username/password exchange."""
    pass


class TransportError(ArchonError):
    """raised when a request never produced a response (dns, tls, timeout)."""
    pass


class ApiError(ArchonError):
    """raised for non-2xx API responses."""
    def __init__(
        self,
        status: int,
        message: str,
        error: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        self.message = message
        self.error = error
        self.details = details
        super().__init__(message)
