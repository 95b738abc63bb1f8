"""Error types raised by the tracker core."""


class TrackerError(Exception):
    """Base exception for the tracker."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(TrackerError):
    """Input is malformed or violates a scoring or scheduling rule."""


class NotFoundError(TrackerError):
    """The targeted row does not exist."""

    def __init__(self, kind: str, ident):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} {ident} not found")


class AuthorizationError(TrackerError):
    """The caller may not perform an admin-only operation."""

    def __init__(self, message: str = "Admin access required"):
        super().__init__(message)
