from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    pass


class BlockedPeerError(ValidationError):
    """Raised when an action targets a peer on the local blocklist."""


class TransportError(AppError):
    """A bootstrap read or confirmation call failed on the network."""
