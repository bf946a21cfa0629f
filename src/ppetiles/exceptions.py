"""Error kinds raised by ppetiles.

Each layer converts the failures of the libraries it wraps into one of
these classes (``raise ... from exc``) so callers only ever handle the
kinds listed here. The HTTP layer maps them to status codes.
"""
from __future__ import annotations


class PpeTilesError(Exception):
    """Base exception for all ppetiles errors."""


class InvalidFeatureError(PpeTilesError):
    """PPE value or coordinates outside their valid range."""


class InvalidTileAddressError(PpeTilesError):
    """Tile address that is not numeric or lies outside the served range."""


class RenderError(PpeTilesError):
    """Drawing or PNG encoding of a tile failed."""


class FeatureQueryError(PpeTilesError):
    """The feature store could not answer a query or store a feature."""


class ApiError(PpeTilesError):
    """Error that is reported to an HTTP client."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None, details=None) -> None:
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(message)


class AuthError(ApiError):
    """Missing or unknown API key."""

    status_code = 401


class RequestError(ApiError):
    """Request body or parameters could not be used."""

    status_code = 400
