"""
Error taxonomy for access logging and digest runs.

Every failure the digest pipeline can raise derives from DigestError so
handler boundaries can catch one type and still tell the stages apart.
"""

from typing import List, Optional


class DigestError(Exception):
    """Base class for access digest failures."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class ValidationError(DigestError):
    """Request body failed validation."""

    def __init__(self, message: str, errors: Optional[List] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class ConfigurationError(DigestError):
    """Required configuration is missing or malformed."""


class FetchError(DigestError):
    """Querying the record store failed."""


class StoreError(DigestError):
    """Writing to the record store failed."""


class RenderError(DigestError):
    """Rendering a digest document failed."""


class DeliveryError(DigestError):
    """Email transport failed."""


class UnknownError(DigestError):
    """Anything raised during a run that is not a DigestError."""
