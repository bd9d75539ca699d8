"""Exceptions raised by the discovery layer."""

from __future__ import annotations


class InvalidCategoryError(ValueError):
    """Raised when a request names a media category we do not serve."""

    def __init__(self, category: object):
        self.category = category
        super().__init__(f"Invalid media type: {category!r}")


class ProviderError(RuntimeError):
    """Raised when a catalog provider call fails for any reason."""

    def __init__(self, provider: str, message: str, *, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)
