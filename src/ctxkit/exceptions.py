"""Custom exceptions for ctxkit."""

from typing import Any


class CtxKitError(Exception):
    """Base exception for all ctxkit errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class InvalidInputError(CtxKitError):
    """Raised when an operation receives arguments it cannot accept."""


class NotFoundError(CtxKitError):
    """Raised when a named bundle does not exist in the store."""


class StorageError(CtxKitError):
    """Raised when a bundle cannot be persisted or read back."""


class ConfigError(CtxKitError):
    """Raised when the ctxkit configuration file is invalid."""
