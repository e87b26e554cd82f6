"""Revert reasons surfaced by the receivable token and its payment assets."""
from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when deployment parameters cannot produce a working contract."""


class Revert(RuntimeError):
    """Abort the running transaction; every state change it made is discarded."""

    default_reason = "execution reverted"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class ConfigurationMismatch(Revert):
    """An entry path was used that does not match the configured payment kind."""

    default_reason = "payment kind mismatch"


class InvalidAsset(Revert):
    """A pushed transfer came from the wrong contract or carried the wrong id."""

    default_reason = "invalid token"


class SupplyExceeded(Revert):
    default_reason = "total supply exceeded"


class InsufficientAuthorization(Revert):
    """Raised by a fungible asset when allowance or balance does not cover a pull."""

    default_reason = "insufficient allowance"


class PaymentRejected(Revert):
    default_reason = "insufficient payment"


class ReentrantCall(Revert):
    default_reason = "reentrant call"


class Unauthorized(Revert):
    default_reason = "caller is not the owner"


__all__ = [
    "ConfigurationError",
    "ConfigurationMismatch",
    "InsufficientAuthorization",
    "InvalidAsset",
    "PaymentRejected",
    "ReentrantCall",
    "Revert",
    "SupplyExceeded",
    "Unauthorized",
]
