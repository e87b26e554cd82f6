"""Receivable token: a capped collectible minted against one configured payment asset."""
from __future__ import annotations

from .chain import ZERO_ADDRESS, Chain, Contract, LogEntry, normalise_address
from .conversion import UnderpaymentPolicy, cost_of, resolve_units, units_for
from .descriptor import (
    FungibleToken,
    NativeCurrency,
    NonFungibleToken,
    PaymentDescriptor,
    PaymentKind,
    SemiFungibleToken,
    descriptor_from_config,
)
from .errors import (
    ConfigurationError,
    ConfigurationMismatch,
    InsufficientAuthorization,
    InvalidAsset,
    PaymentRejected,
    ReentrantCall,
    Revert,
    SupplyExceeded,
    Unauthorized,
)
from .receivable import ReceivableToken, deploy_receivable
from .supply import SupplyGuard

__all__ = [
    "Chain",
    "ConfigurationError",
    "ConfigurationMismatch",
    "Contract",
    "FungibleToken",
    "InsufficientAuthorization",
    "InvalidAsset",
    "LogEntry",
    "NativeCurrency",
    "NonFungibleToken",
    "PaymentDescriptor",
    "PaymentKind",
    "PaymentRejected",
    "ReceivableToken",
    "ReentrantCall",
    "Revert",
    "SemiFungibleToken",
    "SupplyExceeded",
    "SupplyGuard",
    "Unauthorized",
    "UnderpaymentPolicy",
    "ZERO_ADDRESS",
    "cost_of",
    "deploy_receivable",
    "descriptor_from_config",
    "normalise_address",
    "resolve_units",
    "units_for",
]
