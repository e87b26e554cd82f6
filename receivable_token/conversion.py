"""Turn a received payment into a count of output units."""
from __future__ import annotations

import logging
from enum import Enum

from .descriptor import PaymentDescriptor, PaymentKind
from .errors import PaymentRejected

_LOGGER = logging.getLogger(__name__)


class UnderpaymentPolicy(str, Enum):
    """What to do with a payment worth less than one output unit.

    ``ACCEPT`` keeps the payment and mints nothing; ``REJECT`` reverts it.
    """

    ACCEPT = "accept"
    REJECT = "reject"


def units_for(descriptor: PaymentDescriptor, raw_amount: int = 1) -> int:
    """Return how many output units ``raw_amount`` of the configured asset buys.

    A non-fungible payment is a single token instance, so it always yields
    ``conversion_factor`` units and ``raw_amount`` is ignored. Every other rail
    floors ``raw_amount / conversion_factor``; the remainder stays with the
    contract.
    """

    if raw_amount < 0:
        raise ValueError("Payment amount must not be negative")

    kind = descriptor.kind
    if kind is PaymentKind.NON_FUNGIBLE:
        return descriptor.conversion_factor
    if kind in (PaymentKind.NATIVE, PaymentKind.FUNGIBLE, PaymentKind.SEMI_FUNGIBLE):
        return raw_amount // descriptor.conversion_factor
    raise ValueError(f"Unhandled payment kind {kind!r}")


def cost_of(descriptor: PaymentDescriptor, units: int) -> int:
    """Raw amount of the configured asset needed to buy ``units``."""

    if units < 0:
        raise ValueError("Unit count must not be negative")
    if descriptor.kind is PaymentKind.NON_FUNGIBLE:
        raise ValueError("Non-fungible payments are priced per transferred token")
    return units * descriptor.conversion_factor


def resolve_units(
    descriptor: PaymentDescriptor,
    raw_amount: int,
    policy: UnderpaymentPolicy = UnderpaymentPolicy.ACCEPT,
) -> int:
    """Apply :func:`units_for` and the underpayment ``policy``."""

    units = units_for(descriptor, raw_amount)
    _LOGGER.debug("%s payment of %d converts to %d units", descriptor.kind.name, raw_amount, units)
    if units == 0 and policy is UnderpaymentPolicy.REJECT:
        raise PaymentRejected()
    return units


__all__ = ["UnderpaymentPolicy", "cost_of", "resolve_units", "units_for"]
