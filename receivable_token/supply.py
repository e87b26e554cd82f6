"""Global issuance cap for a receivable token."""
from __future__ import annotations

from .errors import ConfigurationError, SupplyExceeded


class SupplyGuard:
    """Tracks issued units against an exclusive ``max_supply`` bound.

    Deployments pass the cap plus one, so the usable cap is
    ``max_supply - 1``. A request that does not fit is rejected whole; nothing
    is ever partially issued.
    """

    def __init__(self, max_supply: int) -> None:
        if isinstance(max_supply, bool) or not isinstance(max_supply, int) or max_supply < 1:
            raise ConfigurationError(f"max_supply must be a positive integer, got {max_supply!r}")
        self._max_supply = max_supply
        self._issued = 0

    @property
    def max_supply(self) -> int:
        return self._max_supply

    @property
    def usable_cap(self) -> int:
        return self._max_supply - 1

    @property
    def issued_count(self) -> int:
        return self._issued

    def remaining(self) -> int:
        return self.usable_cap - self._issued

    def reserve(self, units: int) -> int:
        """Claim ``units`` of the remaining supply and return the granted count."""

        if units < 0:
            raise ValueError("Cannot reserve a negative number of units")
        if self._issued + units > self.usable_cap:
            raise SupplyExceeded()
        self._issued += units
        return units


__all__ = ["SupplyGuard"]
