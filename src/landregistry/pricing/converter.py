"""Fixed-rate conversion between the human currency and ledger minor units.

Prices are entered in the human currency (RM), divided by the configured
rate to get the ledger's native unit (ETH) and scaled to its smallest
denomination (wei). Conversion to minor units rounds half-up, so
``to_human(to_minor_unit(x))`` may differ from ``x`` by less than the worth
of one minor unit.
"""

from __future__ import annotations

import decimal
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from landregistry.core.config import PricingConfig
from landregistry.core.errors import InvalidPrice

Amount = Union[Decimal, int, float, str]

# Wide enough that the final quantize is the only rounding step.
_CONTEXT = decimal.Context(prec=80)


class PriceConverter:
    """Converts prices using the exchange rate from PricingConfig."""

    def __init__(self, config: PricingConfig | None = None) -> None:
        self._config = config or PricingConfig()
        if self._config.human_per_native <= 0:
            raise ValueError("human_per_native must be positive")
        self._rate = Decimal(self._config.human_per_native)
        self._scale = Decimal(10) ** self._config.native_decimals

    @property
    def rate(self) -> Decimal:
        return self._rate

    @property
    def currency(self) -> str:
        return self._config.human_currency

    def to_minor_unit(self, amount: Amount) -> int:
        """Convert a human-currency amount to ledger minor units.

        Raises:
            InvalidPrice: If the amount is not a finite positive number or
                is too small to be worth one minor unit.
        """
        value = self._parse(amount)
        with decimal.localcontext(_CONTEXT):
            minor = (value * self._scale / self._rate).quantize(
                Decimal(1), rounding=ROUND_HALF_UP
            )
        if minor <= 0:
            raise InvalidPrice(amount, "below the smallest ledger unit")
        return int(minor)

    def to_human(self, minor_unit: int) -> Decimal:
        """Convert ledger minor units back to the human currency."""
        self._check_minor(minor_unit)
        with decimal.localcontext(_CONTEXT):
            return Decimal(minor_unit) * self._rate / self._scale

    def to_native(self, minor_unit: int) -> Decimal:
        """Native ledger amount (e.g. ETH) for a minor-unit amount (wei)."""
        self._check_minor(minor_unit)
        with decimal.localcontext(_CONTEXT):
            return Decimal(minor_unit) / self._scale

    def format_human(self, minor_unit: int, places: int = 2) -> str:
        exponent = Decimal(1).scaleb(-places)
        return str(self.to_human(minor_unit).quantize(exponent, rounding=ROUND_HALF_UP))

    def format_amount(self, amount: Amount) -> str:
        """Plain decimal text of a validated human amount, e.g. "5000" for 5000.0."""
        value = self._parse(amount)
        with decimal.localcontext(_CONTEXT):
            return format(value.normalize(), "f")

    def minor_unit_in_human(self) -> Decimal:
        """Worth of a single minor unit, the bound on round-trip loss."""
        return self.to_human(1)

    @staticmethod
    def _parse(amount: Amount) -> Decimal:
        if isinstance(amount, bool):
            raise InvalidPrice(amount, "not a number")
        try:
            if isinstance(amount, (Decimal, int)):
                value = Decimal(amount)
            else:
                value = Decimal(str(amount).strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidPrice(amount, "not a number") from exc
        if not value.is_finite():
            raise InvalidPrice(amount, "not a finite number")
        if value <= 0:
            raise InvalidPrice(amount, "must be greater than zero")
        return value

    @staticmethod
    def _check_minor(minor_unit: int) -> None:
        if isinstance(minor_unit, bool) or not isinstance(minor_unit, int) or minor_unit < 0:
            raise InvalidPrice(minor_unit, "minor units must be a non-negative integer")
