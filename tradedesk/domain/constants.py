"""Shared numeric constants for monetary arithmetic."""

from decimal import Decimal

# Scales of the persisted columns: money and prices NUMERIC(20, 8),
# quantities NUMERIC(28, 12)
MONEY_QUANTUM = Decimal("0.00000001")
QUANTITY_QUANTUM = Decimal("0.000000000001")

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
