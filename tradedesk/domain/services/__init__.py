"""Domain services - calculations that span entities."""

from .trade_valuation import TradeValuator, Valuation

__all__ = ["TradeValuator", "Valuation"]
