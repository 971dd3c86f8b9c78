"""Application services."""

from .expiration_sweeper import ExpirationSweeper, SweepResult
from .position_ledger import PositionLedger
from .trade_lifecycle import OpenPositionCommand, TradeLifecycle
from .wallet_service import WalletService

__all__ = [
    "ExpirationSweeper",
    "OpenPositionCommand",
    "PositionLedger",
    "SweepResult",
    "TradeLifecycle",
    "WalletService",
]
