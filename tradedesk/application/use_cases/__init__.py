"""
Application Use Cases

Caller-facing operations built on the application services.
"""

from .base import ErrorCode, UseCase, UseCaseRequest, UseCaseResponse, error_code_for
from .base_request import AuthenticatedRequestDTO, BaseRequestDTO
from .trading import (
    ClosePositionRequest,
    ClosePositionResponse,
    ClosePositionUseCase,
    GetActiveTradesRequest,
    GetActiveTradesResponse,
    GetActiveTradesUseCase,
    GetPortfolioRequest,
    GetPortfolioResponse,
    GetPortfolioUseCase,
    OpenPositionRequest,
    OpenPositionResponse,
    OpenPositionUseCase,
    ValuedTrade,
)
from .wallet import (
    DepositUseCase,
    ListTransactionsRequest,
    ListTransactionsResponse,
    ListTransactionsUseCase,
    WalletRequest,
    WalletResponse,
    WithdrawUseCase,
)

__all__ = [
    # Base
    "ErrorCode",
    "UseCase",
    "UseCaseRequest",
    "UseCaseResponse",
    "error_code_for",
    "BaseRequestDTO",
    "AuthenticatedRequestDTO",
    # Trading
    "OpenPositionRequest",
    "OpenPositionResponse",
    "OpenPositionUseCase",
    "ClosePositionRequest",
    "ClosePositionResponse",
    "ClosePositionUseCase",
    "GetActiveTradesRequest",
    "GetActiveTradesResponse",
    "GetActiveTradesUseCase",
    "GetPortfolioRequest",
    "GetPortfolioResponse",
    "GetPortfolioUseCase",
    "ValuedTrade",
    # Wallet
    "WalletRequest",
    "WalletResponse",
    "DepositUseCase",
    "WithdrawUseCase",
    "ListTransactionsRequest",
    "ListTransactionsResponse",
    "ListTransactionsUseCase",
]
