"""Market data - price feed cache and the Binance transport."""

from tradedesk.application.interfaces.price_feed import format_symbol, normalize_symbol

from .binance import BinancePriceFeed, format_volume, parse_rest_ticker, parse_ticker
from .feed import StreamingPriceFeed

__all__ = [
    "BinancePriceFeed",
    "StreamingPriceFeed",
    "format_symbol",
    "format_volume",
    "normalize_symbol",
    "parse_rest_ticker",
    "parse_ticker",
]
