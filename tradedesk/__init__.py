"""tradedesk - trade lifecycle engine for the trading dashboard."""

__version__ = "0.1.0"
