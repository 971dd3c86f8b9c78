"""Infrastructure layer - persistence, market data, notifications and logging."""
