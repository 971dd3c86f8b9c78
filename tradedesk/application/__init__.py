"""Application layer - interfaces, services, use cases and configuration."""
