"""
Domain Layer - Pure Business Logic

This layer contains:
- Entities: Portfolio, Trade and Transaction with their state rules
- Services: Trade valuation, which doesn't belong to a single entity

No external dependencies allowed in this layer.
"""
