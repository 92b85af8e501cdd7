"""
Trading bounded context: domain layer.

This module contains all domain logic for the trading context:
- Signal scoring and sentiment aggregation
- Rule-based and delegated trade decisions
- Simulated portfolio ledger
"""
