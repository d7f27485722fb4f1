"""
Database utilities and models.

This package provides:
- SQLAlchemy model of the town control ledger
- Database connection management
- The ledger itself, the only writer of town rows
"""

from .connection import Database, db
from .ledger import BatchResult, ObservationResult, TownLedger, TownObservation, now_ms
from .models import Base, TownRecord

__all__ = [
    # Connection management
    'Database', 'db',

    # Ledger
    'TownLedger', 'TownObservation', 'ObservationResult', 'BatchResult', 'now_ms',

    # Models
    'Base', 'TownRecord',
]
