# Integration Module
"""
Observer layer: mining progress and status messages reported by the ledger.
"""

from .event_logger import (
    EventType,
    ChainEvent,
    EventLogger,
    MiningStatus,
    create_event_logger,
)

__all__ = [
    'EventType',
    'ChainEvent',
    'EventLogger',
    'MiningStatus',
    'create_event_logger',
]
