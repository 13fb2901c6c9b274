"""
Dispatch Ledger
===============
Public API for the dispatch layer.

Usage:
    from dispatch import DispatchLedger, LedgerConfig

    ledger = DispatchLedger()
    eta = ledger.create_order(1, 0, 50, 10)
"""

from dispatch.config import LedgerConfig, PriorityWeights
from dispatch.order import DeliveryOrder, OrderSnapshot, create_record, priority_score
from dispatch.ledger import DispatchLedger, LedgerError, DuplicateOrderError

__all__ = [
    "LedgerConfig", "PriorityWeights",
    "DeliveryOrder", "OrderSnapshot", "create_record", "priority_score",
    "DispatchLedger", "LedgerError", "DuplicateOrderError",
]
