"""
Dispatch Ledger
===============
Outstanding orders for a single delivery agent, indexed twice:

  - priority index: AVLIndex of order ids ordered by priority_score
  - ETA index:      AVLIndex of order ids ordered by eta

Both indexes hold order ids only; the records live in one arena
(order_id -> DeliveryOrder). After every public operation the arena and
both indexes contain exactly the same set of ids.

ETA chaining:
  A new order is served right after the next higher-priority order, so
  eta = eta(successor in priority order) + travel_time, or
  placed_at + travel_time when nothing outranks it.

Ordering precondition: eta is assigned AFTER the priority-index insert and
BEFORE the ETA-index insert. The priority index never reads eta, and the
ETA index never sees an order whose eta is unset.

Concurrency: single-threaded. create/cancel/deliver update both indexes
back to back and must be treated as atomic by callers.
"""

import logging
from typing import Dict, List, Optional, Tuple

from indexing.avl import AVLIndex
from dispatch.config import LedgerConfig
from dispatch.order import DeliveryOrder, OrderSnapshot, create_record

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    pass


class DuplicateOrderError(LedgerError):
    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} already exists.")
        self.order_id = order_id


class DispatchLedger:
    """
    Usage:
        ledger = DispatchLedger()
        ledger.create_order(1, 0, 50, 10)      # -> 10
        ledger.create_order(2, 0, 10, 5)       # -> 15
        ledger.orders_due_between(0, 12)       # -> [1]
        ledger.rank_by_id(2)                   # -> 1
        ledger.cancel_order(1)
    """

    def __init__(self, config: Optional[LedgerConfig] = None):
        self._config = config or LedgerConfig()
        self._scorer = self._config.resolve_scorer()
        self._orders: Dict[int, DeliveryOrder] = {}
        self._by_priority = AVLIndex(key=self._priority_of)
        self._by_eta = AVLIndex(key=self._eta_of)

    def _priority_of(self, order_id: int) -> float:
        return self._orders[order_id].priority_score

    def _eta_of(self, order_id: int) -> int:
        return self._orders[order_id].eta

    @property
    def config(self) -> LedgerConfig:
        return self._config

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: int) -> bool:
        return order_id in self._orders

    # ─── Mutations ──────────────────────────────────────────────────

    def create_order(self, order_id: int, placed_at: int, value: int,
                     travel_time: int) -> int:
        """
        Register a new order and return its ETA.
        Raises DuplicateOrderError if order_id is already outstanding.
        """
        if order_id in self._orders:
            raise DuplicateOrderError(order_id)

        order = create_record(order_id, placed_at, value, travel_time,
                              scorer=self._scorer)
        self._orders[order_id] = order
        self._by_priority.insert(order_id)

        ahead_id = self._by_priority.successor(order.priority_score)
        if ahead_id is not None:
            eta = self._orders[ahead_id].eta + travel_time
        else:
            eta = placed_at + travel_time
        order.assign_eta(eta)

        self._by_eta.insert(order_id)
        logger.debug("Order %s created: priority=%.4f eta=%s (after %s)",
                     order_id, order.priority_score, eta, ahead_id)
        return eta

    def cancel_order(self, order_id: int) -> bool:
        """
        Remove an order from both indexes.
        Returns False (and changes nothing) if the order is not outstanding.
        """
        if order_id not in self._orders:
            return False
        self._remove(order_id)
        logger.debug("Order %s cancelled", order_id)
        return True

    def deliver_until(self, now: int) -> List[Tuple[int, int]]:
        """
        Retire every order whose ETA is at or before `now`.
        Returns (order_id, eta) pairs in delivery order.
        """
        delivered = [(order_id, eta)
                     for eta, order_id in self._by_eta.range_scan(None, now)]
        for order_id, eta in delivered:
            self._remove(order_id)
            logger.debug("Order %s delivered at %s", order_id, eta)
        return delivered

    def _remove(self, order_id: int) -> None:
        # Indexes read sort keys from the arena, so drop the record last.
        self._by_priority.delete(order_id)
        self._by_eta.delete(order_id)
        del self._orders[order_id]

    # ─── Queries ────────────────────────────────────────────────────

    def lookup_by_id(self, order_id: int) -> Optional[OrderSnapshot]:
        order = self._orders.get(order_id)
        return None if order is None else order.snapshot()

    def orders_due_between(self, t1: int, t2: int) -> List[int]:
        """Ids of orders with t1 <= eta <= t2, ascending by ETA."""
        return [order_id for _, order_id in self._by_eta.range_scan(t1, t2)]

    def rank_by_id(self, order_id: int) -> Optional[int]:
        """
        How many orders are scheduled for delivery before this one.
        Returns None for an unknown order_id.
        """
        if order_id not in self._orders:
            return None
        return self._by_eta.rank(order_id)

    def outstanding(self) -> List[OrderSnapshot]:
        """All outstanding orders in ETA order."""
        return [self._orders[order_id].snapshot() for order_id in self._by_eta]

    def by_priority(self) -> List[int]:
        """Outstanding order ids, highest priority first."""
        return list(reversed(list(self._by_priority)))

    # ─── Debug / Verification ───────────────────────────────────────

    def verify(self) -> List[str]:
        """
        Check both indexes are healthy and agree with the arena.
        Returns list of issues found (empty = healthy).
        """
        issues: List[str] = []
        for name, index in (("priority", self._by_priority),
                            ("eta", self._by_eta)):
            for issue in index.verify_structure():
                issues.append(f"{name} index: {issue}")

            ids = list(index)
            if len(ids) != len(self._orders):
                issues.append(
                    f"{name} index holds {len(ids)} orders, "
                    f"ledger holds {len(self._orders)}")
            if set(ids) != set(self._orders):
                issues.append(f"{name} index ids differ from ledger ids")

        unscheduled = [oid for oid, o in self._orders.items() if not o.is_scheduled]
        if unscheduled:
            issues.append(f"Orders without ETA: {sorted(unscheduled)}")
        return issues
