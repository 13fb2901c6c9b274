"""
Dispatch Ledger Order Records
=============================
DeliveryOrder is the record held in the ledger's arena. Indexes store only
the order_id and read sort keys (priority_score, eta) from the record.

Field lifecycle:
  - order_id, placed_at, value, travel_time: fixed at creation
  - priority_score: computed once at creation, read-only afterwards
  - eta: None until the ledger assigns it, then fixed (assigned exactly once)
"""

from dataclasses import dataclass
from typing import List, Optional

from dispatch.config import PriorityWeights, Scorer


@dataclass(frozen=True)
class OrderSnapshot:
    """Read-only copy of an order handed to callers."""
    order_id: int
    placed_at: int
    value: int
    travel_time: int
    eta: Optional[int]

    def as_row(self) -> List[Optional[int]]:
        """[order_id, placed_at, value, travel_time, eta]"""
        return [self.order_id, self.placed_at, self.value,
                self.travel_time, self.eta]


@dataclass
class DeliveryOrder:
    order_id: int
    placed_at: int
    value: int
    travel_time: int
    priority_score: float
    eta: Optional[int] = None

    @property
    def is_scheduled(self) -> bool:
        return self.eta is not None

    def assign_eta(self, eta: int) -> None:
        if self.eta is not None:
            raise RuntimeError(
                f"Order {self.order_id} already has ETA {self.eta}")
        self.eta = eta

    def snapshot(self) -> OrderSnapshot:
        return OrderSnapshot(
            order_id=self.order_id,
            placed_at=self.placed_at,
            value=self.value,
            travel_time=self.travel_time,
            eta=self.eta,
        )


_DEFAULT_WEIGHTS = PriorityWeights()


def priority_score(value: int, placed_at: int,
                   weights: Optional[PriorityWeights] = None) -> float:
    """Default priority formula. Earlier and higher-value orders score higher."""
    return (weights or _DEFAULT_WEIGHTS).score(value, placed_at)


def create_record(order_id: int, placed_at: int, value: int,
                  travel_time: int,
                  scorer: Optional[Scorer] = None) -> DeliveryOrder:
    """
    Build a DeliveryOrder with its priority computed and no ETA.
    Inputs are trusted; range validation is the caller's job.
    """
    score = scorer(value, placed_at) if scorer is not None else priority_score(value, placed_at)
    return DeliveryOrder(
        order_id=order_id,
        placed_at=placed_at,
        value=value,
        travel_time=travel_time,
        priority_score=score,
    )
