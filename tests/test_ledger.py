"""
Dispatch Ledger Tests
=====================
Tests for order records, priority configuration, and the ledger:
ETA chaining, range queries, cancellation, rank, delivery, and
index consistency.
"""

import logging
import random

import pytest

from dispatch.config import LedgerConfig, PriorityWeights
from dispatch.order import DeliveryOrder, OrderSnapshot, create_record, priority_score
from dispatch.ledger import DispatchLedger, DuplicateOrderError, LedgerError


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════

@pytest.fixture
def ledger():
    return DispatchLedger()


@pytest.fixture
def two_orders(ledger):
    """A: id=1, t=0, value=50, travel=10. B: id=2, t=0, value=10, travel=5."""
    ledger.create_order(1, 0, 50, 10)
    ledger.create_order(2, 0, 10, 5)
    return ledger


# ═══════════════════════════════════════════════════════════════════
# Records / Config
# ═══════════════════════════════════════════════════════════════════

class TestRecords:

    def test_default_priority_formula(self):
        assert priority_score(50, 0) == pytest.approx(0.3)
        assert priority_score(100, 10) == pytest.approx(0.3 * 2.0 - 7.0)

    def test_earlier_and_richer_rank_higher(self):
        assert priority_score(50, 0) > priority_score(50, 1)
        assert priority_score(100, 0) > priority_score(10, 0)

    def test_create_record_has_no_eta(self):
        order = create_record(7, 3, 25, 4)
        assert order.order_id == 7
        assert order.eta is None
        assert not order.is_scheduled
        assert order.priority_score == pytest.approx(0.3 * 0.5 - 0.7 * 3)

    def test_create_record_custom_scorer(self):
        order = create_record(1, 5, 10, 2, scorer=lambda value, t: value * 100 - t)
        assert order.priority_score == 995

    def test_eta_assigned_once(self):
        order = create_record(1, 0, 10, 2)
        order.assign_eta(2)
        assert order.is_scheduled
        with pytest.raises(RuntimeError, match="already has ETA"):
            order.assign_eta(5)

    def test_snapshot_row(self):
        order = DeliveryOrder(order_id=3, placed_at=1, value=20,
                              travel_time=6, priority_score=0.0, eta=9)
        snap = order.snapshot()
        assert snap == OrderSnapshot(3, 1, 20, 6, 9)
        assert snap.as_row() == [3, 1, 20, 6, 9]


class TestConfig:

    def test_weights_defaults(self):
        w = PriorityWeights()
        assert (w.value_weight, w.time_weight, w.value_scale) == (0.3, 0.7, 50.0)

    def test_weights_reject_bad_scale(self):
        with pytest.raises(ValueError, match="value_scale"):
            PriorityWeights(value_scale=0)

    def test_resolve_scorer(self):
        cfg = LedgerConfig(weights=PriorityWeights(value_weight=1.0, time_weight=0.0))
        assert cfg.resolve_scorer()(100, 99) == pytest.approx(2.0)

        custom = LedgerConfig(scorer=lambda value, t: -t)
        assert custom.resolve_scorer()(100, 4) == -4


# ═══════════════════════════════════════════════════════════════════
# ETA Chaining
# ═══════════════════════════════════════════════════════════════════

class TestCreateOrder:

    def test_first_order_eta(self, ledger):
        assert ledger.create_order(1, 0, 50, 10) == 10
        assert ledger.lookup_by_id(1).eta == 10

    def test_lower_priority_chains_behind(self, ledger):
        assert ledger.create_order(1, 0, 50, 10) == 10
        assert ledger.create_order(2, 0, 10, 5) == 15

    def test_highest_priority_uses_own_time(self, ledger):
        ledger.create_order(1, 5, 10, 3)
        # Placed earlier, so it outranks order 1
        assert ledger.create_order(2, 0, 10, 4) == 4

    def test_chain_follows_next_higher_priority(self, ledger):
        ledger.create_order(1, 0, 100, 10)     # priority 0.6
        ledger.create_order(2, 0, 10, 5)       # 0.06 -> behind 1
        # 0.3 sits between 1 and 2; served right after order 1
        assert ledger.create_order(3, 0, 50, 7) == 17

    def test_duplicate_id_rejected(self, ledger):
        ledger.create_order(1, 0, 50, 10)
        with pytest.raises(DuplicateOrderError, match="Order 1 already exists"):
            ledger.create_order(1, 2, 10, 5)
        assert isinstance(DuplicateOrderError(1), LedgerError)
        assert len(ledger) == 1
        assert ledger.verify() == []

    def test_custom_scorer_drives_chaining(self):
        # Value ignored: earliest placement wins
        ledger = DispatchLedger(LedgerConfig(scorer=lambda value, t: -t))
        assert ledger.create_order(1, 3, 500, 2) == 5
        assert ledger.create_order(2, 1, 1, 4) == 5
        assert ledger.create_order(3, 2, 1, 1) == 6

    def test_logs_creation(self, ledger, caplog):
        with caplog.at_level(logging.DEBUG, logger="dispatch.ledger"):
            ledger.create_order(1, 0, 50, 10)
        assert "Order 1 created" in caplog.text


# ═══════════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════════

class TestQueries:

    def test_lookup(self, two_orders):
        assert two_orders.lookup_by_id(2).as_row() == [2, 0, 10, 5, 15]
        assert two_orders.lookup_by_id(99) is None

    def test_orders_due_between(self, two_orders):
        assert two_orders.orders_due_between(0, 12) == [1]
        assert two_orders.orders_due_between(20, 30) == []
        assert two_orders.orders_due_between(10, 15) == [1, 2]
        assert two_orders.orders_due_between(15, 15) == [2]

    def test_rank_by_id(self, two_orders):
        assert two_orders.rank_by_id(1) == 0
        assert two_orders.rank_by_id(2) == 1

    def test_rank_of_unknown_is_none(self, two_orders):
        assert two_orders.rank_by_id(42) is None

    def test_rank_with_equal_etas(self, ledger):
        ledger.create_order(1, 0, 50, 10)      # eta 10
        ledger.create_order(2, 8, 10, 2)       # lowest priority, eta 12
        ledger.create_order(3, 0, 10, 2)       # between 1 and 2, eta 12
        assert ledger.orders_due_between(12, 12) == [2, 3]
        assert ledger.rank_by_id(2) == 1
        assert ledger.rank_by_id(3) == 2

    def test_outstanding_in_eta_order(self, two_orders):
        assert [s.order_id for s in two_orders.outstanding()] == [1, 2]

    def test_by_priority(self, two_orders):
        assert two_orders.by_priority() == [1, 2]

    def test_contains_and_len(self, two_orders):
        assert 1 in two_orders
        assert 3 not in two_orders
        assert len(two_orders) == 2


# ═══════════════════════════════════════════════════════════════════
# Cancellation / Delivery
# ═══════════════════════════════════════════════════════════════════

class TestCancel:

    def test_cancel_removes_from_both_indexes(self, two_orders):
        assert two_orders.cancel_order(1) is True
        assert two_orders.lookup_by_id(1) is None
        assert two_orders.orders_due_between(0, 12) == []
        assert two_orders.lookup_by_id(2).eta == 15
        assert two_orders.rank_by_id(2) == 0
        assert two_orders.by_priority() == [2]
        assert two_orders.verify() == []

    def test_cancel_unknown_is_noop(self, two_orders):
        assert two_orders.cancel_order(99) is False
        assert len(two_orders) == 2

    def test_cancel_twice(self, two_orders):
        assert two_orders.cancel_order(2) is True
        assert two_orders.cancel_order(2) is False

    def test_id_reusable_after_cancel(self, two_orders):
        two_orders.cancel_order(1)
        assert two_orders.create_order(1, 0, 50, 10) == 10


class TestDeliver:

    def test_deliver_until(self, two_orders):
        assert two_orders.deliver_until(9) == []
        assert two_orders.deliver_until(10) == [(1, 10)]
        assert 1 not in two_orders
        assert two_orders.deliver_until(100) == [(2, 15)]
        assert len(two_orders) == 0
        assert two_orders.verify() == []

    def test_deliver_on_empty(self, ledger):
        assert ledger.deliver_until(50) == []


# ═══════════════════════════════════════════════════════════════════
# Consistency
# ═══════════════════════════════════════════════════════════════════

class TestConsistency:

    def test_random_workload_keeps_indexes_in_lockstep(self, ledger):
        rng = random.Random(2024)
        live = []
        next_id = 1
        for clock in range(600):
            roll = rng.random()
            if live and roll < 0.3:
                order_id = live.pop(rng.randrange(len(live)))
                assert ledger.cancel_order(order_id) is True
            else:
                ledger.create_order(next_id, clock, rng.randint(0, 200),
                                    rng.randint(1, 30))
                live.append(next_id)
                next_id += 1

        assert ledger.verify() == []
        assert sorted(live) == sorted(s.order_id for s in ledger.outstanding())

        etas = [s.eta for s in ledger.outstanding()]
        assert etas == sorted(etas)
        for position, snap in enumerate(ledger.outstanding()):
            assert ledger.rank_by_id(snap.order_id) == position
