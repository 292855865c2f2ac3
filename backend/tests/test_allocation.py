"""Allocation planner: FIFO slicing over pre-ordered batches."""

from types import SimpleNamespace

import pytest

from grocerpos.services.allocation import (
    AllocationSlice,
    InsufficientStockError,
    plan_allocation,
)


def batch(batch_id, quantity):
    return SimpleNamespace(id=batch_id, quantity=quantity)


def test_takes_from_first_batch_then_next():
    plan = plan_allocation([batch(1, 5), batch(2, 20)], 8)

    assert plan.slices == (AllocationSlice(1, 5), AllocationSlice(2, 3))
    assert plan.total == 8
    assert plan.requested == 8


def test_single_batch_covers_request():
    plan = plan_allocation([batch(1, 10), batch(2, 10)], 4)
    assert plan.slices == (AllocationSlice(1, 4),)


def test_exact_total_drains_every_batch():
    plan = plan_allocation([batch(1, 3), batch(2, 2)], 5)
    assert [s.quantity for s in plan.slices] == [3, 2]


def test_empty_batches_are_skipped():
    plan = plan_allocation([batch(1, 0), batch(2, 4)], 2)
    assert plan.slices == (AllocationSlice(2, 2),)


def test_insufficient_raises_before_any_slice():
    with pytest.raises(InsufficientStockError) as exc_info:
        plan_allocation([batch(1, 3), batch(2, 2)], 6)

    assert exc_info.value.available == 5
    assert exc_info.value.requested == 6


def test_no_batches_is_insufficient():
    with pytest.raises(InsufficientStockError) as exc_info:
        plan_allocation([], 1)
    assert exc_info.value.available == 0


@pytest.mark.parametrize("qty", [0, -1, 1.5, True, "3"])
def test_rejects_non_positive_or_non_integer_quantity(qty):
    with pytest.raises(ValueError):
        plan_allocation([batch(1, 10)], qty)


def test_does_not_mutate_batches():
    batches = [batch(1, 5), batch(2, 5)]
    plan_allocation(batches, 7)
    assert [b.quantity for b in batches] == [5, 5]
