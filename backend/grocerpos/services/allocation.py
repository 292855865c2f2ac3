"""
Allocation planner: FIFO-by-expiry batch allocation arithmetic.

Pure functions only. The planner never touches the database; it is handed
the eligible batches already in allocation order (see
batch_ledger.available_batches) and answers which batch gives how much.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol


class BatchLike(Protocol):
    id: int
    quantity: int


class InsufficientStockError(Exception):
    """Eligible batches cannot cover the requested quantity."""

    def __init__(self, available: int, requested: int):
        super().__init__(f"Insufficient stock. Available: {available}, Requested: {requested}")
        self.available = available
        self.requested = requested


@dataclass(frozen=True)
class AllocationSlice:
    batch_id: int
    quantity: int


@dataclass(frozen=True)
class AllocationPlan:
    requested: int
    slices: tuple[AllocationSlice, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return sum(s.quantity for s in self.slices)


def plan_allocation(batches: Iterable[BatchLike], requested_quantity: int) -> AllocationPlan:
    """
    Take min(batch.quantity, still_needed) from each batch, in the order given.

    Availability is checked against the sum of all batches before any slice
    is produced: either the whole request is covered or
    InsufficientStockError is raised and there is no plan at all.

    requested_quantity must be a positive int; anything else is a caller bug
    and raises ValueError.
    """
    if isinstance(requested_quantity, bool) or not isinstance(requested_quantity, int):
        raise ValueError("requested_quantity must be an integer")
    if requested_quantity <= 0:
        raise ValueError("requested_quantity must be > 0")

    batches = [b for b in batches if b.quantity > 0]
    available = sum(b.quantity for b in batches)
    if available < requested_quantity:
        raise InsufficientStockError(available=available, requested=requested_quantity)

    slices: list[AllocationSlice] = []
    still_needed = requested_quantity
    for batch in batches:
        if still_needed <= 0:
            break
        take = min(batch.quantity, still_needed)
        slices.append(AllocationSlice(batch_id=batch.id, quantity=take))
        still_needed -= take

    return AllocationPlan(requested=requested_quantity, slices=tuple(slices))
