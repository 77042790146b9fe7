"""
Demand feed boundary.

Which open work orders commit which parts is decided by an external planning
component. The ledger only consumes the aggregate per part.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Protocol


class DemandFeed(Protocol):
    def reserved_quantity_for(self, part_id: int) -> Decimal: ...


class NoDemand:
    """Default wiring when no planning component is connected."""

    def reserved_quantity_for(self, part_id: int) -> Decimal:
        return Decimal("0")


class MappingDemandFeed:
    """Pre-aggregated reservations pushed by an integration (part_id -> quantity)."""

    def __init__(self, reserved: Mapping[int, Decimal | int | str]):
        self._reserved = {int(pid): Decimal(str(qty)) for pid, qty in reserved.items()}

    def reserved_quantity_for(self, part_id: int) -> Decimal:
        return self._reserved.get(int(part_id), Decimal("0"))
