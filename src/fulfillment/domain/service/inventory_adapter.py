"""Contract for the inventory subsystem.

The reconciliation engine only ever *posts* signed stock adjustments.  The
adapter is optional: an engine built without one ships without stock
effects.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class StockAdjustment:
    """A signed stock movement; negative quantities are outbound."""

    warehouse_id: int
    product_id: int
    quantity: Decimal
    unit_cost: Decimal
    reference: str  # unique per adjustment, e.g. "DO-DO-202601-00001-L7"
    note: str = ""
    actor_id: int | None = None
    ref_module: str = "DELIVERY"
    ref_id: str = ""


class InventoryAdapter(ABC):

    @abstractmethod
    def post_adjustment(self, adjustment: StockAdjustment) -> None:
        """Apply *adjustment*.

        Raises InventoryAdjustmentError when the inventory subsystem rejects
        it.  Posting the same ``reference`` twice must not move stock twice.
        """
