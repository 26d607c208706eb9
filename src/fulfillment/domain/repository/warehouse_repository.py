"""Abstract lookup for warehouses (owned by the inventory module)."""

from __future__ import annotations

from abc import ABC, abstractmethod


class WarehouseRepository(ABC):

    @abstractmethod
    def exists(self, warehouse_id: int) -> bool:
        """Return True if the warehouse exists."""
