"""Inventory adapter backed by the ``stock_levels`` / ``stock_adjustments``
tables.

The adapter borrows the session of the unit of work it was built with, so an
adjustment commits or rolls back together with the delivery that caused it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select

from fulfillment.domain.exceptions import InventoryAdjustmentError
from fulfillment.domain.service.inventory_adapter import (
    InventoryAdapter,
    StockAdjustment,
)
from fulfillment.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork
from fulfillment.infrastructure.persistence.tables import (
    StockAdjustmentRow,
    StockLevelRow,
)

logger = logging.getLogger(__name__)


class SqlInventoryAdapter(InventoryAdapter):

    def __init__(self, uow: SqlUnitOfWork) -> None:
        self._uow = uow

    def post_adjustment(self, adjustment: StockAdjustment) -> None:
        session = self._uow.session

        already_posted = session.execute(
            select(StockAdjustmentRow.id).where(
                StockAdjustmentRow.reference == adjustment.reference
            )
        ).first()
        if already_posted is not None:
            logger.info("Adjustment %s already posted; skipping", adjustment.reference)
            return

        level = session.execute(
            select(StockLevelRow)
            .where(
                StockLevelRow.warehouse_id == adjustment.warehouse_id,
                StockLevelRow.product_id == adjustment.product_id,
            )
            .with_for_update()
        ).scalar_one_or_none()
        if level is None:
            raise InventoryAdjustmentError(
                f"No stock record for product {adjustment.product_id} "
                f"in warehouse {adjustment.warehouse_id}"
            )

        new_on_hand = Decimal(level.on_hand) + adjustment.quantity
        if new_on_hand < 0:
            raise InventoryAdjustmentError(
                f"Insufficient stock for product {adjustment.product_id} in "
                f"warehouse {adjustment.warehouse_id}: on hand {level.on_hand}, "
                f"adjustment {adjustment.quantity}"
            )

        level.on_hand = new_on_hand
        session.add(
            StockAdjustmentRow(
                reference=adjustment.reference,
                warehouse_id=adjustment.warehouse_id,
                product_id=adjustment.product_id,
                quantity=adjustment.quantity,
                unit_cost=adjustment.unit_cost,
                note=adjustment.note,
                actor_id=adjustment.actor_id,
                ref_module=adjustment.ref_module,
                ref_id=adjustment.ref_id,
                posted_at=datetime.now(timezone.utc),
            )
        )
        session.flush()
        logger.info(
            "Posted %s: product %s in warehouse %s, %s (on hand %s)",
            adjustment.reference,
            adjustment.product_id,
            adjustment.warehouse_id,
            adjustment.quantity,
            new_on_hand,
        )

    def set_on_hand(self, warehouse_id: int, product_id: int, on_hand: Decimal) -> None:
        """Create or overwrite a stock level (seeding and tests)."""
        session = self._uow.session
        level = session.get(StockLevelRow, (warehouse_id, product_id))
        if level is None:
            session.add(
                StockLevelRow(
                    warehouse_id=warehouse_id, product_id=product_id, on_hand=on_hand
                )
            )
        else:
            level.on_hand = on_hand
        session.flush()

    def on_hand(self, warehouse_id: int, product_id: int) -> Decimal | None:
        level = self._uow.session.get(StockLevelRow, (warehouse_id, product_id))
        return None if level is None else Decimal(level.on_hand)
