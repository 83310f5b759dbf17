# Overview: Stock reconciliation; the only code path that decrements Product.quantity for sales.

"""
Inventory invariants (authoritative)

- Product.quantity is the single source of truth for stock on hand.
- quantity never goes negative: the decrement is a single conditional UPDATE
  (quantity >= requested) so two concurrent sales cannot both pass a stale
  check. If the row does not match, nothing is written and
  InsufficientStockError is raised; the caller's transaction rolls back.
- The reconciler never commits. It runs inside the caller's unit of work.

Crossing detection is evaluated once per deduction on the resulting quantity:
- low stock:    0 < new_quantity <= min_stock
- out of stock: new_quantity == 0
Level-triggered by default (a product already in the band re-fires on every
sale that keeps it there). With edge_triggered=True a crossing only fires when
the pre-deduction quantity was outside the band.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import update

from ..errors import InsufficientStockError, UnknownProductError, ValidationError
from ..models import Product

logger = logging.getLogger(__name__)

CROSSING_LOW_STOCK = "low_stock"
CROSSING_OUT_OF_STOCK = "out_of_stock"


@dataclass(frozen=True)
class DeductionResult:
    product_id: int
    product_name: str
    previous_quantity: int
    new_quantity: int
    min_stock: int
    crossed_low_stock: bool
    went_empty: bool

    @property
    def crossing(self) -> str | None:
        if self.went_empty:
            return CROSSING_OUT_OF_STOCK
        if self.crossed_low_stock:
            return CROSSING_LOW_STOCK
        return None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "min_stock": self.min_stock,
            "crossed_low_stock": self.crossed_low_stock,
            "went_empty": self.went_empty,
        }


def evaluate_crossing(
    previous_quantity: int,
    new_quantity: int,
    min_stock: int,
    *,
    edge_triggered: bool = False,
) -> tuple[bool, bool]:
    """Return (crossed_low_stock, went_empty) for a quantity change."""
    went_empty = new_quantity == 0
    crossed_low_stock = 0 < new_quantity <= min_stock

    if edge_triggered:
        went_empty = went_empty and previous_quantity > 0
        crossed_low_stock = crossed_low_stock and previous_quantity > min_stock

    return crossed_low_stock, went_empty


class StockReconciler:
    def __init__(self, session, *, edge_triggered: bool = False):
        self.session = session
        self.edge_triggered = edge_triggered

    def apply_deduction(self, product_id: int, quantity: int) -> DeductionResult:
        """
        Atomically decrement a product's quantity and report threshold crossings.

        Raises UnknownProductError or InsufficientStockError without writing.
        """
        if quantity < 1:
            raise ValidationError("quantity must be >= 1")

        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.quantity >= quantity)
            .values(
                quantity=Product.quantity - quantity,
                version_id=Product.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)

        # Refresh whatever the identity map holds for this row
        product = self.session.get(Product, product_id, populate_existing=True)

        if result.rowcount != 1:
            if product is None:
                raise UnknownProductError(
                    "Product not found",
                    details={"product_id": product_id},
                )
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}",
                details={
                    "product_id": product.id,
                    "product_name": product.name,
                    "requested_quantity": quantity,
                    "available_quantity": product.quantity,
                },
            )

        return self.describe_change(product, previous_quantity=product.quantity + quantity)

    def describe_change(self, product: Product, *, previous_quantity: int) -> DeductionResult:
        """Crossing report for a product whose quantity just changed from previous_quantity."""
        crossed_low_stock, went_empty = evaluate_crossing(
            previous_quantity,
            product.quantity,
            product.min_stock,
            edge_triggered=self.edge_triggered,
        )
        if crossed_low_stock or went_empty:
            logger.info(
                "Product %s crossed stock threshold: %d -> %d (min_stock=%d)",
                product.id, previous_quantity, product.quantity, product.min_stock,
            )
        return DeductionResult(
            product_id=product.id,
            product_name=product.name,
            previous_quantity=previous_quantity,
            new_quantity=product.quantity,
            min_stock=product.min_stock,
            crossed_low_stock=crossed_low_stock,
            went_empty=went_empty,
        )
