"""
Sales Service - one-shot sale completion

A cart of (product_id, quantity) lines becomes a Sale header, one SaleItem
per line and one stock deduction per line, all inside a single database
transaction. Any unknown product, missing stock, storage failure or timeout
rolls the whole unit back: no header, no items, no deductions.

Prices are snapshotted from Product.price_cents while the transaction runs
and the total is always computed here; a client-supplied total is only
compared, never stored.

Notifications (threshold crossings, sale completed) are fanned out after the
commit, in their own transactions, and their failure never reaches the
caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    EmptyCartError,
    PersistenceError,
    ShopError,
    UnknownProductError,
    UnknownReferenceError,
    ValidationError,
)
from ..models import Product, Sale, SaleItem, User
from ..time_utils import utcnow
from ..validation import MAX_DB_INT, coerce_int, enforce_rules_sale_line
from .concurrency import Deadline, apply_statement_timeout, begin_write_transaction, run_with_retry
from .inventory_service import DeductionResult, StockReconciler
from .notification_service import KIND_SALE, KIND_STOCK_LOW, NotificationFanout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleReceipt:
    sale_id: int
    total_amount_cents: int
    item_count: int
    deductions: list[DeductionResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "total_amount_cents": self.total_amount_cents,
            "item_count": self.item_count,
            "stock": [d.to_dict() for d in self.deductions],
        }


def normalize_line_items(line_items) -> list[tuple[int, int]]:
    if line_items is None or (isinstance(line_items, (list, tuple)) and not line_items):
        raise EmptyCartError("Cannot create a sale with no items")
    if not isinstance(line_items, (list, tuple)):
        raise ValidationError("items must be a list")
    return [enforce_rules_sale_line(i, line) for i, line in enumerate(line_items)]


class SaleLedger:
    def __init__(
        self,
        session,
        reconciler: StockReconciler,
        notifier: NotificationFanout,
        *,
        timeout_seconds: float | None = None,
    ):
        self.session = session
        self.reconciler = reconciler
        self.notifier = notifier
        self.timeout_seconds = timeout_seconds

    def create_sale(
        self,
        seller_id: int,
        line_items,
        *,
        client_total_cents: int | None = None,
    ) -> SaleReceipt:
        """
        Record a sale and deduct its stock as one all-or-nothing unit.

        Raises EmptyCartError/ValidationError, UnknownReferenceError (seller),
        UnknownProductError, InsufficientStockError or PersistenceError. On
        any of them nothing has been committed.
        """
        lines = normalize_line_items(line_items)
        if client_total_cents is not None:
            client_total_cents = coerce_int("total_amount_cents", client_total_cents)

        seller = self.session.get(User, seller_id)
        if seller is None:
            raise UnknownReferenceError("Seller not found", details={"seller_id": seller_id})
        seller_name = seller.display_name

        deadline = Deadline(self.timeout_seconds)

        def _op():
            deadline.check("Sale transaction")
            begin_write_transaction(self.session)
            apply_statement_timeout(self.session, deadline.remaining())

            sale = Sale(seller_id=seller_id, total_amount_cents=0, created_at=utcnow())
            self.session.add(sale)
            self.session.flush()

            total = 0
            deductions: list[DeductionResult] = []
            for product_id, quantity in lines:
                unit_price = self.session.execute(
                    select(Product.price_cents).where(Product.id == product_id)
                ).scalar_one_or_none()
                if unit_price is None:
                    raise UnknownProductError(
                        "Product not found",
                        details={"product_id": product_id},
                    )

                deductions.append(self.reconciler.apply_deduction(product_id, quantity))

                subtotal = quantity * unit_price
                self.session.add(SaleItem(
                    sale_id=sale.id,
                    product_id=product_id,
                    quantity=quantity,
                    unit_price_cents=unit_price,
                    subtotal_cents=subtotal,
                ))
                total += subtotal

            if client_total_cents is not None and client_total_cents != total:
                raise ValidationError(
                    "Submitted total does not match current prices",
                    details={"submitted_total_cents": client_total_cents, "total_amount_cents": total},
                )

            sale.total_amount_cents = total
            self.session.flush()
            deadline.check("Sale transaction")
            self.session.commit()
            return SaleReceipt(
                sale_id=sale.id,
                total_amount_cents=total,
                item_count=len(lines),
                deductions=deductions,
            )

        try:
            receipt = run_with_retry(self.session, _op)
        except ShopError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Sale transaction aborted for seller %s", seller_id)
            raise PersistenceError("Could not record sale, please retry") from exc
        except Exception:
            self.session.rollback()
            raise

        logger.info(
            "Sale %s committed: %d line(s), total %d cents",
            receipt.sale_id, receipt.item_count, receipt.total_amount_cents,
        )
        self._fan_out(receipt, seller_name)
        return receipt

    def _fan_out(self, receipt: SaleReceipt, seller_name: str) -> None:
        for deduction in receipt.deductions:
            if deduction.crossing is None:
                continue
            self.notifier.dispatch(KIND_STOCK_LOW, {
                "product_id": deduction.product_id,
                "product_name": deduction.product_name,
                "quantity": deduction.new_quantity,
                "crossing": deduction.crossing,
            })

        self.notifier.dispatch(KIND_SALE, {
            "sale_id": receipt.sale_id,
            "seller_name": seller_name,
            "item_count": receipt.item_count,
            "total_amount_cents": receipt.total_amount_cents,
        })

    # Read side

    def get_sale(self, sale_id: int) -> Sale:
        sale = self.session.get(Sale, sale_id)
        if sale is None:
            raise UnknownReferenceError("Sale not found", details={"sale_id": sale_id})
        return sale

    def list_sales(self, *, limit: int | None = None) -> list[Sale]:
        stmt = select(Sale).order_by(Sale.created_at.desc(), Sale.id.desc())
        if limit is not None:
            if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_DB_INT:
                raise ValidationError("limit must be a positive integer")
            stmt = stmt.limit(limit)
        return self.session.execute(stmt).scalars().all()

    def get_sale_items(self, sale_id: int) -> list[SaleItem]:
        self.get_sale(sale_id)
        return self.session.execute(
            select(SaleItem).where(SaleItem.sale_id == sale_id).order_by(SaleItem.id.asc())
        ).scalars().all()

    def items_total(self, sale_id: int) -> int:
        return int(self.session.execute(
            select(func.coalesce(func.sum(SaleItem.subtotal_cents), 0)).where(SaleItem.sale_id == sale_id)
        ).scalar() or 0)
