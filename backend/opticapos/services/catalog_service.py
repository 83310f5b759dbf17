# backend/opticapos/services/catalog_service.py
"""
Catalog Service: categories, products and stock thresholds.

Category deletion is refused while any product still references it, and a
product that already appears on a sale cannot be deleted (its sale items
keep a foreign key to it for price history).
"""
from __future__ import annotations

import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, UnknownReferenceError, ValidationError
from ..models import Category, Product, SaleItem
from .concurrency import run_with_retry
from .inventory_service import StockReconciler
from .notification_service import KIND_STOCK_LOW, NotificationFanout

logger = logging.getLogger(__name__)

CATEGORY_MUTABLE_FIELDS = {"name", "description"}
PRODUCT_MUTABLE_FIELDS = {"category_id", "name", "barcode", "price_cents", "quantity", "min_stock"}


def apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


class CatalogService:
    def __init__(
        self,
        session,
        *,
        reconciler: StockReconciler,
        notifier: NotificationFanout,
        default_min_stock: int = 5,
    ):
        self.session = session
        self.reconciler = reconciler
        self.notifier = notifier
        self.default_min_stock = default_min_stock

    # Categories

    def list_categories(self) -> list[Category]:
        return self.session.execute(
            select(Category).order_by(Category.name.asc(), Category.id.asc())
        ).scalars().all()

    def get_category(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if category is None:
            raise UnknownReferenceError("Category not found", details={"category_id": category_id})
        return category

    def create_category(self, patch: dict) -> Category:
        name = (patch.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be blank")
        category = Category(name=name, description=patch.get("description"))
        self.session.add(category)
        self.session.commit()
        return category

    def update_category(self, category_id: int, patch: dict) -> Category:
        category = self.get_category(category_id)
        if "name" in patch and not (patch["name"] or "").strip():
            raise ValidationError("name cannot be blank")
        apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
        self.session.commit()
        return category

    def delete_category(self, category_id: int) -> None:
        category = self.get_category(category_id)
        product_count = self.session.execute(
            select(func.count(Product.id)).where(Product.category_id == category_id)
        ).scalar()
        if product_count:
            raise ConflictError(
                "Category still has products; move or delete them first",
                details={"category_id": category_id, "product_count": int(product_count)},
            )
        self.session.delete(category)
        self.session.commit()

    # Products

    def list_products(self, *, category_id: int | None = None) -> list[Product]:
        stmt = select(Product)
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        return self.session.execute(stmt.order_by(Product.name.asc(), Product.id.asc())).scalars().all()

    def get_product(self, product_id: int) -> Product:
        product = self.session.get(Product, product_id)
        if product is None:
            raise UnknownReferenceError("Product not found", details={"product_id": product_id})
        return product

    def get_product_by_barcode(self, barcode: str) -> Product:
        product = self.session.execute(
            select(Product).where(Product.barcode == barcode)
        ).scalar_one_or_none()
        if product is None:
            raise UnknownReferenceError("Product not found", details={"barcode": barcode})
        return product

    def _ensure_barcode_free(self, barcode: str | None, *, exclude_id: int | None = None) -> None:
        if not barcode:
            return
        stmt = select(Product.id).where(Product.barcode == barcode)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        if self.session.execute(stmt).first() is not None:
            raise ConflictError("Barcode already exists", details={"barcode": barcode})

    def create_product(self, patch: dict) -> Product:
        missing = sorted(k for k in ("category_id", "name", "price_cents") if patch.get(k) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        self.get_category(patch["category_id"])
        self._ensure_barcode_free(patch.get("barcode"))

        product = Product(min_stock=self.default_min_stock, quantity=0)
        apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
        self.session.add(product)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("Product violates a uniqueness or reference rule") from exc
        return product

    def update_product(self, product_id: int, patch: dict) -> Product:
        """
        Edit a product. An explicit quantity edit is re-evaluated against the
        product's min_stock and fans out the same alerts a sale would.
        """
        if "category_id" in patch:
            self.get_category(patch["category_id"])

        def _op():
            product = self.get_product(product_id)
            self._ensure_barcode_free(patch.get("barcode"), exclude_id=product_id)
            previous_quantity = product.quantity
            apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
            self.session.commit()
            return product, previous_quantity

        try:
            product, previous_quantity = run_with_retry(self.session, _op)
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("Product violates a uniqueness or reference rule") from exc

        if "quantity" in patch:
            change = self.reconciler.describe_change(product, previous_quantity=previous_quantity)
            if change.crossing is not None:
                self.notifier.dispatch(KIND_STOCK_LOW, {
                    "product_id": change.product_id,
                    "product_name": change.product_name,
                    "quantity": change.new_quantity,
                    "crossing": change.crossing,
                })
        return product

    def delete_product(self, product_id: int) -> None:
        product = self.get_product(product_id)
        sold = self.session.execute(
            select(SaleItem.id).where(SaleItem.product_id == product_id).limit(1)
        ).first()
        if sold is not None:
            raise ConflictError(
                "Product appears on recorded sales and cannot be deleted",
                details={"product_id": product_id},
            )
        self.session.delete(product)
        self.session.commit()

    # Stock alerts

    def low_stock_products(self) -> list[dict]:
        """Products at or below min_stock (including zero), lowest quantity first."""
        rows = self.session.execute(
            select(
                Product.id,
                Product.name,
                Product.category_id,
                Product.quantity,
                Product.min_stock,
                Product.price_cents,
                Product.barcode,
            )
            .where(Product.quantity <= Product.min_stock)
            .order_by(Product.quantity.asc(), Product.id.asc())
        ).all()
        return [
            {
                "product_id": row.id,
                "name": row.name,
                "category_id": row.category_id,
                "quantity": row.quantity,
                "min_stock": row.min_stock,
                "price_cents": row.price_cents,
                "barcode": row.barcode,
            }
            for row in rows
        ]

    def update_min_stock(self, product_id: int, min_stock: int) -> None:
        if isinstance(min_stock, bool) or not isinstance(min_stock, int) or min_stock < 0:
            raise ValidationError("min_stock must be an integer >= 0")

        def _op():
            product = self.get_product(product_id)
            product.min_stock = min_stock
            self.session.commit()

        run_with_retry(self.session, _op)
