"""Sale completion: totals, price snapshots, atomicity and best-effort notifications."""

import logging

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from opticapos.errors import (
    EmptyCartError,
    InsufficientStockError,
    NotificationDeliveryError,
    PersistenceError,
    UnknownProductError,
    UnknownReferenceError,
    ValidationError,
)
from opticapos.models import Notification, Product, Sale, SaleItem
from opticapos.services import sales_service
from opticapos.services.concurrency import Deadline
from opticapos.services.notification_service import NotificationFanout


def _count(db_session, model):
    return db_session.execute(select(func.count(model.id))).scalar()


def _stock_low_titles(db_session, user_id):
    return [
        n.title for n in db_session.execute(
            select(Notification).where(Notification.user_id == user_id, Notification.type == "stock_low")
        ).scalars()
    ]


def test_total_is_sum_of_subtotals(shop, db_session, seller, make_product):
    frame = make_product(name="Armação Ray-Ban", price_cents=35990, quantity=4)
    cloth = make_product(name="Pano de Limpar Lente", price_cents=1250, quantity=50)

    receipt = shop.sales.create_sale(seller.id, [
        {"product_id": frame.id, "quantity": 1},
        {"product_id": cloth.id, "quantity": 3},
    ])

    items = shop.sales.get_sale_items(receipt.sale_id)
    assert [i.subtotal_cents for i in items] == [35990, 3750]
    assert all(i.subtotal_cents == i.quantity * i.unit_price_cents for i in items)
    sale = shop.sales.get_sale(receipt.sale_id)
    assert sale.total_amount_cents == receipt.total_amount_cents == 39740
    assert shop.sales.items_total(receipt.sale_id) == sale.total_amount_cents
    assert receipt.item_count == 2


def test_unit_price_is_a_snapshot(shop, db_session, seller, make_product):
    product = make_product(price_cents=1000, quantity=10)
    receipt = shop.sales.create_sale(seller.id, [{"product_id": product.id, "quantity": 2}])

    shop.catalog.update_product(product.id, {"price_cents": 5000})

    item = shop.sales.get_sale_items(receipt.sale_id)[0]
    assert item.unit_price_cents == 1000
    assert item.subtotal_cents == 2000
    assert shop.sales.get_sale(receipt.sale_id).total_amount_cents == 2000


def test_low_stock_scenario_then_oversell_is_refused(shop, db_session, staff, make_product):
    product = make_product(name="Lente A", price_cents=1000, quantity=3, min_stock=5)

    receipt = shop.sales.create_sale(staff["seller"].id, [{"product_id": product.id, "quantity": 2}])

    assert receipt.total_amount_cents == 2000
    assert db_session.get(Product, product.id).quantity == 1
    for role in ("owner", "manager"):
        assert _stock_low_titles(db_session, staff[role].id) == ["Estoque Baixo: Lente A"]
    assert _stock_low_titles(db_session, staff["seller"].id) == []

    with pytest.raises(InsufficientStockError) as exc_info:
        shop.sales.create_sale(staff["seller"].id, [{"product_id": product.id, "quantity": 5}])

    assert exc_info.value.details["available_quantity"] == 1
    assert exc_info.value.details["requested_quantity"] == 5
    assert db_session.get(Product, product.id).quantity == 1
    assert _count(db_session, Sale) == 1


def test_failed_line_rolls_back_whole_cart(shop, db_session, seller, make_product):
    plenty = make_product(name="Estojo", quantity=20)
    scarce = make_product(name="Lente Rara", quantity=1)

    with pytest.raises(InsufficientStockError):
        shop.sales.create_sale(seller.id, [
            {"product_id": plenty.id, "quantity": 5},
            {"product_id": scarce.id, "quantity": 2},
        ])

    assert db_session.get(Product, plenty.id).quantity == 20
    assert db_session.get(Product, scarce.id).quantity == 1
    assert _count(db_session, Sale) == 0
    assert _count(db_session, SaleItem) == 0
    assert _count(db_session, Notification) == 0


def test_unknown_product_rolls_back(shop, db_session, seller, make_product):
    product = make_product(quantity=10)

    with pytest.raises(UnknownProductError) as exc_info:
        shop.sales.create_sale(seller.id, [
            {"product_id": product.id, "quantity": 1},
            {"product_id": 999999, "quantity": 1},
        ])

    assert exc_info.value.details == {"product_id": 999999}
    assert db_session.get(Product, product.id).quantity == 10
    assert _count(db_session, Sale) == 0


def test_repeated_product_lines_share_the_stock_check(shop, db_session, seller, make_product):
    product = make_product(quantity=5)

    with pytest.raises(InsufficientStockError):
        shop.sales.create_sale(seller.id, [
            {"product_id": product.id, "quantity": 3},
            {"product_id": product.id, "quantity": 3},
        ])

    assert db_session.get(Product, product.id).quantity == 5


@pytest.mark.parametrize("items", [[], None])
def test_empty_cart(shop, seller, items):
    with pytest.raises(EmptyCartError):
        shop.sales.create_sale(seller.id, items)


@pytest.mark.parametrize("line", [
    {"product_id": 1, "quantity": 0},
    {"product_id": 1, "quantity": -2},
    {"product_id": 1, "quantity": 1.5},
    {"product_id": 1},
    "not-a-line",
])
def test_invalid_lines_are_rejected_before_any_write(shop, db_session, seller, line):
    with pytest.raises(ValidationError):
        shop.sales.create_sale(seller.id, [line])
    assert _count(db_session, Sale) == 0


def test_unknown_seller(shop, make_product):
    product = make_product()
    with pytest.raises(UnknownReferenceError):
        shop.sales.create_sale(424242, [{"product_id": product.id, "quantity": 1}])


def test_client_total_is_verified_not_trusted(shop, db_session, seller, make_product):
    product = make_product(price_cents=1000, quantity=10)

    with pytest.raises(ValidationError) as exc_info:
        shop.sales.create_sale(
            seller.id,
            [{"product_id": product.id, "quantity": 2}],
            client_total_cents=1,
        )
    assert exc_info.value.details["total_amount_cents"] == 2000
    assert db_session.get(Product, product.id).quantity == 10
    assert _count(db_session, Sale) == 0

    receipt = shop.sales.create_sale(
        seller.id,
        [{"product_id": product.id, "quantity": 2}],
        client_total_cents=2000,
    )
    assert receipt.total_amount_cents == 2000


def test_sale_notification_message(shop, db_session, staff, make_product):
    product = make_product(price_cents=123456, quantity=50)

    shop.sales.create_sale(staff["seller"].id, [{"product_id": product.id, "quantity": 1}])

    rows = db_session.execute(
        select(Notification).where(Notification.type == "sale").order_by(Notification.user_id)
    ).scalars().all()
    assert {n.user_id for n in rows} == {staff["owner"].id, staff["manager"].id}
    assert rows[0].title == "Nova Venda Registrada"
    assert rows[0].message == "Sara Seller registrou uma venda de 1 item(ns) no valor de R$ 1.234,56."


def test_notification_failure_does_not_undo_sale(shop, db_session, staff, make_product, monkeypatch, caplog):
    product = make_product(price_cents=1000, quantity=3, min_stock=5)

    def broken_batches(self):
        raise OperationalError("INSERT INTO notifications", {}, Exception("disk I/O error"))
        yield  # pragma: no cover

    monkeypatch.setattr(NotificationFanout, "_recipient_batches", broken_batches)

    with caplog.at_level(logging.WARNING, logger="opticapos.services.notification_service"):
        receipt = shop.sales.create_sale(staff["seller"].id, [{"product_id": product.id, "quantity": 2}])

    assert receipt.total_amount_cents == 2000
    assert db_session.get(Product, product.id).quantity == 1
    assert db_session.get(Sale, receipt.sale_id) is not None
    assert _count(db_session, Notification) == 0
    assert "Notification delivery failed" in caplog.text


def test_notify_raises_delivery_error_for_direct_callers(shop, staff, monkeypatch):
    def broken_batches(self):
        raise OperationalError("SELECT", {}, Exception("database is locked"))
        yield  # pragma: no cover

    monkeypatch.setattr(NotificationFanout, "_recipient_batches", broken_batches)

    with pytest.raises(NotificationDeliveryError):
        shop.notifier.notify("sale", {"seller_name": "X", "item_count": 1, "total_amount_cents": 1})


def test_timeout_fails_closed(shop, db_session, seller, make_product, monkeypatch):
    product = make_product(quantity=10)

    class ExpiringDeadline(Deadline):
        """Expires after the writes are flushed, just before commit."""
        def __init__(self, seconds):
            super().__init__(seconds)
            self.calls = 0

        def check(self, what="operation"):
            self.calls += 1
            if self.calls > 1:
                raise PersistenceError(f"{what} timed out")

    monkeypatch.setattr(sales_service, "Deadline", ExpiringDeadline)

    with pytest.raises(PersistenceError):
        shop.sales.create_sale(seller.id, [{"product_id": product.id, "quantity": 4}])

    assert db_session.get(Product, product.id).quantity == 10
    assert _count(db_session, Sale) == 0
    assert _count(db_session, SaleItem) == 0


def test_list_sales_most_recent_first(shop, seller, make_product):
    product = make_product(quantity=10)
    first = shop.sales.create_sale(seller.id, [{"product_id": product.id, "quantity": 1}])
    second = shop.sales.create_sale(seller.id, [{"product_id": product.id, "quantity": 1}])

    assert [s.id for s in shop.sales.list_sales()] == [second.sale_id, first.sale_id]
    assert [s.id for s in shop.sales.list_sales(limit=1)] == [second.sale_id]


def test_get_unknown_sale(shop):
    with pytest.raises(UnknownReferenceError):
        shop.sales.get_sale(12345)


def test_out_of_range_product_id_is_rejected_before_any_write(shop, db_session, seller):
    with pytest.raises(ValidationError):
        shop.sales.create_sale(seller.id, [{"product_id": 10**30, "quantity": 1}])

    assert _count(db_session, Sale) == 0


def test_unexpected_error_rolls_back_open_transaction(shop, db_session, seller, make_product, monkeypatch):
    product = make_product(quantity=10)

    def broken_deduction(product_id, quantity):
        raise RuntimeError("driver exploded")

    monkeypatch.setattr(shop.reconciler, "apply_deduction", broken_deduction)

    with pytest.raises(RuntimeError):
        shop.sales.create_sale(seller.id, [{"product_id": product.id, "quantity": 1}])

    assert not db_session.in_transaction()
    assert not db_session.new
    assert _count(db_session, Sale) == 0
    assert db_session.get(Product, product.id).quantity == 10


@pytest.mark.parametrize("limit", [0, -1, True, 10**30])
def test_list_sales_rejects_bad_limit(shop, limit):
    with pytest.raises(ValidationError):
        shop.sales.list_sales(limit=limit)
