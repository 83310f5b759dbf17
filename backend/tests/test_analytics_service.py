"""Sales analytics: product rankings and revenue buckets in the shop time zone."""

from datetime import datetime

import pytest

from opticapos.engine import ShopEngine
from opticapos.errors import ValidationError
from opticapos.models import Sale, SaleItem

SHOP_TIMEZONE = "America/Sao_Paulo"

# 15:00 UTC is noon in São Paulo (UTC-3)
NOW = datetime(2026, 10, 19, 15, 0, 0)


@pytest.fixture
def analytics(db_session):
    return ShopEngine(db_session, timezone=SHOP_TIMEZONE, clock=lambda: NOW).analytics


@pytest.fixture
def record_sale(db_session, seller):
    """Insert a historical sale with an explicit UTC timestamp."""
    def _record(created_at, total_cents, items=()):
        sale = Sale(seller_id=seller.id, total_amount_cents=total_cents, created_at=created_at)
        for product, quantity in items:
            sale.items.append(SaleItem(
                product_id=product.id,
                quantity=quantity,
                unit_price_cents=product.price_cents,
                subtotal_cents=quantity * product.price_cents,
            ))
        db_session.add(sale)
        db_session.commit()
        return sale
    return _record


@pytest.fixture
def history(record_sale):
    record_sale(datetime(2026, 10, 19, 14, 0), 1000)   # 19/10 11:00 local
    record_sale(datetime(2026, 10, 19, 2, 0), 500)     # 18/10 23:00 local
    record_sale(datetime(2026, 10, 18, 12, 0), 700)    # 18/10 09:00 local
    record_sale(datetime(2026, 10, 10, 12, 0), 300)
    record_sale(datetime(2026, 9, 20, 3, 30), 40)      # 20/09 00:30 local, first day of a 30-day window
    record_sale(datetime(2026, 9, 20, 2, 30), 60)      # 19/09 23:30 local, outside it
    record_sale(datetime(2026, 8, 1, 12, 0), 9000)


def test_local_today_uses_shop_timezone(db_session):
    late_evening = datetime(2026, 10, 20, 1, 0)  # 19/10 22:00 local
    analytics = ShopEngine(db_session, timezone=SHOP_TIMEZONE, clock=lambda: late_evening).analytics
    assert analytics.local_today().isoformat() == "2026-10-19"


def test_daily_revenue_buckets_by_local_day(analytics, history):
    rows = analytics.daily_revenue(30)

    assert rows == [
        {"date": "2026-10-19", "revenue_cents": 1000, "count": 1},
        {"date": "2026-10-18", "revenue_cents": 1200, "count": 2},
        {"date": "2026-10-10", "revenue_cents": 300, "count": 1},
        {"date": "2026-09-20", "revenue_cents": 40, "count": 1},
    ]


def test_daily_revenue_three_days(analytics, record_sale):
    record_sale(datetime(2026, 10, 1, 15, 0), 100)
    record_sale(datetime(2026, 10, 5, 15, 0), 200)
    record_sale(datetime(2026, 10, 5, 16, 0), 250)
    record_sale(datetime(2026, 10, 12, 15, 0), 300)

    rows = analytics.daily_revenue(30)

    assert [r["date"] for r in rows] == ["2026-10-12", "2026-10-05", "2026-10-01"]
    assert [r["revenue_cents"] for r in rows] == [300, 450, 100]
    assert [r["count"] for r in rows] == [1, 2, 1]


def test_daily_revenue_single_day_window(analytics, history):
    assert analytics.daily_revenue(1) == [{"date": "2026-10-19", "revenue_cents": 1000, "count": 1}]


def test_monthly_revenue(analytics, history):
    assert analytics.monthly_revenue(12) == [
        {"month": "2026-10", "revenue_cents": 2500, "count": 4},
        {"month": "2026-09", "revenue_cents": 100, "count": 2},
        {"month": "2026-08", "revenue_cents": 9000, "count": 1},
    ]
    assert analytics.monthly_revenue(1) == [{"month": "2026-10", "revenue_cents": 2500, "count": 4}]


def test_today_and_month_revenue(analytics, history):
    assert analytics.today_revenue() == 1000
    assert analytics.month_revenue() == 2500


def test_revenue_without_sales(analytics):
    assert analytics.daily_revenue(30) == []
    assert analytics.monthly_revenue(12) == []
    assert analytics.today_revenue() == 0
    assert analytics.month_revenue() == 0


@pytest.mark.parametrize("method,value", [
    ("daily_revenue", 0),
    ("daily_revenue", 366),
    ("monthly_revenue", 0),
    ("monthly_revenue", 61),
    ("top_products", 0),
    ("top_products", 21),
    ("bottom_products", -1),
    ("top_products", True),
])
def test_range_validation(analytics, method, value):
    with pytest.raises(ValidationError):
        getattr(analytics, method)(value)


@pytest.fixture
def ranked(make_product, record_sale):
    armacao = make_product(name="Armação", price_cents=20000, quantity=50)
    lente = make_product(name="Lente", price_cents=1000, quantity=50)
    estojo = make_product(name="Estojo", price_cents=500, quantity=50)
    make_product(name="Nunca Vendido", quantity=50)

    record_sale(NOW, 0, items=[(armacao, 2), (lente, 3)])
    record_sale(NOW, 0, items=[(lente, 2), (estojo, 2)])
    return armacao, lente, estojo


def test_top_products(analytics, ranked):
    armacao, lente, estojo = ranked

    rows = analytics.top_products(5)

    assert [r["product_id"] for r in rows] == [lente.id, armacao.id, estojo.id]
    assert rows[0] == {
        "product_id": lente.id,
        "product_name": "Lente",
        "total_quantity": 5,
        "total_revenue_cents": 5000,
    }
    assert rows[1]["total_revenue_cents"] == 40000


def test_bottom_products_breaks_ties_by_product_id(analytics, ranked):
    armacao, lente, estojo = ranked

    rows = analytics.bottom_products(2)

    # Armação and Estojo both sold 2 units; the lower id wins
    assert [r["product_id"] for r in rows] == [armacao.id, estojo.id]
    assert [r["total_quantity"] for r in rows] == [2, 2]


def test_top_products_limit(analytics, ranked):
    assert len(analytics.top_products(1)) == 1
    assert analytics.top_products(20)[-1]["product_name"] == "Estojo"
