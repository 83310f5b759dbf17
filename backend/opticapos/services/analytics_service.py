# Overview: Read-only sales analytics (best/worst sellers, revenue by day and month).

"""
Time semantics

- Sale.created_at is stored UTC-naive.
- Calendar days and months are those of the shop time zone (SHOP_TIMEZONE),
  never the database server's local clock. Boundaries are converted to UTC
  before filtering, and rows are bucketed by their local date.
- daily_revenue(days) covers `days` calendar days ending today (inclusive);
  monthly_revenue(months) covers `months` calendar months ending with the
  current one. Only buckets with at least one sale are returned, most
  recent first.
"""

from __future__ import annotations

from datetime import date, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import func, select

from ..errors import ValidationError
from ..models import Product, Sale, SaleItem
from ..time_utils import local_midnight_utc, shift_months, to_local, utcnow

MAX_PRODUCT_LIMIT = 20
MAX_DAYS = 365
MAX_MONTHS = 60


def _check_range(name: str, value: int, upper: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= upper:
        raise ValidationError(f"{name} must be an integer between 1 and {upper}")
    return value


class AnalyticsAggregator:
    def __init__(self, session, *, timezone: str | ZoneInfo = "UTC", clock=utcnow):
        self.session = session
        self.tz = timezone if isinstance(timezone, ZoneInfo) else ZoneInfo(timezone)
        self.clock = clock

    def local_today(self) -> date:
        return to_local(self.clock(), self.tz).date()

    # Product rankings

    def _ranked_products(self, limit: int, *, descending: bool) -> list[dict]:
        limit = _check_range("limit", limit, MAX_PRODUCT_LIMIT)
        total_quantity = func.sum(SaleItem.quantity)
        order = total_quantity.desc() if descending else total_quantity.asc()

        rows = self.session.execute(
            select(
                SaleItem.product_id,
                Product.name,
                total_quantity.label("total_quantity"),
                func.sum(SaleItem.subtotal_cents).label("total_revenue_cents"),
            )
            .outerjoin(Product, Product.id == SaleItem.product_id)
            .group_by(SaleItem.product_id, Product.name)
            .order_by(order, SaleItem.product_id.asc())
            .limit(limit)
        ).all()

        return [
            {
                "product_id": row.product_id,
                "product_name": row.name,
                "total_quantity": int(row.total_quantity or 0),
                "total_revenue_cents": int(row.total_revenue_cents or 0),
            }
            for row in rows
        ]

    def top_products(self, limit: int = 5) -> list[dict]:
        return self._ranked_products(limit, descending=True)

    def bottom_products(self, limit: int = 5) -> list[dict]:
        return self._ranked_products(limit, descending=False)

    # Revenue

    def _sales_between(self, start_day: date, end_day_exclusive: date):
        start = local_midnight_utc(start_day, self.tz)
        end = local_midnight_utc(end_day_exclusive, self.tz)
        return self.session.execute(
            select(Sale.created_at, Sale.total_amount_cents)
            .where(Sale.created_at >= start, Sale.created_at < end)
            .order_by(Sale.created_at.desc(), Sale.id.desc())
        ).all()

    def _revenue_between(self, start_day: date, end_day_exclusive: date) -> int:
        start = local_midnight_utc(start_day, self.tz)
        end = local_midnight_utc(end_day_exclusive, self.tz)
        return int(self.session.execute(
            select(func.coalesce(func.sum(Sale.total_amount_cents), 0))
            .where(Sale.created_at >= start, Sale.created_at < end)
        ).scalar() or 0)

    def _bucket(self, rows, key) -> list[dict]:
        buckets: dict[str, dict] = {}
        for created_at, total in rows:
            label = key(to_local(created_at, self.tz).date())
            bucket = buckets.setdefault(label, {"revenue_cents": 0, "count": 0})
            bucket["revenue_cents"] += int(total)
            bucket["count"] += 1
        ordered = sorted(buckets.items(), key=lambda kv: kv[0], reverse=True)
        return [{"period": label, **values} for label, values in ordered]

    def daily_revenue(self, days: int = 30) -> list[dict]:
        days = _check_range("days", days, MAX_DAYS)
        today = self.local_today()
        rows = self._sales_between(today - timedelta(days=days - 1), today + timedelta(days=1))
        return [
            {"date": row["period"], "revenue_cents": row["revenue_cents"], "count": row["count"]}
            for row in self._bucket(rows, lambda d: d.isoformat())
        ]

    def monthly_revenue(self, months: int = 12) -> list[dict]:
        months = _check_range("months", months, MAX_MONTHS)
        today = self.local_today()
        start_year, start_month = shift_months(today.year, today.month, -(months - 1))
        end_year, end_month = shift_months(today.year, today.month, 1)
        rows = self._sales_between(date(start_year, start_month, 1), date(end_year, end_month, 1))
        return [
            {"month": row["period"], "revenue_cents": row["revenue_cents"], "count": row["count"]}
            for row in self._bucket(rows, lambda d: f"{d.year:04d}-{d.month:02d}")
        ]

    def today_revenue(self) -> int:
        today = self.local_today()
        return self._revenue_between(today, today + timedelta(days=1))

    def month_revenue(self) -> int:
        today = self.local_today()
        end_year, end_month = shift_months(today.year, today.month, 1)
        return self._revenue_between(date(today.year, today.month, 1), date(end_year, end_month, 1))
