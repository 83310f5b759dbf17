# Overview: Composition root for the sale/stock/notification engine.

"""
Every component receives its storage handle (a SQLAlchemy session) at
construction; nothing reaches for a module-level database. The Flask layer
builds one engine per request with get_engine(); tests and CLI commands may
build one directly with ShopEngine(db.session, ...).
"""

from __future__ import annotations

from flask import current_app, g

from .extensions import db
from .services.analytics_service import AnalyticsAggregator
from .services.catalog_service import CatalogService
from .services.inventory_service import StockReconciler
from .services.notification_service import NotificationFanout
from .services.sales_service import SaleLedger
from .services.user_service import UserService


class ShopEngine:
    def __init__(
        self,
        session,
        *,
        timezone: str = "UTC",
        timeout_seconds: float | None = None,
        notification_batch_size: int = 200,
        edge_triggered_low_stock: bool = False,
        default_min_stock: int = 5,
        clock=None,
    ):
        self.session = session
        self.notifier = NotificationFanout(session, batch_size=notification_batch_size)
        self.reconciler = StockReconciler(session, edge_triggered=edge_triggered_low_stock)
        self.sales = SaleLedger(
            session,
            self.reconciler,
            self.notifier,
            timeout_seconds=timeout_seconds,
        )
        self.catalog = CatalogService(
            session,
            reconciler=self.reconciler,
            notifier=self.notifier,
            default_min_stock=default_min_stock,
        )
        analytics_kwargs = {"timezone": timezone}
        if clock is not None:
            analytics_kwargs["clock"] = clock
        self.analytics = AnalyticsAggregator(session, **analytics_kwargs)
        self.users = UserService(session)

    @classmethod
    def from_config(cls, session, config, **overrides) -> "ShopEngine":
        options = {
            "timezone": config.get("SHOP_TIMEZONE", "UTC"),
            "timeout_seconds": config.get("PERSISTENCE_TIMEOUT_SECONDS"),
            "notification_batch_size": config.get("NOTIFICATION_BATCH_SIZE", 200),
            "edge_triggered_low_stock": config.get("LOW_STOCK_EDGE_TRIGGERED", False),
            "default_min_stock": config.get("DEFAULT_MIN_STOCK", 5),
        }
        options.update(overrides)
        return cls(session, **options)


def get_engine() -> ShopEngine:
    """Per-request engine bound to the request's db.session."""
    if "shop_engine" not in g:
        g.shop_engine = ShopEngine.from_config(db.session, current_app.config)
    return g.shop_engine
