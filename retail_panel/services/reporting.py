"""
Dashboard (lecture seule).

Contrat de lecture consommé par le tableau de bord. Sans facette de type, les
montants viennent des totaux de vente (le total boutique fait foi) ; avec une
facette ``product_type``, ils sont recalculés depuis les lignes des produits
de ce type.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from retail_panel.app.db.models.models_v1 import Product, Sale, SaleLine, utcnow
from retail_panel.services.money import ZERO, to_money

# index = date.weekday()
DAY_LABELS = ("Lun", "Mar", "Mie", "Jue", "Vie", "Sab", "Dom")


def _as_utc(value: datetime) -> datetime:
    # SQLite rend des datetimes naïfs (stockés en UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _typed_lines(stmt, product_type: str):
    return (
        stmt.select_from(SaleLine)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .join(Product, Product.id == SaleLine.product_id)
        .where(Product.type == product_type)
    )


def sales_totals(db: Session, *, product_type: str | None = None) -> tuple:
    if product_type is None:
        stmt = select(
            func.coalesce(func.sum(Sale.total_amount), 0),
            func.coalesce(func.sum(Sale.total_profit), 0),
        )
    else:
        stmt = _typed_lines(
            select(
                func.coalesce(func.sum(SaleLine.subtotal), 0),
                func.coalesce(func.sum(SaleLine.subtotal - SaleLine.quantity * SaleLine.unit_cost), 0),
            ),
            product_type,
        )
    total_sales, total_profit = db.execute(stmt).one()
    return to_money(total_sales), to_money(total_profit)


def stock_summary(db: Session, *, product_type: str | None = None) -> tuple:
    """(valeur du stock au coût, nombre de produits sous le seuil mini)."""
    stmt = select(
        func.coalesce(func.sum(Product.cost_price * Product.stock), 0),
        func.coalesce(func.sum(case((Product.stock < Product.min_stock, 1), else_=0)), 0),
    )
    if product_type is not None:
        stmt = stmt.where(Product.type == product_type)
    value, low = db.execute(stmt).one()
    return to_money(value), int(low)


def recent_sales(db: Session, *, limit: int = 5, product_type: str | None = None) -> list[Sale]:
    stmt = select(Sale).order_by(Sale.date.desc(), Sale.id.desc()).limit(limit)
    if product_type is not None:
        stmt = stmt.where(Sale.lines.any(SaleLine.product.has(Product.type == product_type)))
    return list(db.execute(stmt).scalars().all())


def sales_trend(
    db: Session,
    *,
    days: int = 7,
    now: datetime | None = None,
    product_type: str | None = None,
) -> list[dict]:
    """Ventes par jour calendaire (UTC) sur ``days`` jours glissants, jours vides inclus."""
    today = _as_utc(now or utcnow()).date()
    first_day = today - timedelta(days=days - 1)
    since = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

    if product_type is None:
        stmt = select(Sale.date, Sale.total_amount).where(Sale.date >= since)
    else:
        stmt = _typed_lines(select(Sale.date, SaleLine.subtotal), product_type).where(Sale.date >= since)

    buckets = {first_day + timedelta(days=i): ZERO for i in range(days)}
    for occurred, amount in db.execute(stmt).all():
        day = _as_utc(occurred).date()
        if day in buckets:
            buckets[day] += to_money(amount)

    return [
        {"name": DAY_LABELS[day.weekday()], "full_date": day.isoformat(), "sales": value}
        for day, value in buckets.items()
    ]


def sales_by_payment_method(db: Session, *, product_type: str | None = None) -> list[dict]:
    if product_type is None:
        amount = func.sum(Sale.total_amount)
        stmt = select(Sale.payment_method, amount)
    else:
        amount = func.sum(SaleLine.subtotal)
        stmt = _typed_lines(select(Sale.payment_method, amount), product_type)
    stmt = stmt.group_by(Sale.payment_method).order_by(amount.desc())
    return [{"name": method, "value": to_money(value)} for method, value in db.execute(stmt).all()]


def sales_by_category(db: Session, *, product_type: str | None = None) -> list[dict]:
    amount = func.sum(SaleLine.subtotal)
    stmt = (
        select(Product.category, amount)
        .select_from(SaleLine)
        .join(Product, Product.id == SaleLine.product_id)
        .group_by(Product.category)
        .order_by(amount.desc())
    )
    if product_type is not None:
        stmt = stmt.where(Product.type == product_type)
    return [{"name": category, "value": to_money(value)} for category, value in db.execute(stmt).all()]


def dashboard_stats(
    db: Session,
    *,
    product_type: str | None = None,
    now: datetime | None = None,
    trend_days: int = 7,
    recent_limit: int = 5,
) -> dict:
    total_sales, total_profit = sales_totals(db, product_type=product_type)
    stock_value, low_stock_count = stock_summary(db, product_type=product_type)
    return {
        "total_sales": total_sales,
        "total_profit": total_profit,
        "stock_value": stock_value,
        "low_stock_count": low_stock_count,
        "recent_activity": recent_sales(db, limit=recent_limit, product_type=product_type),
        "sales_trend": sales_trend(db, days=trend_days, now=now, product_type=product_type),
        "sales_by_payment_method": sales_by_payment_method(db, product_type=product_type),
        "sales_by_category": sales_by_category(db, product_type=product_type),
    }
