"""
Sale transaction engine.

Construit, édite et annule les ventes en pilotant le stock ledger.

Règles :
- les lignes sont traitées dans l'ordre de la requête ;
- prix et coût unitaires sont figés sur la ligne au moment de la vente
  (le coût vient du produit *à cet instant*, jamais recalculé ensuite) ;
- total_amount / total_profit sont toujours recalculés depuis les lignes ;
- chaque opération (create / update / void) est une seule transaction :
  une erreur sur la ligne N annule aussi les réservations des lignes 0..N-1 ;
- tous les produits touchés sont verrouillés en tête d'opération, triés par id.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Mapping, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from retail_panel.app.core.errors import SaleNotFoundError, ValidationError
from retail_panel.app.db.models.models_v1 import Product, Sale, SaleLine, utcnow
from retail_panel.app.db.transaction import atomic
from retail_panel.app.schemas.sale import SaleLineIn
from retail_panel.services import stock_ledger
from retail_panel.services.money import ZERO, to_money

logger = logging.getLogger(__name__)


# ---------- Totals ----------
def line_profit(line: SaleLine):
    return to_money(line.subtotal) - to_money(line.unit_cost) * line.quantity


def recompute_totals(sale: Sale) -> Sale:
    sale.total_amount = sum((to_money(ln.subtotal) for ln in sale.lines), ZERO)
    sale.total_profit = sum((line_profit(ln) for ln in sale.lines), ZERO)
    return sale


def _build_lines(db: Session, requests: Sequence[SaleLineIn]) -> list[SaleLine]:
    lines: list[SaleLine] = []
    for position, req in enumerate(requests):
        product = stock_ledger.reserve(db, req.product_id, req.quantity, size=req.size)

        unit_price = to_money(req.unit_price)
        lines.append(
            SaleLine(
                product_id=product.id,
                position=position,
                quantity=req.quantity,
                size=req.size if product.sizes else None,
                unit_price=unit_price,
                unit_cost=to_money(product.cost_price),
                subtotal=to_money(unit_price * req.quantity),
            )
        )
    return lines


def _restore_lines(db: Session, sale: Sale) -> None:
    for ln in sale.lines:
        stock_ledger.restore(db, ln.product_id, ln.quantity, size=ln.size)


# ---------- Commands ----------
def create_sale(
    db: Session,
    *,
    lines: Sequence[SaleLineIn],
    payment_method: str,
    channel: str,
    customer: Mapping[str, Any] | None = None,
    created_by: str | None = None,
    occurred_at: datetime | None = None,
) -> Sale:
    if not lines:
        raise ValidationError("A sale needs at least one line item")

    customer = customer or {}
    with atomic(db):
        stock_ledger.lock_products(db, ids=[req.product_id for req in lines])
        sale = Sale(
            payment_method=payment_method,
            channel=channel,
            customer_name=customer.get("name"),
            customer_contact=customer.get("contact"),
            created_by=created_by,
            date=occurred_at or utcnow(),
        )
        sale.lines = _build_lines(db, lines)
        recompute_totals(sale)
        db.add(sale)

    logger.info(
        "Sale %s recorded: %s line(s), total=%s, profit=%s",
        sale.id,
        len(sale.lines),
        sale.total_amount,
        sale.total_profit,
    )
    return sale


def update_sale(
    db: Session,
    sale_id: int,
    *,
    lines: Sequence[SaleLineIn] | None = None,
    payment_method: str | None = None,
    channel: str | None = None,
    customer: Mapping[str, Any] | None = None,
) -> Sale:
    """
    Édition d'une vente.

    Si ``lines`` est fourni : phase 1, restauration de toutes les lignes
    actuelles ; phase 2, validation + réservation des nouvelles lignes (le stock
    inclut donc les quantités restaurées). Les métadonnées sont fusionnées champ
    par champ (présent = écrase, absent = conservé).
    """
    if lines is not None and not lines:
        raise ValidationError(f"Sale {sale_id}: replacement needs at least one line item")

    with atomic(db):
        sale = get_sale(db, sale_id)

        if lines is not None:
            stock_ledger.lock_products(
                db,
                ids=[ln.product_id for ln in sale.lines] + [req.product_id for req in lines],
            )
            _restore_lines(db, sale)
            sale.lines = _build_lines(db, lines)
            recompute_totals(sale)

        if payment_method:
            sale.payment_method = payment_method
        if channel:
            sale.channel = channel
        if customer:
            if customer.get("name") is not None:
                sale.customer_name = customer["name"]
            if customer.get("contact") is not None:
                sale.customer_contact = customer["contact"]

    logger.info("Sale %s updated: total=%s, profit=%s", sale.id, sale.total_amount, sale.total_profit)
    return sale


def void_sale(db: Session, sale_id: int) -> None:
    """Annule une vente : stock restauré ligne par ligne, puis suppression."""
    with atomic(db):
        sale = get_sale(db, sale_id)
        stock_ledger.lock_products(db, ids=[ln.product_id for ln in sale.lines])
        _restore_lines(db, sale)
        db.delete(sale)

    logger.info("Sale %s voided, stock restored", sale_id)


# ---------- Queries ----------
def get_sale(db: Session, sale_id: int) -> Sale:
    sale = db.get(Sale, sale_id)
    if not sale:
        raise SaleNotFoundError(sale_id)
    return sale


def day_bounds(start_date: date | None, end_date: date | None) -> tuple[datetime | None, datetime | None]:
    """Début inclus à 00:00, fin incluse jusqu'à 23:59:59.999999 (UTC)."""
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc) if end_date else None
    return start, end


def _where_date(stmt: Select, start_date: date | None, end_date: date | None) -> Select:
    start, end = day_bounds(start_date, end_date)
    if start is not None:
        stmt = stmt.where(Sale.date >= start)
    if end is not None:
        stmt = stmt.where(Sale.date <= end)
    return stmt


def list_sales(
    db: Session,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    payment_method: str | None = None,
    channel: str | None = None,
    product_id: int | None = None,
) -> list[Sale]:
    stmt = select(Sale).order_by(Sale.date.desc(), Sale.id.desc())
    stmt = _where_date(stmt, start_date, end_date)

    if payment_method:
        stmt = stmt.where(Sale.payment_method == payment_method)
    if channel:
        stmt = stmt.where(Sale.channel == channel)
    if product_id is not None:
        stmt = stmt.where(Sale.lines.any(SaleLine.product_id == product_id))

    return list(db.execute(stmt).scalars().all())


def sales_by_product(
    db: Session,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict]:
    """
    Agrégat par produit, trié par CA décroissant.

    profit = somme(subtotal) - somme(quantité * coût figé). Les lignes dont le
    produit a été supprimé sont exclues (pas de nom à afficher).
    """
    revenue = func.sum(SaleLine.subtotal)
    stmt = (
        select(
            Product.id,
            Product.name,
            Product.sku,
            Product.image,
            func.max(Sale.date).label("last_sale_date"),
            func.sum(SaleLine.quantity).label("total_quantity"),
            revenue.label("total_revenue"),
            (revenue - func.sum(SaleLine.quantity * SaleLine.unit_cost)).label("total_profit"),
        )
        .select_from(SaleLine)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .join(Product, Product.id == SaleLine.product_id)
        .group_by(Product.id, Product.name, Product.sku, Product.image)
        .order_by(revenue.desc())
    )
    stmt = _where_date(stmt, start_date, end_date)

    return [
        {
            "product_id": int(row.id),
            "product_name": row.name,
            "sku": row.sku,
            "image": row.image,
            "last_sale_date": row.last_sale_date,
            "total_quantity": int(row.total_quantity),
            "total_revenue": to_money(row.total_revenue),
            "total_profit": to_money(row.total_profit),
        }
        for row in db.execute(stmt).all()
    ]
