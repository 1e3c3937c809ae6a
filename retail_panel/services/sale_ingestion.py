"""
Sale ingestion gateway (boutiques -> panel).

Rejoue une vente boutique contre le stock ledger, par SKU :
- secret vérifié avant tout (échec = UnauthorizedError, aucune écriture)
- SKU inconnu = ligne ignorée + warning (ingestion partielle, pas un rejet)
- décrément plafonné à zéro
- total boutique accepté tel quel s'il est fourni, sinon somme des lignes
- livraison at-least-once côté boutique : un (origin, orderId) déjà reçu
  renvoie la vente existante sans retoucher le stock
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from retail_panel.app.core.errors import UnauthorizedError
from retail_panel.app.db.models.core_types import (
    ONLINE_CHANNEL,
    ONLINE_CUSTOMER_NAME,
    ONLINE_PAYMENT_METHOD,
)
from retail_panel.app.db.models.models_v1 import Sale, SaleLine, utcnow
from retail_panel.app.db.transaction import atomic
from retail_panel.app.schemas.sync import StorefrontSale
from retail_panel.services import stock_ledger
from retail_panel.services.money import to_money
from retail_panel.services.sales import recompute_totals

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    sale: Sale
    skipped_skus: list[str] = field(default_factory=list)
    duplicate: bool = False

    @property
    def partial(self) -> bool:
        return bool(self.skipped_skus)


def verify_sync_secret(provided: str | None, expected: str | None) -> None:
    """Comparaison exacte à temps constant. Secret serveur vide = tout refuser."""
    if not expected or not provided:
        raise UnauthorizedError()
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedError()


def _find_existing(db: Session, channel: str, order_id: str) -> Sale | None:
    return db.execute(
        select(Sale)
        .where(Sale.channel == channel)
        .where(Sale.external_order_id == order_id)
    ).scalar_one_or_none()


def ingest_storefront_sale(
    db: Session,
    payload: StorefrontSale,
    *,
    secret: str | None,
    expected_secret: str | None,
) -> IngestionResult:
    verify_sync_secret(secret, expected_secret)

    channel = payload.origin or ONLINE_CHANNEL

    try:
        with atomic(db):
            if payload.order_id:
                existing = _find_existing(db, channel, payload.order_id)
                if existing:
                    logger.info("Order %s from %s already recorded as sale %s", payload.order_id, channel, existing.id)
                    return IngestionResult(sale=existing, duplicate=True)

            sale, skipped = _record(db, payload, channel)
    except IntegrityError:
        # livraison concurrente du même orderId : l'autre requête a commité avant nous
        existing = _find_existing(db, channel, payload.order_id) if payload.order_id else None
        if existing is None:
            raise
        logger.info("Order %s from %s recorded concurrently as sale %s", payload.order_id, channel, existing.id)
        return IngestionResult(sale=existing, duplicate=True)

    if skipped:
        logger.warning(
            "Partial ingestion of order %s from %s: unknown SKU(s) %s skipped",
            payload.order_id,
            channel,
            ", ".join(skipped),
        )
    logger.info("Storefront sale %s recorded from %s (order %s)", sale.id, channel, payload.order_id)
    return IngestionResult(sale=sale, skipped_skus=skipped)


def _record(db: Session, payload: StorefrontSale, channel: str) -> tuple[Sale, list[str]]:
    customer = payload.customer
    stock_ledger.lock_products(db, skus=[item.sku for item in payload.products])

    lines: list[SaleLine] = []
    skipped: list[str] = []
    for item in payload.products:
        product = stock_ledger.reserve_by_sku(db, item.sku, item.quantity, size=item.size)
        if product is None:
            skipped.append(item.sku)
            continue

        unit_price = to_money(item.price)
        lines.append(
            SaleLine(
                product_id=product.id,
                position=len(lines),
                quantity=item.quantity,
                size=item.size if product.sizes else None,
                unit_price=unit_price,
                unit_cost=to_money(product.cost_price),
                subtotal=to_money(unit_price * item.quantity),
            )
        )

    sale = Sale(
        payment_method=payload.payment_method or ONLINE_PAYMENT_METHOD,
        channel=channel,
        customer_name=(customer.name if customer else None) or ONLINE_CUSTOMER_NAME,
        customer_contact=(customer.email if customer else None) or "",
        date=utcnow(),
        external_order_id=payload.order_id,
    )
    sale.lines = lines
    recompute_totals(sale)
    # Le total boutique fait foi (arrondis / devise côté boutique)
    if payload.total_amount:
        sale.total_amount = to_money(payload.total_amount)
    db.add(sale)
    return sale, skipped
