"""
Catalog service.

Maintenance du catalogue (création, édition, suppression admin) et surtout
``normalize_product`` : l'étape explicite qui recalcule les champs dérivés
(marge, stock par tailles). Tous les chemins d'écriture l'appellent :
création, édition, mouvements du ledger, ingestion boutique.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from retail_panel.app.core.errors import DuplicateSkuError, ProductNotFoundError, ValidationError
from retail_panel.app.db.models.core_types import ProductStatus
from retail_panel.app.db.models.models_v1 import Product, ProductSize
from retail_panel.app.db.transaction import atomic
from retail_panel.app.schemas.product import ProductCreate, ProductUpdate, SizeBucket
from retail_panel.services.money import ZERO, to_money

logger = logging.getLogger(__name__)

# Colonnes NOT NULL : un None explicite dans un update est ignoré
_REQUIRED_FIELDS = {
    "name",
    "category",
    "image",
    "cost_price",
    "public_price",
    "stock",
    "min_stock",
    "status",
}


def normalize_product(product: Product) -> Product:
    """
    Recalcule les invariants dérivés d'un produit, sans flush.

    - stock = somme des tailles si le produit est suivi par taille
    - marge = prix public - coût ; pourcentage = marge / prix public * 100
    - marge et pourcentage à 0 si prix public <= 0
    """
    if product.sizes:
        product.stock = sum(int(b.stock or 0) for b in product.sizes)

    cost = to_money(product.cost_price)
    price = to_money(product.public_price)
    if price > 0:
        amount = price - cost
        product.margin_amount = amount
        product.margin_percentage = to_money(amount / price * 100)
    else:
        product.margin_amount = ZERO
        product.margin_percentage = ZERO
    return product


def _apply_sizes(product: Product, buckets: Iterable[SizeBucket]) -> None:
    # Mise à jour en place : remplacer la collection violerait uq_product_size au flush
    existing = {b.size: b for b in product.sizes}
    kept: list[ProductSize] = []
    for position, bucket in enumerate(buckets):
        row = existing.pop(bucket.size, None)
        if row is None:
            row = ProductSize(size=bucket.size)
        row.position = position
        row.stock = bucket.stock
        kept.append(row)
    product.sizes = kept


# ---------- Reads ----------
def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise ProductNotFoundError(product_id)
    return product


def get_product_by_sku(db: Session, sku: str) -> Product | None:
    return db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()


def list_products(
    db: Session,
    *,
    product_type: str | None = None,
    status: ProductStatus | None = None,
) -> list[Product]:
    stmt = select(Product).order_by(Product.sku)
    if product_type is not None:
        stmt = stmt.where(Product.type == product_type)
    if status is not None:
        stmt = stmt.where(Product.status == status)
    return list(db.execute(stmt).scalars().all())


# ---------- Writes ----------
def create_product(db: Session, payload: ProductCreate) -> Product:
    with atomic(db):
        if get_product_by_sku(db, payload.sku):
            raise DuplicateSkuError(payload.sku)

        product = Product(
            sku=payload.sku,
            name=payload.name,
            category=payload.category,
            distributor=payload.distributor,
            image=payload.image,
            cost_price=to_money(payload.cost_price),
            public_price=to_money(payload.public_price),
            stock=payload.stock,
            min_stock=payload.min_stock,
            status=payload.status,
            type=payload.type,
        )
        if payload.sizes:
            _apply_sizes(product, payload.sizes)
        normalize_product(product)
        db.add(product)

    logger.info("Product %s created (stock=%s)", product.sku, product.stock)
    return product


def update_product(db: Session, product_id: int, payload: ProductUpdate) -> Product:
    changes = payload.model_dump(exclude_unset=True)

    with atomic(db):
        product = get_product(db, product_id)

        sku = changes.pop("sku", None)
        if sku is not None and sku != product.sku:
            raise ValidationError(f"SKU of product {product.sku} cannot be changed")

        sizes = changes.pop("sizes", None)
        for field, value in changes.items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            if field in ("cost_price", "public_price"):
                value = to_money(value)
            setattr(product, field, value)

        if sizes is not None:
            _apply_sizes(product, [SizeBucket(**b) for b in sizes])
        normalize_product(product)

    logger.info("Product %s updated (stock=%s)", product.sku, product.stock)
    return product


def delete_product(db: Session, product_id: int) -> None:
    """Suppression admin uniquement ; le chemin de synchro ne supprime jamais."""
    with atomic(db):
        product = get_product(db, product_id)
        sku = product.sku
        db.delete(product)
    logger.info("Product %s deleted", sku)
