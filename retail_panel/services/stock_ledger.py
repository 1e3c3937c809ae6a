"""
Stock ledger.

Seul endroit qui modifie ``Product.stock``. Primitives :

    reserve(product_id, qty)   -> décrément strict (InsufficientStockError)
    restore(product_id, qty)   -> incrément ; produit disparu = no-op + warning
    reserve_by_sku(sku, qty)   -> variante boutique : SKU inconnu = None,
                                  décrément plafonné à zéro

Chaque primitive verrouille la ligne produit (SELECT ... FOR UPDATE) : une vente
locale et une vente boutique sur le même produit sont sérialisées, pas de lost
update. Une opération multi-lignes appelle d'abord ``lock_products`` pour prendre
tous ses verrous en une requête, dans l'ordre des ids.

Aucune primitive ne commit : c'est l'opération appelante qui porte la
transaction (voir ``retail_panel.app.db.transaction.atomic``).
"""

from __future__ import annotations

import logging

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from retail_panel.app.core.errors import InsufficientStockError, ProductNotFoundError, ValidationError
from retail_panel.app.db.models.models_v1 import Product, ProductSize
from retail_panel.services.catalog import normalize_product

logger = logging.getLogger(__name__)


# ---------- Helpers ----------
def _check_quantity(quantity: int) -> None:
    if quantity is None or int(quantity) < 1:
        raise ValidationError(f"Quantity must be >= 1 (got {quantity})")


def lock_statement(*criteria) -> Select:
    return (
        select(Product)
        .where(*criteria)
        .order_by(Product.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def _lock(db: Session, *criteria) -> Product | None:
    return db.execute(lock_statement(*criteria)).scalars().first()


def _bucket(product: Product, size: str) -> ProductSize | None:
    for b in product.sizes:
        if b.size == size:
            return b
    return None


def _available(product: Product, size: str | None) -> int:
    if not product.sizes:
        return product.stock
    if size is None:
        raise ValidationError(f"Size required for product: {product.name}")
    bucket = _bucket(product, size)
    if bucket is None:
        raise ValidationError(f"Unknown size {size} for product: {product.name}")
    return bucket.stock


# ---------- Primitives ----------
def lock_products(db: Session, *, ids=(), skus=()) -> list[Product]:
    """
    Verrouille d'un coup tous les produits d'une opération, triés par id.

    Deux ventes [A, B] et [B, A] prennent ainsi leurs verrous dans le même
    ordre (pas de deadlock). Les primitives relisent ensuite ces lignes déjà
    verrouillées dans la même transaction.
    """
    ids = sorted({int(pid) for pid in ids if pid is not None})
    skus = sorted(set(skus))
    criteria = []
    if ids:
        criteria.append(Product.id.in_(ids))
    if skus:
        criteria.append(Product.sku.in_(skus))
    if not criteria:
        return []
    return list(db.execute(lock_statement(or_(*criteria))).scalars().all())


def reserve(db: Session, product_id: int, quantity: int, *, size: str | None = None) -> Product:
    _check_quantity(quantity)

    product = _lock(db, Product.id == product_id)
    if not product:
        raise ProductNotFoundError(product_id)

    available = _available(product, size)
    if available < quantity:
        raise InsufficientStockError(product.name, available, quantity)

    if product.sizes:
        _bucket(product, size).stock -= quantity
    else:
        product.stock -= quantity

    normalize_product(product)
    db.flush()
    return product


def restore(db: Session, product_id: int | None, quantity: int, *, size: str | None = None) -> bool:
    """
    Remet ``quantity`` en stock. Retourne False (avec warning) si le produit
    n'existe plus : sa disparition ne doit pas bloquer une correction.
    """
    _check_quantity(quantity)

    product = _lock(db, Product.id == product_id) if product_id is not None else None
    if not product:
        logger.warning(
            "Restore of %s unit(s) skipped: product %s no longer exists",
            quantity,
            product_id,
        )
        return False

    if product.sizes:
        bucket = _bucket(product, size) if size is not None else None
        if bucket is None:
            # taille retirée depuis la vente : on crédite le premier bucket
            logger.warning(
                "Restore on %s: size %s not found, crediting size %s",
                product.sku,
                size,
                product.sizes[0].size,
            )
            bucket = product.sizes[0]
        bucket.stock += quantity
    else:
        product.stock += quantity

    normalize_product(product)
    db.flush()
    return True


def reserve_by_sku(db: Session, sku: str, quantity: int, *, size: str | None = None) -> Product | None:
    """
    Variante ingestion boutique : jamais d'erreur de stock.

    Le décrément est plafonné à zéro (refuser la vente désynchroniserait plus
    la boutique et le panel qu'un stock tronqué). SKU inconnu -> None.
    """
    _check_quantity(quantity)

    product = _lock(db, Product.sku == sku)
    if not product:
        logger.warning("SKU %s not found, line skipped", sku)
        return None

    if product.sizes:
        bucket = _bucket(product, size) if size is not None else None
        buckets = [bucket] if bucket is not None else list(product.sizes)
        remaining = quantity
        for b in buckets:
            taken = min(b.stock, remaining)
            b.stock -= taken
            remaining -= taken
            if not remaining:
                break
        shortfall = remaining
    else:
        shortfall = max(0, quantity - product.stock)
        product.stock = max(0, product.stock - quantity)

    if shortfall:
        logger.warning(
            "Stock of %s clamped at zero: %s requested, %s missing",
            sku,
            quantity,
            shortfall,
        )

    normalize_product(product)
    db.flush()
    return product
