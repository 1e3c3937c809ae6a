from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from retail_panel.app.db.models.core_types import ProductStatus
from retail_panel.app.db.models.models_v1 import Product


class SizeBucket(BaseModel):
    size: str = Field(min_length=1, max_length=32)
    stock: int = Field(default=0, ge=0)


class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=128)
    distributor: str | None = Field(default=None, max_length=255)
    image: str = Field(default="", max_length=512)
    cost_price: Decimal = Field(default=Decimal("0"), ge=0)
    public_price: Decimal = Field(default=Decimal("0"), ge=0)
    stock: int = Field(default=0, ge=0)
    min_stock: int = Field(default=5, ge=0)
    status: ProductStatus = ProductStatus.active
    type: str | None = Field(default=None, max_length=32)
    # Si présent, stock = somme des tailles (le champ stock est ignoré)
    sizes: list[SizeBucket] | None = None


class ProductUpdate(BaseModel):
    """Mise à jour partielle : seuls les champs envoyés sont appliqués."""

    sku: str | None = Field(default=None, max_length=64)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=128)
    distributor: str | None = Field(default=None, max_length=255)
    image: str | None = Field(default=None, max_length=512)
    cost_price: Decimal | None = Field(default=None, ge=0)
    public_price: Decimal | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    min_stock: int | None = Field(default=None, ge=0)
    status: ProductStatus | None = None
    type: str | None = Field(default=None, max_length=32)
    sizes: list[SizeBucket] | None = None


def product_to_dict(p: Product) -> dict:
    return {
        "id": p.id,
        "sku": p.sku,
        "name": p.name,
        "category": p.category,
        "distributor": p.distributor,
        "image": p.image,
        "cost_price": float(p.cost_price),
        "public_price": float(p.public_price),
        "margin": {
            "amount": float(p.margin_amount),
            "percentage": float(p.margin_percentage),
        },
        "stock": p.stock,
        "min_stock": p.min_stock,
        "status": p.status,
        "type": p.type,
        "sizes": [{"size": b.size, "stock": b.stock} for b in p.sizes],
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }
