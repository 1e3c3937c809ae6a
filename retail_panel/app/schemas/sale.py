from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, model_validator

from retail_panel.app.db.models.models_v1 import Sale


class SaleLineIn(BaseModel):
    """
    Ligne de vente canonique.

    Le front envoie le produit soit comme id nu (``"product": 12``), soit comme
    objet sélectionné (``"product": {"_id": 12, ...}``), soit déjà sous la forme
    ``product_id``. Tout est ramené à ``product_id`` ici, avant le moteur.
    """

    product_id: int
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0, validation_alias=AliasChoices("unit_price", "unitPrice"))
    size: str | None = Field(default=None, max_length=32)

    @model_validator(mode="before")
    @classmethod
    def _normalize_product_ref(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "product_id" in data:
            return data
        ref = data.get("product", data.get("productId"))
        if isinstance(ref, dict):
            ref = ref.get("_id", ref.get("id"))
        data = {k: v for k, v in data.items() if k not in ("product", "productId")}
        data["product_id"] = ref
        return data


class CustomerIn(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    contact: str | None = Field(default=None, max_length=255)


class SaleCreate(BaseModel):
    lines: list[SaleLineIn] = Field(min_length=1, validation_alias=AliasChoices("lines", "products"))
    payment_method: str = Field(min_length=1, max_length=64)
    channel: str = Field(min_length=1, max_length=128)
    customer: CustomerIn | None = None
    created_by: str | None = Field(default=None, max_length=128)
    date: datetime | None = None


class SaleUpdate(BaseModel):
    """Remplacement complet des lignes (si envoyées) + métadonnées fusionnées."""

    lines: list[SaleLineIn] | None = Field(
        default=None,
        min_length=1,
        validation_alias=AliasChoices("lines", "products"),
    )
    payment_method: str | None = Field(default=None, min_length=1, max_length=64)
    channel: str | None = Field(default=None, min_length=1, max_length=128)
    customer: CustomerIn | None = None


def sale_to_dict(s: Sale) -> dict:
    return {
        "id": s.id,
        "total_amount": float(s.total_amount),
        "total_profit": float(s.total_profit),
        "payment_method": s.payment_method,
        "channel": s.channel,
        "customer": {"name": s.customer_name, "contact": s.customer_contact},
        "date": s.date,
        "created_by": s.created_by,
        "external_order_id": s.external_order_id,
        "lines": [
            {
                "product_id": ln.product_id,
                "product_name": ln.product.name if ln.product else None,
                "sku": ln.product.sku if ln.product else None,
                "quantity": ln.quantity,
                "size": ln.size,
                "unit_price": float(ln.unit_price),
                "unit_cost": float(ln.unit_cost),
                "subtotal": float(ln.subtotal),
            }
            for ln in s.lines
        ],
    }
