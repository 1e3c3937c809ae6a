from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StorefrontSaleItem(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    size: str | None = Field(default=None, max_length=32)


class StorefrontCustomer(BaseModel):
    name: str | None = None
    email: str | None = None


class StorefrontSale(BaseModel):
    """Corps JSON poussé par une boutique (camelCase côté boutique)."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: str | None = Field(default=None, alias="orderId", max_length=128)
    products: list[StorefrontSaleItem] = Field(default_factory=list)
    total_amount: Decimal | None = Field(default=None, alias="totalAmount", ge=0)
    payment_method: str | None = Field(default=None, alias="paymentMethod", max_length=64)
    customer: StorefrontCustomer | None = None
    origin: str | None = Field(default=None, max_length=128)

    @field_validator("order_id", mode="before")
    @classmethod
    def _order_id_as_str(cls, value: Any) -> Any:
        # Certaines boutiques envoient un numéro de commande entier
        if isinstance(value, int):
            return str(value)
        return value
