from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    ForeignKey,
    Numeric,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from retail_panel.app.db.base import Base
from retail_panel.app.db.models.core_types import ProductStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- CATALOG ----------
class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    distributor: Mapped[str | None] = mapped_column(String(255))
    image: Mapped[str] = mapped_column(String(512), default="", nullable=False)

    cost_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    public_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    # Dérivés : recalculés par services.catalog.normalize_product, jamais saisis
    margin_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    margin_percentage: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_stock: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    status: Mapped[ProductStatus] = mapped_column(
        Enum(ProductStatus, name="product_status"),
        default=ProductStatus.active,
        nullable=False,
    )
    type: Mapped[str | None] = mapped_column(String(32), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    sizes: Mapped[list["ProductSize"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductSize.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_nonneg"),
        CheckConstraint("cost_price >= 0", name="ck_product_cost_nonneg"),
        CheckConstraint("public_price >= 0", name="ck_product_price_nonneg"),
    )


class ProductSize(Base):
    __tablename__ = "product_sizes"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    product_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    size: Mapped[str] = mapped_column(String(32), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product: Mapped[Product] = relationship(back_populates="sizes")

    __table_args__ = (
        UniqueConstraint("product_id", "size", name="uq_product_size"),
        CheckConstraint("stock >= 0", name="ck_product_size_stock_nonneg"),
    )


# ---------- SALES ----------
class Sale(Base):
    __tablename__ = "sales"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_profit: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(64), nullable=False)
    channel: Mapped[str] = mapped_column(String(128), nullable=False)

    # Snapshot client dénormalisé (pas d'entité client)
    customer_name: Mapped[str | None] = mapped_column(String(255))
    customer_contact: Mapped[str | None] = mapped_column(String(255))

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(128))

    # Idempotence des ventes boutique (orderId distant, nullable OK)
    external_order_id: Mapped[str | None] = mapped_column(String(128))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    lines: Mapped[list["SaleLine"]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleLine.position",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("channel", "external_order_id", name="uq_sale_channel_external_order"),
        Index("ix_sales_date", "date"),
    )


class SaleLine(Base):
    __tablename__ = "sale_lines"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    sale_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # SET NULL : la suppression admin d'un produit ne doit pas casser l'historique
    product_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("products.id", ondelete="SET NULL"),
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    size: Mapped[str | None] = mapped_column(String(32))

    # Prix/coût figés au moment de la vente
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    sale: Mapped[Sale] = relationship(back_populates="lines")
    product: Mapped[Product | None] = relationship(lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_sale_line_qty_pos"),
        CheckConstraint("unit_cost >= 0", name="ck_sale_line_unit_cost_nonneg"),
    )
