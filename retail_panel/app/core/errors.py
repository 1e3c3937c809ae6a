"""
Exceptions métier du panel.

Chaque erreur porte un ``code`` stable (lisible par machine) et un message
qui nomme l'entité fautive. Les services lèvent, les routes ne capturent pas :
la traduction HTTP est faite une seule fois dans ``retail_panel.app.main``.

    RetailPanelError
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- SaleNotFoundError
    +-- InsufficientStockError
    +-- ValidationError
    +-- DuplicateSkuError
    +-- UnauthorizedError
    +-- UpstreamSyncFailure
"""

from __future__ import annotations


class RetailPanelError(Exception):
    code: str = "RETAIL_PANEL_ERROR"
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---------- Lookup ----------
class NotFoundError(RetailPanelError):
    code = "NOT_FOUND"
    status_code = 404


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_ref: int | str):
        super().__init__(f"Product not found: {product_ref}")
        self.product_ref = product_ref


class SaleNotFoundError(NotFoundError):
    code = "SALE_NOT_FOUND"

    def __init__(self, sale_id: int):
        super().__init__(f"Sale not found: {sale_id}")
        self.sale_id = sale_id


# ---------- Stock / validation ----------
class InsufficientStockError(RetailPanelError):
    code = "INSUFFICIENT_STOCK"
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product: {product_name} "
            f"(available={available}, requested={requested})"
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class ValidationError(RetailPanelError):
    code = "VALIDATION_ERROR"
    status_code = 400


class DuplicateSkuError(RetailPanelError):
    code = "DUPLICATE_SKU"
    status_code = 409

    def __init__(self, sku: str):
        super().__init__(f"Product with SKU {sku} already exists")
        self.sku = sku


# ---------- Sync ----------
class UnauthorizedError(RetailPanelError):
    """Secret de synchro invalide. Le message ne dit jamais pourquoi."""

    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self):
        super().__init__("Invalid sync secret")


class UpstreamSyncFailure(RetailPanelError):
    """Échec d'un push vers une boutique. Jamais propagé hors du publisher."""

    code = "UPSTREAM_SYNC_FAILURE"
    status_code = 502

    def __init__(self, endpoint: str, sku: str, reason: str):
        super().__init__(f"Push of {sku} to {endpoint} failed: {reason}")
        self.endpoint = endpoint
        self.sku = sku
        self.reason = reason
