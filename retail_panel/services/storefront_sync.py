"""
Catalog sync publisher (panel -> boutiques).

Le panel fait foi ; les boutiques sont des répliques éventuellement
cohérentes qui font un upsert par SKU sur ``POST {endpoint}/sync/products``.

- routage par type de produit ; type non reconnu = diffusion à toutes
- un push par boutique, en parallèle, sans retry
- un échec est loggé et rapporté, il ne bloque ni les autres boutiques ni la
  modification locale (déjà commitée quand on publie)
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal

import requests

from retail_panel.app.core.config import SYNC_SECRET_HEADER, Settings, StorefrontEndpoint
from retail_panel.app.core.errors import UpstreamSyncFailure
from retail_panel.app.db.models.models_v1 import Product
from retail_panel.services.money import to_money

logger = logging.getLogger(__name__)

MAX_PUSH_WORKERS = 8


# ---------- Snapshot ----------
def absolute_image_url(base_url: str, image: str | None) -> str:
    if not image:
        return ""
    if image.startswith(("http://", "https://")):
        return image
    return f"{base_url.rstrip('/')}/{image.lstrip('/')}"


def storefront_price(public_price, markup: Decimal) -> int:
    """Prix republié par la boutique : ceil(prix public * markup)."""
    return int(math.ceil(to_money(public_price) * markup))


def build_snapshot(product: Product, endpoint: StorefrontEndpoint, *, markup: Decimal) -> dict:
    return {
        "sku": product.sku,
        "name": product.name,
        "price": storefront_price(product.public_price, markup),
        "stock": product.stock,
        "category": product.category,
        "type": product.type,
        "image": absolute_image_url(endpoint.base_url, product.image),
    }


def select_endpoints(product_type: str | None, endpoints: list[StorefrontEndpoint]) -> list[StorefrontEndpoint]:
    wanted = (product_type or "").strip().lower()
    matching = [e for e in endpoints if wanted and e.channel_type == wanted]
    return matching or list(endpoints)


# ---------- Report ----------
@dataclass
class PushResult:
    endpoint: str
    sku: str
    ok: bool
    status_code: int | None = None
    error: str | None = None


@dataclass
class SyncReport:
    sku: str | None
    results: list[PushResult] = field(default_factory=list)

    @property
    def delivered(self) -> list[str]:
        return [r.endpoint for r in self.results if r.ok]

    @property
    def failed(self) -> list[str]:
        return [r.endpoint for r in self.results if not r.ok]


# ---------- Publisher ----------
class CatalogPublisher:
    def __init__(
        self,
        endpoints: list[StorefrontEndpoint],
        secret: str,
        *,
        markup: Decimal = Decimal("1.03"),
        timeout: float = 5.0,
        http: requests.Session | None = None,
    ):
        self.endpoints = list(endpoints)
        self.secret = secret
        self.markup = markup
        self.timeout = timeout
        self.http = http or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, http: requests.Session | None = None) -> "CatalogPublisher":
        return cls(
            settings.storefront_endpoints,
            settings.sync_secret,
            markup=settings.sync_price_markup,
            timeout=settings.sync_timeout_seconds,
            http=http,
        )

    def plan(self, product: Product) -> list[tuple[StorefrontEndpoint, dict]]:
        """
        Snapshots à pousser, construits tant que la session DB est ouverte
        (la publication tourne après la réponse, hors session).
        """
        if not self.endpoints:
            return []
        if not self.secret:
            logger.warning("SYNC_SECRET not set, catalog push of %s disabled", product.sku)
            return []
        return [
            (endpoint, build_snapshot(product, endpoint, markup=self.markup))
            for endpoint in select_endpoints(product.type, self.endpoints)
        ]

    def push(self, endpoint: StorefrontEndpoint, snapshot: dict) -> PushResult:
        url = endpoint.products_url
        try:
            resp = self.http.post(
                url,
                json=snapshot,
                headers={SYNC_SECRET_HEADER: self.secret},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            failure = UpstreamSyncFailure(url, snapshot["sku"], str(exc))
            logger.warning(failure.message)
            return PushResult(endpoint=url, sku=snapshot["sku"], ok=False, error=failure.reason)

        logger.info("Pushed %s to %s (HTTP %s)", snapshot["sku"], url, resp.status_code)
        return PushResult(endpoint=url, sku=snapshot["sku"], ok=True, status_code=resp.status_code)

    def publish(self, deliveries: list[tuple[StorefrontEndpoint, dict]]) -> SyncReport:
        if not deliveries:
            return SyncReport(sku=None)

        sku = deliveries[0][1]["sku"]
        workers = min(len(deliveries), MAX_PUSH_WORKERS)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="catalog-push") as pool:
            results = list(pool.map(lambda d: self.push(*d), deliveries))

        report = SyncReport(sku=sku, results=results)
        if report.failed:
            logger.warning(
                "Catalog push of %s: %s delivered, %s failed",
                sku,
                len(report.delivered),
                len(report.failed),
            )
        return report

    def publish_product(self, product: Product) -> SyncReport:
        return self.publish(self.plan(product))
