import logging
from decimal import Decimal

from conftest import CALZADO_URL, HOGAR_URL, SYNC_SECRET
from retail_panel.app.core.config import StorefrontEndpoint, parse_storefront_endpoints
from retail_panel.services.storefront_sync import (
    CatalogPublisher,
    absolute_image_url,
    select_endpoints,
    storefront_price,
)


def test_parse_storefront_endpoints():
    endpoints = parse_storefront_endpoints(" Hogar=https://h.example ; calzado=https://c.example/;")

    assert [(e.channel_type, e.base_url) for e in endpoints] == [
        ("hogar", "https://h.example"),
        ("calzado", "https://c.example/"),
    ]
    assert endpoints[1].products_url == "https://c.example/sync/products"


def test_storefront_price_is_marked_up_and_rounded_up():
    assert storefront_price(Decimal("100"), Decimal("1.03")) == 103
    assert storefront_price(Decimal("10.10"), Decimal("1.03")) == 11


def test_absolute_image_url():
    assert absolute_image_url("https://h.example/", "/img/a.png") == "https://h.example/img/a.png"
    assert absolute_image_url("https://h.example", "https://cdn.example/a.png") == "https://cdn.example/a.png"
    assert absolute_image_url("https://h.example", "") == ""


def test_routing_by_type_with_broadcast_fallback(settings):
    endpoints = settings.storefront_endpoints

    assert [e.base_url for e in select_endpoints("calzado", endpoints)] == [CALZADO_URL]
    assert [e.base_url for e in select_endpoints("Hogar", endpoints)] == [HOGAR_URL]
    assert len(select_endpoints("other", endpoints)) == 2
    assert len(select_endpoints(None, endpoints)) == 2


def test_publish_sends_snapshot_with_secret(make_product, publisher, storefront_http):
    p = make_product("SH-1", type="calzado", public_price=Decimal("100"), stock=4, image="img/sh1.png")

    report = publisher.publish_product(p)

    assert report.delivered == [f"{CALZADO_URL}/sync/products"]
    call = storefront_http.calls[0]
    assert call["headers"] == {"x-sync-secret": SYNC_SECRET}
    assert call["json"] == {
        "sku": "SH-1",
        "name": "Product SH-1",
        "price": 103,
        "stock": 4,
        "category": "General",
        "type": "calzado",
        "image": f"{CALZADO_URL}/img/sh1.png",
    }


def test_one_endpoint_down_does_not_block_the_other(make_product, publisher, storefront_http, caplog):
    """
    GIVEN
    - produit sans type reconnu (diffusion aux deux boutiques)
    - la boutique hogar est injoignable
    THEN
    - calzado reçoit le push, l'échec hogar est loggé, rien n'est levé
    """
    p = make_product("SKU-1")
    storefront_http.down.add(HOGAR_URL)

    with caplog.at_level(logging.WARNING, logger="retail_panel"):
        report = publisher.publish_product(p)

    assert storefront_http.urls() == [f"{CALZADO_URL}/sync/products", f"{HOGAR_URL}/sync/products"]
    assert report.delivered == [f"{CALZADO_URL}/sync/products"]
    assert report.failed == [f"{HOGAR_URL}/sync/products"]
    assert "Push of SKU-1" in caplog.text


def test_http_error_status_is_a_failure(make_product, publisher, storefront_http):
    p = make_product("SKU-1", type="hogar")
    storefront_http.status[HOGAR_URL] = 500

    report = publisher.publish_product(p)

    assert report.failed == [f"{HOGAR_URL}/sync/products"]
    assert "500" in report.results[0].error


def test_push_disabled_without_secret_or_endpoints(make_product, storefront_http, caplog):
    p = make_product("SKU-1")
    endpoint = StorefrontEndpoint(channel_type="hogar", base_url=HOGAR_URL)

    with caplog.at_level(logging.WARNING, logger="retail_panel"):
        no_secret = CatalogPublisher([endpoint], "", http=storefront_http)
        assert no_secret.plan(p) == []
    assert CatalogPublisher([], SYNC_SECRET, http=storefront_http).plan(p) == []

    assert CatalogPublisher([], SYNC_SECRET, http=storefront_http).publish_product(p).results == []
    assert storefront_http.calls == []
    assert "SYNC_SECRET not set" in caplog.text
