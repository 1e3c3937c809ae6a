import os

# Avant tout import de l'app : l'engine global ne doit pas viser Postgres
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import threading
from decimal import Decimal

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from retail_panel.app.api.deps import get_catalog_publisher, get_db
from retail_panel.app.core.config import Settings, StorefrontEndpoint, get_settings
from retail_panel.app.db.base import Base
from retail_panel.app.db.models import models_v1  # noqa: F401  (tables)
from retail_panel.app.main import app
from retail_panel.app.schemas.product import ProductCreate
from retail_panel.services import catalog
from retail_panel.services.storefront_sync import CatalogPublisher

SYNC_SECRET = "test-sync-secret"
HOGAR_URL = "https://hogar.example"
CALZADO_URL = "https://calzado.example"


# ---------- Fake storefront HTTP ----------
class FakeResponse:
    def __init__(self, status_code: int = 200):
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error", response=self)


class FakeStorefrontHttp:
    """Remplace requests.Session : enregistre les POST, simule des boutiques down."""

    def __init__(self):
        self.calls: list[dict] = []
        self.down: set[str] = set()
        self.status: dict[str, int] = {}
        self._lock = threading.Lock()

    def post(self, url, json=None, headers=None, timeout=None):
        with self._lock:
            self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if any(url.startswith(base) for base in self.down):
            raise requests.ConnectionError(f"Connection refused: {url}")
        for base, code in self.status.items():
            if url.startswith(base):
                return FakeResponse(code)
        return FakeResponse(200)

    def urls(self) -> list[str]:
        return sorted(c["url"] for c in self.calls)


# ---------- DB ----------
@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_fk(dbapi_conn, _record):
        # ON DELETE SET NULL / CASCADE comme en Postgres
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    """
    Session DB isolée par test.

    Base SQLite en mémoire, schéma recréé à chaque test : les services
    commitent eux-mêmes, rien ne fuit d'un test à l'autre.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_product(db_session):
    def _make(sku: str = "SKU-1", **fields):
        data = {
            "name": f"Product {sku}",
            "category": "General",
            "cost_price": Decimal("50"),
            "public_price": Decimal("100"),
            "stock": 10,
            "min_stock": 5,
        }
        data.update(fields)
        return catalog.create_product(db_session, ProductCreate(sku=sku, **data))

    return _make


# ---------- Sync / API ----------
@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+pysqlite://",
        sync_secret=SYNC_SECRET,
        storefront_endpoints=[
            StorefrontEndpoint(channel_type="hogar", base_url=HOGAR_URL),
            StorefrontEndpoint(channel_type="calzado", base_url=CALZADO_URL),
        ],
    )


@pytest.fixture
def storefront_http() -> FakeStorefrontHttp:
    return FakeStorefrontHttp()


@pytest.fixture
def publisher(settings, storefront_http) -> CatalogPublisher:
    return CatalogPublisher.from_settings(settings, http=storefront_http)


@pytest.fixture
def client(session_factory, settings, publisher):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_catalog_publisher] = lambda: publisher
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
