import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from shop.core.database import Base, get_db
from shop.core.store import MemoryKeyedStore
from shop.crud.category import category as crud_category
from shop.crud.product import product as crud_product
from shop.models import category as category_models, product as product_models  # noqa: F401
from shop.schemas.cart import PricedProduct
from shop.schemas.catalog import (
    CategoryCreate,
    CategoryTranslationIn,
    ProductComponentOptionIn,
    ProductCreate,
    ProductTranslationIn,
)
from shop.services.cart import CartService
from shop.utils import deps as deps_utils
import main

TEST_PREFIX = "SimRacingShop:"

class FrozenClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

class FakeCatalog:
    """In-memory stand-in for the SQL catalog the cart prices against."""

    def __init__(self):
        self.products = {}
        self.deltas = {}
        self.priced_calls = 0

    def add_product(self, product_id, price, vat_rate="21", is_purchasable=True):
        self.products[product_id] = PricedProduct(
            product_id=product_id,
            sku=f"SKU-{product_id}",
            name=f"Product {product_id}",
            unit_price=Decimal(price),
            vat_rate=Decimal(vat_rate),
            is_purchasable=is_purchasable,
        )

    def add_delta(self, product_id, component_id, delta):
        self.deltas[(product_id, component_id)] = Decimal(delta)

    async def get_priced_products(self, ids, locale):
        self.priced_calls += 1
        return {i: self.products[i] for i in ids if i in self.products}

    async def get_component_price_deltas(self, product_id, component_ids):
        return {
            c: self.deltas[(product_id, c)]
            for c in component_ids
            if (product_id, c) in self.deltas
        }

@pytest.fixture
def clock():
    return FrozenClock()

@pytest.fixture
def store(clock):
    return MemoryKeyedStore(prefix=TEST_PREFIX, clock=clock)

@pytest.fixture
def catalog():
    catalog = FakeCatalog()
    catalog.add_product("P1", "10.00")
    catalog.add_product("P2", "25.50", vat_rate="10")
    return catalog

@pytest.fixture
def cart_service(store, catalog):
    return CartService(store, catalog, ttl_seconds=30 * 24 * 3600, max_quantity=99)

@pytest.fixture(scope="function")
def database_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture
def product_factory(db_session):
    def _product_factory(sku, price, slugs=None, vat_rate="21", is_active=True, options=None, categories=None):
        slugs = slugs or {"es": f"{sku.lower()}-es", "en": f"{sku.lower()}-en"}
        product_in = ProductCreate(
            sku=sku,
            base_price=Decimal(price),
            vat_rate=Decimal(vat_rate),
            is_active=is_active,
            is_customizable=bool(options),
            translations=[
                ProductTranslationIn(locale=locale, name=f"{sku} {locale}", slug=slug, short_description=f"{sku} volante")
                for locale, slug in slugs.items()
            ],
            component_options=[
                ProductComponentOptionIn(component_id=component_id, option_group="Grip", price_modifier=Decimal(delta))
                for component_id, delta in (options or {}).items()
            ],
        )
        created = crud_product.create(db_session, obj_in=product_in)
        if categories:
            created.categories.extend(categories)
            db_session.commit()
        return created
    return _product_factory

@pytest.fixture
def category_factory(db_session):
    def _category_factory(name, slugs=None, parent_id=None, is_active=True):
        slugs = slugs or {"es": f"{name.lower()}-es", "en": f"{name.lower()}-en"}
        category_in = CategoryCreate(
            parent_id=parent_id,
            is_active=is_active,
            translations=[
                CategoryTranslationIn(locale=locale, name=f"{name} {locale}", slug=slug)
                for locale, slug in slugs.items()
            ],
        )
        return crud_category.create(db_session, obj_in=category_in)
    return _category_factory

@pytest.fixture(scope="function")
def client(db_session, store, catalog):
    app = main.create_app(store=store)
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[deps_utils.get_cart_service] = lambda: CartService(store, catalog)
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def login(client):
    def _login(user_id="user-1"):
        client.app.dependency_overrides[deps_utils.get_current_user_id] = lambda: user_id
    return _login

@pytest.fixture
def as_admin(client):
    client.app.dependency_overrides[deps_utils.require_admin] = lambda: None
    return client
