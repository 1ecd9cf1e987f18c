"""Shared fixtures: sample products, in-memory storage and the dev backend."""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.database import MemoryStorage
from storefront.events import EventBus
from storefront.main import app
from storefront.models import Product, ProductVariant
from storefront_sdk.backend import BackendClient


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def product_a():
    return Product(
        id="A",
        name="Maize Flour",
        description="Fine white posho",
        price=Decimal("1000"),
        unit="kg",
        tags=["local", "staple"],
        variants=[
            ProductVariant(id="A-10", weight_kg=10, price=Decimal("8000"), stock_quantity=4),
            ProductVariant(id="A-25", weight_kg=25, price=Decimal("19000"), stock_quantity=0),
        ],
    )


@pytest.fixture
def product_b():
    return Product(id="B", name="Sugar", price=Decimal("4500"), unit="kg", tags=["sweet"])


@pytest.fixture
def client():
    c = TestClient(app)
    c.post("/reset")
    return c


@pytest.fixture
def backend(client):
    return BackendClient(base_url="http://testserver", api_key="test-key", bus=EventBus(), session=client)
