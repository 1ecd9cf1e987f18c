# tests/test_backend.py
import json
from datetime import date, timedelta
from decimal import Decimal

import pytest

from storefront.cart import CartStore
from storefront.catalog import ProductCatalog
from storefront.core import ProductIn, VariantIn
from storefront.events import EventBus, ProductEvent
from storefront.exceptions import (
    BackendNotConfiguredException, BackendRequestException, OrderSubmissionException,
)
from storefront.models import CustomerInfo, OrderLineItem, OrderStatus, OrderSubmission
from storefront.orders import ComposerState
from storefront.orders import OrderComposer
from storefront_sdk.backend import BackendClient


@pytest.fixture
def grains(client):
    r = client.post("/rest/v1/categories", json={"name": "Grains", "icon": "🌾"})
    assert r.status_code == 201
    return r.json()["id"]


@pytest.fixture
def rice(backend, grains):
    return backend.create_product(ProductIn(
        name="Rice",
        price=Decimal("3500"),
        category_id=grains,
        tags=["grain"],
        variants=[
            VariantIn(weight_kg=25, price=Decimal("80000"), stock_quantity=3),
            VariantIn(weight_kg=5, price=Decimal("17000"), stock_quantity=10),
        ],
    ))


def test_create_and_list_products(backend, rice):
    assert rice.price == Decimal("3500")
    assert [v.weight_kg for v in rice.variants] == [5, 25]

    products = backend.list_products()
    assert [p.id for p in products] == [rice.id]
    assert backend.get_product(rice.id).name == "Rice"
    assert backend.get_product("nope") is None


def test_unavailable_products_only_listed_for_admin(backend, rice):
    backend.update_product(rice.id, {"available": False})
    assert backend.list_products() == []
    assert [p.id for p in backend.list_products(admin=True)] == [rice.id]


def test_categories_filtered_by_active(backend, client, grains):
    client.post("/rest/v1/categories", json={"name": "Old", "is_active": False})
    assert [c.name for c in backend.list_categories()] == ["Grains"]
    assert len(backend.list_categories(admin=True)) == 2


def test_product_writes_publish_change_events(backend):
    seen = []
    backend.subscribe_to_product_changes(lambda c: seen.append((c.event, c.product_id)))

    created = backend.create_product(ProductIn(name="Beans", price=Decimal("4000")))
    backend.update_product(created.id, {"price": 4200})
    assert backend.delete_product(created.id) is True

    assert seen == [
        (ProductEvent.PRODUCT_CREATED, created.id),
        (ProductEvent.PRODUCT_UPDATED, created.id),
        (ProductEvent.PRODUCT_DELETED, created.id),
    ]
    assert backend.get_product(created.id) is None


def test_product_write_refreshes_catalog(backend, rice):
    catalog = ProductCatalog(backend)
    assert [p.name for p in catalog.products] == ["Rice"]
    backend.update_product(rice.id, {"name": "Brown Rice"})
    assert [p.name for p in catalog.products] == ["Brown Rice"]


def test_invalid_product_writes_rejected(backend, rice):
    with pytest.raises(BackendRequestException) as exc:
        backend.update_product(rice.id, {"colour": "white"})
    assert exc.value.status_code == 400

    with pytest.raises(BackendRequestException) as exc:
        backend.create_product(ProductIn(name="Dup", price=Decimal("1"), variants=[
            VariantIn(weight_kg=5, price=Decimal("1")), VariantIn(weight_kg=5, price=Decimal("2")),
        ]))
    assert "one variant per weight" in str(exc.value)


def test_order_round_trip(backend, rice):
    sub = OrderSubmission(
        customer_name="Customer",
        customer_phone="0700123456",
        customer_address="Kampala",
        items=[OrderLineItem(product_id=rice.id, quantity=2, unit_price=Decimal("3500"), total_price=Decimal("7000"))],
        total_amount=Decimal("7000"),
    )
    result = backend.create_order(sub)
    assert result.order_number.startswith("ORD-")
    assert result.order_number.endswith("-0001")

    order = backend.get_order(result.order_id)
    assert order.status == OrderStatus.PENDING
    assert order.total_amount == Decimal("7000")
    assert order.items[0].quantity == 2

    updated = backend.update_order_status(result.order_id, OrderStatus.SHIPPED)
    assert updated.status == OrderStatus.SHIPPED
    assert [o.id for o in backend.list_orders()] == [result.order_id]
    assert backend.get_order("missing") is None


@pytest.mark.parametrize("items,total,status", [
    ([], "0", 400),
    ([("unknown", 1, "100")], "100", 404),
    ([(None, 1, "3500")], "9999", 400),
])
def test_bad_orders_rejected(backend, rice, items, total, status):
    sub = OrderSubmission(
        customer_name="Customer",
        customer_phone="0700",
        customer_address="Kampala",
        items=[
            OrderLineItem(product_id=pid or rice.id, quantity=q, unit_price=Decimal(p), total_price=Decimal(p))
            for pid, q, p in items
        ],
        total_amount=Decimal(total),
    )
    with pytest.raises(BackendRequestException) as exc:
        backend.create_order(sub)
    assert exc.value.status_code == status


def test_unconfigured_client_refuses_calls():
    client = BackendClient(base_url="https://your-project-ref.supabase.co", api_key="your-anon-key", bus=EventBus())
    assert not client.is_configured
    with pytest.raises(BackendNotConfiguredException):
        client.list_products()
    unsubscribe = client.subscribe_to_product_changes(lambda c: None)
    unsubscribe()
    assert client.bus.subscriber_count(ProductEvent.PRODUCT_CREATED) == 0


def test_trigger_refresh_publishes_on_bus(backend):
    seen = []
    backend.bus.subscribe(ProductEvent.REFRESH_PRODUCTS, seen.append)
    backend.trigger_product_refresh()
    assert len(seen) == 1


def test_checkout_end_to_end(backend, storage, rice):
    cart = CartStore(storage)
    cart.add_item(rice, 2)
    cart.add_item(rice, 1, rice.variant_for_weight(5))
    links = []
    composer = OrderComposer(cart, backend, dispatcher=links.append)

    outcome = composer.submit(CustomerInfo(phone="0700123456", address="Plot 4, Kampala Road"))

    assert cart.is_empty()
    assert len(links) == 1
    order = backend.get_order(outcome.order_id)
    assert order.order_number == outcome.order_number
    assert order.total_amount == Decimal("24000")
    assert order.customer_name == "Customer"
    assert [(i.quantity, i.unit_price) for i in order.items] == [(2, Decimal("3500")), (1, Decimal("17000"))]


def test_checkout_failure_keeps_cart(backend, storage, rice):
    cart = CartStore(storage)
    cart.add_item(rice, 1)
    backend.delete_product(rice.id)
    composer = OrderComposer(cart, backend, dispatcher=lambda link: None)

    with pytest.raises(OrderSubmissionException) as exc:
        composer.submit(CustomerInfo(phone="0700123456", address="Kampala"))

    assert "product_not_found" in str(exc.value)
    assert cart.total_items == 1


def test_product_update_applies_create_checks(backend, rice):
    with pytest.raises(BackendRequestException) as exc:
        backend.update_product(rice.id, {"price": -5})
    assert exc.value.status_code == 400

    with pytest.raises(BackendRequestException) as exc:
        backend.update_product(rice.id, {"category_id": "missing"})
    assert exc.value.status_code == 404

    assert backend.get_product(rice.id).price == Decimal("3500")


# ---------------------------
# Malformed responses
# ---------------------------
class CannedResponse:
    def __init__(self, status_code, content):
        self.status_code = status_code
        self.content = content
        self.text = content.decode("utf-8")

    def json(self):
        return json.loads(self.content)


class CannedSession:
    """Answers every request with the same body."""

    def __init__(self, body, status_code=200):
        self.headers = {}
        content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        self.response = CannedResponse(status_code, content)

    def request(self, method, url, **kwargs):
        return self.response


def canned_backend(body, status_code=200):
    return BackendClient(base_url="http://testserver", api_key="test-key", bus=EventBus(),
                         session=CannedSession(body, status_code))


def test_malformed_product_row_is_a_backend_error():
    backend = canned_backend([{"id": "1", "name": "Rice"}])
    with pytest.raises(BackendRequestException) as exc:
        backend.list_products()
    assert str(exc.value).startswith("Invalid backend response")

    catalog = ProductCatalog(backend)
    assert catalog.products == []
    assert catalog.error.startswith("Invalid backend response")


def test_non_json_body_is_a_backend_error():
    backend = canned_backend(b"<html>maintenance</html>")
    with pytest.raises(BackendRequestException) as exc:
        backend.list_categories()
    assert "Invalid backend response" in str(exc.value)
    assert not ProductCatalog(backend).loaded


def test_non_list_body_is_a_backend_error():
    with pytest.raises(BackendRequestException):
        canned_backend({"rows": []}).list_orders()


def test_bad_order_result_keeps_cart(storage, product_a):
    cart = CartStore(storage)
    cart.add_item(product_a, 2)
    composer = OrderComposer(cart, canned_backend({"order_id": "o1", "order_number": 1001}), dispatcher=print)

    with pytest.raises(OrderSubmissionException) as exc:
        composer.submit(CustomerInfo(phone="0700123456", address="Kampala"))

    assert "Invalid backend response" in str(exc.value)
    assert composer.last_error == str(exc.value)
    assert composer.state == ComposerState.IDLE
    assert cart.total_items == 2


# ---------------------------
# Images, inventory, analytics
# ---------------------------
def test_new_primary_image_replaces_previous(backend, rice):
    first = backend.add_product_image(rice.id, "/rice-1.jpg", is_primary=True)
    second = backend.add_product_image(rice.id, "/rice-2.jpg", alt_text="Sack", is_primary=True)
    assert second.alt_text == "Sack"

    product = backend.get_product(rice.id)
    assert [(i.id, i.is_primary) for i in product.images] == [(first.id, False), (second.id, True)]
    assert product.image == "/rice-2.jpg"


def test_image_for_unknown_product(backend):
    with pytest.raises(BackendRequestException) as exc:
        backend.add_product_image("nope", "/x.jpg")
    assert exc.value.status_code == 404


def test_products_start_with_empty_inventory(backend, rice):
    level = backend.get_inventory(rice.id)
    assert (level.quantity, level.reserved_quantity, level.reorder_level) == (0, 0, 10)
    assert backend.get_product(rice.id).inventory.product_id == rice.id
    assert backend.get_inventory("nope") is None


def test_inventory_update_and_low_stock(backend, rice):
    beans = backend.create_product(ProductIn(name="Beans", price=Decimal("4000")))
    seen = []
    backend.subscribe_to_product_changes(lambda c: seen.append((c.event, c.product_id)))

    level = backend.update_inventory(rice.id, {"quantity": 25, "reserved_quantity": 5})
    assert level.available_quantity == 20
    assert not level.needs_reorder
    assert seen == [(ProductEvent.PRODUCT_UPDATED, rice.id)]

    low = backend.get_low_stock()
    assert [(i.product_id, i.product_name) for i in low] == [(beans.id, "Beans")]
    assert {i.product_id for i in backend.get_low_stock(30)} == {rice.id, beans.id}


def test_negative_inventory_rejected(backend, rice):
    with pytest.raises(BackendRequestException) as exc:
        backend.update_inventory(rice.id, {"quantity": -1})
    assert exc.value.status_code == 400
    assert backend.get_inventory(rice.id).quantity == 0


def place(backend, product, quantity, phone):
    total = product.price * quantity
    return backend.create_order(OrderSubmission(
        customer_name="Customer",
        customer_phone=phone,
        customer_address="Kampala",
        items=[OrderLineItem(product_id=product.id, quantity=quantity, unit_price=product.price, total_price=total)],
        total_amount=total,
    ))


def test_order_analytics(backend, rice):
    first = place(backend, rice, 2, "0700111111")
    place(backend, rice, 4, "0700111111")
    place(backend, rice, 1, "0700222222")
    backend.update_order_status(first.order_id, OrderStatus.DELIVERED)

    a = backend.get_order_analytics()
    assert a.total_orders == 3
    assert a.total_revenue == Decimal("24500")
    assert round(a.average_order_value) == 8167
    assert (a.pending_orders, a.completed_orders) == (2, 1)
    assert a.total_customers == 2
    assert a.by_status[OrderStatus.DELIVERED] == 1
    assert a.by_status[OrderStatus.CANCELLED] == 0
    assert len(a.recent_orders) == 3

    later = date.today() + timedelta(days=2)
    assert backend.get_order_analytics(start_date=later).total_orders == 0


def test_empty_analytics(backend):
    a = backend.get_order_analytics()
    assert (a.total_orders, a.total_revenue, a.average_order_value) == (0, 0, 0)
    assert a.recent_orders == []


def test_dashboard_stats(backend, rice):
    backend.create_product(ProductIn(name="Old stock", price=Decimal("100"), available=False))
    backend.update_inventory(rice.id, {"quantity": 50})
    place(backend, rice, 1, "0700111111")

    stats = backend.get_dashboard_stats()
    assert (stats.total_products, stats.active_products) == (2, 1)
    assert [i.product_name for i in stats.low_stock_items] == ["Old stock"]
    assert len(stats.recent_orders) == 1
    assert stats.analytics.total_revenue == Decimal("3500")
