# tests/test_core.py
from datetime import datetime, timezone
from decimal import Decimal

from storefront.core import (
    PLACEHOLDER_IMAGE, convert_analytics, convert_category, convert_inventory, convert_order,
    convert_product, submission_to_rpc_params,
)
from storefront.models import OrderLineItem, OrderStatus, OrderSubmission


def product_row(**overrides):
    row = {
        "id": "p1",
        "name": "Rice",
        "description": None,
        "price": 3500,
        "unit": "kg",
        "category_id": "c1",
        "tags": None,
        "available": True,
        "featured": None,
        "image": None,
        "categories": {"id": "c1", "name": "Grains", "icon": "🌾"},
        "product_images": [],
        "product_variants": [
            {"id": "v25", "weight_kg": 25, "price": 80000, "stock_quantity": 2},
            {"id": "v5", "weight_kg": 5, "price": 17000, "stock_quantity": 0, "is_active": False},
        ],
    }
    row.update(overrides)
    return row


def test_convert_product_normalises_optional_fields():
    p = convert_product(product_row())
    assert p.description == ""
    assert p.tags == []
    assert p.featured is False
    assert p.category == "c1"
    assert p.price == Decimal("3500")
    assert p.image == PLACEHOLDER_IMAGE


def test_variants_sorted_by_weight():
    p = convert_product(product_row())
    assert [v.weight_kg for v in p.variants] == [5, 25]
    assert p.variant_for_weight(25).price == Decimal("80000")
    assert p.variant_for_weight(5).is_active is False
    assert p.variant_for_weight(10) is None


def test_image_prefers_explicit_then_primary_then_first():
    images = [
        {"id": "i1", "image_url": "/a.jpg", "display_order": 1},
        {"id": "i2", "image_url": "/b.jpg", "display_order": 0, "is_primary": True},
    ]
    assert convert_product(product_row(image="/own.jpg", product_images=images)).image == "/own.jpg"
    assert convert_product(product_row(product_images=images)).image == "/b.jpg"
    assert convert_product(product_row(product_images=images[:1])).image == "/a.jpg"
    assert [i.id for i in convert_product(product_row(product_images=images)).images] == ["i2", "i1"]


def test_convert_category_and_order():
    cat = convert_category({"id": "c1", "name": "Grains", "is_active": False})
    assert (cat.name, cat.is_active, cat.display_order) == ("Grains", False, 0)

    now = datetime(2026, 10, 19, tzinfo=timezone.utc).isoformat()
    order = convert_order({
        "id": "o1",
        "order_number": "ORD-20261019-0001",
        "customer_name": "Customer",
        "total_amount": 7000.0,
        "status": "shipped",
        "created_at": now,
        "updated_at": now,
        "order_items": [{"product_id": "p1", "quantity": 2, "unit_price": 3500.0, "total_price": 7000.0}],
    })
    assert order.status == OrderStatus.SHIPPED
    assert order.items[0].total_price == Decimal("7000")


def test_rpc_params_shape():
    sub = OrderSubmission(
        customer_name="Customer",
        customer_phone="0700",
        customer_address="Kampala",
        items=[OrderLineItem(product_id="p1", quantity=2, unit_price=Decimal("3500"), total_price=Decimal("7000"))],
        total_amount=Decimal("7000"),
    )
    params = submission_to_rpc_params(sub)
    assert params["p_customer_name"] == "Customer"
    assert params["p_total_amount"] == 7000.0
    assert params["p_order_items"] == [
        {"product_id": "p1", "quantity": 2, "unit_price": 3500.0, "total_price": 7000.0}
    ]
    assert params["p_customer_email"] is None
    assert params["p_notes"] is None


def test_inventory_attached_to_product_and_converted_alone():
    p = convert_product(product_row(inventory=[{"quantity": 3, "reserved_quantity": 1, "reorder_level": 5}]))
    assert p.inventory.product_id == "p1"
    assert p.inventory.available_quantity == 2
    assert p.inventory.needs_reorder
    assert convert_product(product_row()).inventory is None

    level = convert_inventory({"product_id": "p1", "quantity": 40, "products": {"id": "p1", "name": "Rice"}})
    assert (level.product_name, level.quantity, level.needs_reorder) == ("Rice", 40, False)


def test_convert_analytics():
    a = convert_analytics({
        "total_orders": 2,
        "total_revenue": 9000.0,
        "average_order_value": 4500.0,
        "by_status": {"pending": 1, "delivered": 1},
    })
    assert a.total_revenue == Decimal("9000")
    assert a.by_status == {OrderStatus.PENDING: 1, OrderStatus.DELIVERED: 1}
    assert a.recent_orders == []
