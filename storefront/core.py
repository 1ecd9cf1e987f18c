from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List

from pydantic import BaseModel

from .models import (
    Product, ProductVariant, ProductImage, Category, InventoryLevel, Order, OrderAnalytics,
    OrderLineItem, OrderSubmission, OrderStatus, PaymentStatus,
)

# Row shapes returned by the backend REST surface. Everything coming over the
# wire is parsed here and converted once into the models in storefront.models.

PLACEHOLDER_IMAGE = "/images/placeholder.jpg"


class CategoryRef(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None


class ProductImageRow(BaseModel):
    id: str
    image_url: str
    alt_text: Optional[str] = None
    display_order: int = 0
    is_primary: bool = False


class ProductRef(BaseModel):
    id: str
    name: str


class InventoryRow(BaseModel):
    product_id: Optional[str] = None
    quantity: int = 0
    reserved_quantity: int = 0
    reorder_level: int = 0
    products: Optional[ProductRef] = None


class VariantRow(BaseModel):
    id: str
    product_id: Optional[str] = None
    weight_kg: int
    price: Decimal
    stock_quantity: int = 0
    is_active: bool = True


class ProductRow(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    image: Optional[str] = None
    category_id: Optional[str] = None
    tags: Optional[List[str]] = None
    available: bool = True
    featured: Optional[bool] = None
    rating: Optional[float] = None
    unit: str = "kg"
    created_at: Optional[datetime] = None
    categories: Optional[CategoryRef] = None
    product_images: Optional[List[ProductImageRow]] = None
    inventory: Optional[List[InventoryRow]] = None
    product_variants: Optional[List[VariantRow]] = None


class CategoryRow(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None
    is_active: bool = True
    display_order: int = 0


class OrderItemRow(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderAnalyticsRow(BaseModel):
    total_orders: int = 0
    total_revenue: Decimal = Decimal("0")
    average_order_value: Decimal = Decimal("0")
    pending_orders: int = 0
    completed_orders: int = 0
    total_customers: int = 0
    by_status: Dict[str, int] = {}


class OrderRow(BaseModel):
    id: str
    order_number: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    notes: Optional[str] = None
    total_amount: Decimal
    status: str = "pending"
    payment_status: str = "pending"
    created_at: datetime
    updated_at: datetime
    order_items: Optional[List[OrderItemRow]] = None


class VariantIn(BaseModel):
    weight_kg: int
    price: Decimal
    stock_quantity: int = 0
    is_active: bool = True


class InventoryUpdate(BaseModel):
    quantity: Optional[int] = None
    reserved_quantity: Optional[int] = None
    reorder_level: Optional[int] = None


class ProductImageIn(BaseModel):
    image_url: str
    alt_text: Optional[str] = None
    is_primary: bool = False


class ProductIn(BaseModel):
    """Admin product form payload."""
    name: str
    price: Decimal
    description: Optional[str] = None
    unit: str = "kg"
    category_id: Optional[str] = None
    tags: List[str] = []
    available: bool = True
    featured: bool = False
    image: Optional[str] = None
    variants: List[VariantIn] = []


def _primary_image(row: ProductRow) -> str:
    if row.image:
        return row.image
    if row.product_images:
        for img in row.product_images:
            if img.is_primary:
                return img.image_url
        return row.product_images[0].image_url
    return PLACEHOLDER_IMAGE


def convert_product(data: Dict[str, Any]) -> Product:
    row = ProductRow.model_validate(data)
    return Product(
        id=row.id,
        name=row.name,
        description=row.description or "",
        price=row.price,
        unit=row.unit,
        category=row.category_id,
        tags=row.tags or [],
        available=row.available,
        featured=bool(row.featured),
        rating=row.rating,
        image=_primary_image(row),
        variants=[
            ProductVariant(
                id=v.id,
                weight_kg=v.weight_kg,
                price=v.price,
                stock_quantity=v.stock_quantity,
                is_active=v.is_active,
            )
            for v in sorted(row.product_variants or [], key=lambda v: v.weight_kg)
        ],
        images=[
            ProductImage(**img.model_dump())
            for img in sorted(row.product_images or [], key=lambda i: i.display_order)
        ],
        inventory=_inventory_level(row.inventory[0], row.id) if row.inventory else None,
    )


def _inventory_level(row: InventoryRow, product_id: Optional[str] = None) -> InventoryLevel:
    return InventoryLevel(
        product_id=row.product_id or product_id or (row.products.id if row.products else ""),
        quantity=row.quantity,
        reserved_quantity=row.reserved_quantity,
        reorder_level=row.reorder_level,
        product_name=row.products.name if row.products else None,
    )


def convert_inventory(data: Dict[str, Any]) -> InventoryLevel:
    return _inventory_level(InventoryRow.model_validate(data))


def convert_image(data: Dict[str, Any]) -> ProductImage:
    return ProductImage(**ProductImageRow.model_validate(data).model_dump())


def convert_category(data: Dict[str, Any]) -> Category:
    row = CategoryRow.model_validate(data)
    return Category(**row.model_dump())


def convert_order(data: Dict[str, Any]) -> Order:
    row = OrderRow.model_validate(data)
    return Order(
        id=row.id,
        order_number=row.order_number,
        customer_name=row.customer_name,
        customer_email=row.customer_email,
        customer_phone=row.customer_phone,
        customer_address=row.customer_address,
        notes=row.notes,
        items=[OrderLineItem(**it.model_dump()) for it in row.order_items or []],
        total_amount=row.total_amount,
        status=OrderStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def submission_to_rpc_params(submission: OrderSubmission) -> Dict[str, Any]:
    """Parameters of the backend's create_complete_order function."""
    return {
        "p_customer_name": submission.customer_name,
        "p_order_items": [
            {
                "product_id": it.product_id,
                "quantity": it.quantity,
                "unit_price": float(it.unit_price),
                "total_price": float(it.total_price),
            }
            for it in submission.items
        ],
        "p_total_amount": float(submission.total_amount),
        "p_customer_email": submission.customer_email or None,
        "p_customer_phone": submission.customer_phone or None,
        "p_customer_address": submission.customer_address or None,
        "p_notes": submission.notes or None,
    }


def convert_analytics(data: Dict[str, Any]) -> OrderAnalytics:
    row = OrderAnalyticsRow.model_validate(data)
    return OrderAnalytics(
        total_orders=row.total_orders,
        total_revenue=row.total_revenue,
        average_order_value=row.average_order_value,
        pending_orders=row.pending_orders,
        completed_orders=row.completed_orders,
        total_customers=row.total_customers,
        by_status={OrderStatus(k): v for k, v in row.by_status.items()},
    )
