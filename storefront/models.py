# storefront/models.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, List, Tuple

from pydantic import BaseModel, Field


class ProductVariant(BaseModel):
    id: str
    weight_kg: int = Field(gt=0)
    price: Decimal
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True


class InventoryLevel(BaseModel):
    product_id: str
    quantity: int = 0
    reserved_quantity: int = 0
    reorder_level: int = 0
    product_name: Optional[str] = None

    @property
    def available_quantity(self) -> int:
        return self.quantity - self.reserved_quantity

    @property
    def needs_reorder(self) -> bool:
        return self.quantity <= self.reorder_level


class ProductImage(BaseModel):
    id: str
    image_url: str
    alt_text: Optional[str] = None
    display_order: int = 0
    is_primary: bool = False


class Product(BaseModel):
    id: str
    name: str
    description: str = ""
    price: Decimal
    unit: str = "kg"
    category: Optional[str] = None
    tags: List[str] = []
    available: bool = True
    featured: bool = False
    rating: Optional[float] = None
    image: str = "/images/placeholder.jpg"
    variants: List[ProductVariant] = []
    images: List[ProductImage] = []
    inventory: Optional[InventoryLevel] = None

    def variant_for_weight(self, weight_kg: int) -> Optional[ProductVariant]:
        for v in self.variants:
            if v.weight_kg == weight_kg:
                return v
        return None


class Category(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None
    is_active: bool = True
    display_order: int = 0


CartKey = Tuple[str, Optional[str]]


def cart_key(product_id: str, variant_id: Optional[str] = None) -> CartKey:
    return (product_id, variant_id)


class CartItem(BaseModel):
    product: Product
    quantity: int = Field(ge=1)
    selected_variant: Optional[ProductVariant] = None
    weight_kg: Optional[int] = None

    @property
    def key(self) -> CartKey:
        return cart_key(self.product.id, self.selected_variant.id if self.selected_variant else None)

    @property
    def unit_price(self) -> Decimal:
        if self.selected_variant is not None:
            return self.selected_variant.price
        return self.product.price

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def display_name(self) -> str:
        if self.weight_kg:
            return f"{self.product.name} ({self.weight_kg}kg)"
        return self.product.name


class CustomerInfo(BaseModel):
    name: str = ""
    phone: str = ""
    address: str = ""
    email: Optional[str] = None
    notes: Optional[str] = None


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderLineItem(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    unit_price: Decimal
    total_price: Decimal


class OrderSubmission(BaseModel):
    customer_name: str
    customer_phone: str
    customer_address: str
    customer_email: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderLineItem]
    total_amount: Decimal


class OrderResult(BaseModel):
    order_id: str
    order_number: str


class Order(BaseModel):
    id: str
    order_number: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderLineItem] = []
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime
    updated_at: datetime


class OrderAnalytics(BaseModel):
    """Order totals for a date range, as reported by the backend."""
    total_orders: int = 0
    total_revenue: Decimal = Decimal("0")
    average_order_value: Decimal = Decimal("0")
    pending_orders: int = 0
    completed_orders: int = 0
    total_customers: int = 0
    by_status: Dict[OrderStatus, int] = {}
    recent_orders: List[Order] = []


class DashboardStats(BaseModel):
    total_products: int = 0
    active_products: int = 0
    low_stock_items: List[InventoryLevel] = []
    recent_orders: List[Order] = []
    analytics: OrderAnalytics = Field(default_factory=OrderAnalytics)
