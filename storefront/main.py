# storefront/main.py
# In-memory stand-in for the hosted backend. Serves the same REST paths the
# SDK calls so the storefront can be run and tested without the real service.
import itertools
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Dict, Any, List

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from . import config
from .core import InventoryUpdate, ProductImageIn, ProductIn, ProductRow, VariantIn
from .models import OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

app = FastAPI(title="storefront dev backend (in-memory)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

REST = "/rest/v1"

# ---------------------------
# In-memory tables (process lifetime)
# ---------------------------
PRODUCTS: Dict[str, Dict[str, Any]] = {}
CATEGORIES: Dict[str, Dict[str, Any]] = {}
ORDERS: Dict[str, Dict[str, Any]] = {}
INVENTORY: Dict[str, Dict[str, Any]] = {}  # keyed by product id
_ORDER_SEQ = itertools.count(1)

# ---------------------------
# Pydantic schemas
# ---------------------------
class CategoryIn(BaseModel):
    name: str
    icon: Optional[str] = None
    is_active: bool = True
    display_order: int = 0


class OrderItemIn(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class CreateOrderIn(BaseModel):
    p_customer_name: str
    p_order_items: List[OrderItemIn]
    p_total_amount: Decimal
    p_customer_email: Optional[str] = None
    p_customer_phone: Optional[str] = None
    p_customer_address: Optional[str] = None
    p_notes: Optional[str] = None


class AnalyticsIn(BaseModel):
    p_start_date: Optional[date] = None
    p_end_date: Optional[date] = None


class OrderUpdateIn(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None


DEFAULT_REORDER_LEVEL = 10

PRODUCT_FIELDS = {"name", "description", "price", "unit", "category_id", "tags",
                  "available", "featured", "image", "rating"}

# ---------------------------
# Helpers
# ---------------------------
def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _make_variant_rows(product_id: str, variants: List[VariantIn]) -> List[Dict[str, Any]]:
    weights = [v.weight_kg for v in variants]
    if len(weights) != len(set(weights)):
        raise HTTPException(status_code=400, detail="only one variant per weight is allowed")
    return [
        {
            "id": uuid.uuid4().hex,
            "product_id": product_id,
            "weight_kg": v.weight_kg,
            "price": float(v.price),
            "stock_quantity": v.stock_quantity,
            "is_active": v.is_active,
        }
        for v in variants
    ]


def _check_product_fields(price: Decimal, category_id: Optional[str]) -> None:
    if price < 0:
        raise HTTPException(status_code=400, detail="price must be >= 0")
    if category_id and category_id not in CATEGORIES:
        raise HTTPException(status_code=404, detail="category not found")


def _make_product_row(product_id: str, p: ProductIn) -> Dict[str, Any]:
    _check_product_fields(p.price, p.category_id)
    return {
        "id": product_id,
        "name": p.name,
        "description": p.description,
        "price": float(p.price),
        "unit": p.unit,
        "category_id": p.category_id,
        "tags": list(p.tags),
        "available": p.available,
        "featured": p.featured,
        "rating": None,
        "image": p.image,
        "created_at": _now(),
        "product_images": [],
        "product_variants": _make_variant_rows(product_id, p.variants),
    }


def _make_inventory_row(product_id: str) -> Dict[str, Any]:
    return {
        "product_id": product_id,
        "quantity": 0,
        "reserved_quantity": 0,
        "reorder_level": DEFAULT_REORDER_LEVEL,
        "updated_at": _now(),
    }


def _with_relations(row: Dict[str, Any]) -> Dict[str, Any]:
    cat = CATEGORIES.get(row.get("category_id") or "")
    out = dict(row)
    out["categories"] = {"id": cat["id"], "name": cat["name"], "icon": cat["icon"]} if cat else None
    inv = INVENTORY.get(row["id"])
    out["inventory"] = [inv] if inv else []
    return out


def _get_product_or_404(product_id: str) -> Dict[str, Any]:
    p = PRODUCTS.get(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="product not found")
    return p


def _get_order_or_404(order_id: str) -> Dict[str, Any]:
    o = ORDERS.get(order_id)
    if not o:
        raise HTTPException(status_code=404, detail="order not found")
    return o

# ---------------------------
# Category endpoints
# ---------------------------
@app.get(f"{REST}/categories")
async def list_categories(active: Optional[bool] = None):
    out = [c for c in CATEGORIES.values() if active is None or c["is_active"] == active]
    return sorted(out, key=lambda c: c["display_order"])


@app.post(f"{REST}/categories", status_code=201)
async def create_category(payload: CategoryIn):
    cid = uuid.uuid4().hex
    CATEGORIES[cid] = {"id": cid, **payload.model_dump()}
    return CATEGORIES[cid]

# ---------------------------
# Product endpoints
# ---------------------------
@app.get(f"{REST}/products")
async def list_products(available: Optional[bool] = None):
    out = []
    for p in PRODUCTS.values():
        if available is not None and p["available"] != available:
            continue
        out.append(_with_relations(p))
    return sorted(out, key=lambda p: p["created_at"], reverse=True)


@app.post(f"{REST}/products", status_code=201)
async def create_product(payload: ProductIn):
    pid = uuid.uuid4().hex
    PRODUCTS[pid] = _make_product_row(pid, payload)
    INVENTORY[pid] = _make_inventory_row(pid)
    logger.info(f"Product created: {payload.name} ({pid})")
    return _with_relations(PRODUCTS[pid])


@app.get(f"{REST}/products/{{product_id}}")
async def get_product(product_id: str):
    return _with_relations(_get_product_or_404(product_id))


@app.patch(f"{REST}/products/{{product_id}}")
async def update_product(product_id: str, updates: Dict[str, Any]):
    p = _get_product_or_404(product_id)
    unknown = set(updates) - PRODUCT_FIELDS
    if unknown:
        raise HTTPException(status_code=400, detail=f"unknown fields: {', '.join(sorted(unknown))}")
    merged = {**p, **updates}
    try:
        row = ProductRow.model_validate(merged)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"invalid product: {e.errors()[0]['msg']}")
    _check_product_fields(row.price, row.category_id)
    if "price" in updates:
        merged["price"] = float(updates["price"])
    PRODUCTS[product_id] = merged
    return _with_relations(merged)


@app.delete(f"{REST}/products/{{product_id}}", status_code=204)
async def delete_product(product_id: str):
    _get_product_or_404(product_id)
    del PRODUCTS[product_id]
    INVENTORY.pop(product_id, None)
    return Response(status_code=204)

# ---------------------------
# Product images & inventory
# ---------------------------
@app.post(f"{REST}/products/{{product_id}}/images", status_code=201)
async def add_product_image(product_id: str, payload: ProductImageIn):
    p = _get_product_or_404(product_id)
    images = p["product_images"]
    if payload.is_primary:
        for img in images:
            img["is_primary"] = False
    image = {
        "id": uuid.uuid4().hex,
        "product_id": product_id,
        **payload.model_dump(),
        "display_order": len(images),
    }
    images.append(image)
    return image


@app.get(f"{REST}/inventory")
async def list_inventory(below: Optional[int] = None):
    out = []
    for inv in INVENTORY.values():
        if below is not None and inv["quantity"] >= below:
            continue
        product = PRODUCTS[inv["product_id"]]
        out.append({**inv, "products": {"id": product["id"], "name": product["name"]}})
    return sorted(out, key=lambda i: i["quantity"])


@app.get(f"{REST}/inventory/{{product_id}}")
async def get_inventory(product_id: str):
    inv = INVENTORY.get(product_id)
    if not inv:
        raise HTTPException(status_code=404, detail="inventory not found")
    return inv


@app.patch(f"{REST}/inventory/{{product_id}}")
async def update_inventory(product_id: str, payload: InventoryUpdate):
    inv = INVENTORY.get(product_id)
    if not inv:
        raise HTTPException(status_code=404, detail="inventory not found")
    updates = payload.model_dump(exclude_none=True)
    if any(v < 0 for v in updates.values()):
        raise HTTPException(status_code=400, detail="inventory values must be >= 0")
    inv.update(updates)
    inv["updated_at"] = _now()
    return inv

# ---------------------------
# Orders
# ---------------------------
@app.post(f"{REST}/rpc/create_complete_order")
async def create_complete_order(payload: CreateOrderIn):
    if not payload.p_order_items:
        raise HTTPException(status_code=400, detail="order has no items")

    items = []
    total = Decimal("0")
    for it in payload.p_order_items:
        if it.quantity <= 0:
            raise HTTPException(status_code=400, detail="quantity must be > 0")
        if it.product_id not in PRODUCTS:
            raise HTTPException(status_code=404, detail=f"product_not_found:{it.product_id}")
        total += it.total_price
        items.append({
            "id": uuid.uuid4().hex,
            "product_id": it.product_id,
            "quantity": it.quantity,
            "unit_price": float(it.unit_price),
            "total_price": float(it.total_price),
        })

    if abs(total - payload.p_total_amount) > Decimal("0.01"):
        raise HTTPException(status_code=400, detail="total_amount does not match order items")

    order_id = uuid.uuid4().hex
    now = datetime.now(timezone.utc)
    order_number = f"ORD-{now:%Y%m%d}-{next(_ORDER_SEQ):04d}"
    ORDERS[order_id] = {
        "id": order_id,
        "order_number": order_number,
        "customer_name": payload.p_customer_name,
        "customer_email": payload.p_customer_email,
        "customer_phone": payload.p_customer_phone,
        "customer_address": payload.p_customer_address,
        "notes": payload.p_notes,
        "total_amount": float(payload.p_total_amount),
        "status": OrderStatus.PENDING.value,
        "payment_status": PaymentStatus.PENDING.value,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
        "order_items": items,
    }
    logger.info(f"Order {order_number} created ({len(items)} items)")
    return {"order_id": order_id, "order_number": order_number}


@app.get(f"{REST}/orders")
async def list_orders():
    return sorted(ORDERS.values(), key=lambda o: o["created_at"], reverse=True)


@app.get(f"{REST}/orders/{{order_id}}")
async def get_order(order_id: str):
    return _get_order_or_404(order_id)


@app.patch(f"{REST}/orders/{{order_id}}")
async def update_order(order_id: str, payload: OrderUpdateIn):
    o = _get_order_or_404(order_id)
    if payload.status is not None:
        o["status"] = payload.status.value
    if payload.payment_status is not None:
        o["payment_status"] = payload.payment_status.value
    o["updated_at"] = _now()
    return o

# ---------------------------
# Analytics
# ---------------------------
@app.post(f"{REST}/rpc/get_order_analytics")
async def get_order_analytics(payload: AnalyticsIn):
    orders = []
    for o in ORDERS.values():
        day = datetime.fromisoformat(o["created_at"]).date()
        if payload.p_start_date and day < payload.p_start_date:
            continue
        if payload.p_end_date and day > payload.p_end_date:
            continue
        orders.append(o)

    revenue = sum((Decimal(str(o["total_amount"])) for o in orders), Decimal("0"))
    by_status = {s.value: 0 for s in OrderStatus}
    for o in orders:
        by_status[o["status"]] += 1
    customers = {o["customer_phone"] or o["customer_name"] for o in orders}
    return {
        "total_orders": len(orders),
        "total_revenue": float(revenue),
        "average_order_value": float(revenue / len(orders)) if orders else 0.0,
        "pending_orders": by_status[OrderStatus.PENDING.value],
        "completed_orders": by_status[OrderStatus.DELIVERED.value],
        "total_customers": len(customers),
        "by_status": by_status,
    }

# ---------------------------
# Utility: reset (for tests/demo)
# ---------------------------
@app.post("/reset")
async def reset_all():
    global _ORDER_SEQ
    PRODUCTS.clear()
    CATEGORIES.clear()
    ORDERS.clear()
    INVENTORY.clear()
    _ORDER_SEQ = itertools.count(1)
    return {"status": "reset"}


if __name__ == "__main__":
    import uvicorn

    config.setup_logging()
    uvicorn.run(app, host=config.HOST, port=config.PORT)
