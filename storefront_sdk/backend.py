# storefront_sdk/backend.py
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import requests
from pydantic import ValidationError

from storefront import config
from storefront.core import (
    InventoryUpdate, ProductImageIn, ProductIn, convert_analytics, convert_category, convert_image,
    convert_inventory, convert_order, convert_product, submission_to_rpc_params,
)
from storefront.events import CHANGE_EVENTS, EventBus, ProductEvent
from storefront.exceptions import BackendNotConfiguredException, BackendRequestException
from storefront.models import (
    Category, DashboardStats, InventoryLevel, Order, OrderAnalytics, OrderResult, OrderStatus,
    OrderSubmission, Product, ProductImage,
)

logger = logging.getLogger(__name__)

RECENT_ORDERS = 5
LOW_STOCK_THRESHOLD = 10


class BackendClient:
    """
    Client for the hosted backend's REST surface.

    Every call checks configuration first and raises
    BackendNotConfiguredException when the URL or key is missing. Non-2xx
    answers raise BackendRequestException with the server's message, and so
    does a body that is not JSON or a row that does not validate.
    Product writes publish the matching change event on ``bus``.
    """

    REST_PATH = "/rest/v1"

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, bus: Optional[EventBus] = None, session=None):
        self.base_url = (config.BACKEND_URL if base_url is None else base_url).rstrip("/")
        self.api_key = config.BACKEND_KEY if api_key is None else api_key
        self.timeout = config.REQUEST_TIMEOUT if timeout is None else timeout
        self.bus = bus or EventBus()
        self.session = session if session is not None else requests.Session()
        if self.api_key:
            self.session.headers.update({
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.api_key}",
            })

    @property
    def is_configured(self) -> bool:
        return config.is_backend_configured(self.base_url, self.api_key)

    # ---------------------------
    # Transport
    # ---------------------------
    def _request(self, method: str, path: str, **kwargs) -> Any:
        if not self.is_configured:
            raise BackendNotConfiguredException()
        url = f"{self.base_url}{self.REST_PATH}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise BackendRequestException(f"Backend unreachable: {e}") from e

        if r.status_code >= 400:
            message = self._error_message(r)
            logger.error(f"{method} {path} -> {r.status_code}: {message}")
            raise BackendRequestException(message, r.status_code)
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            logger.error(f"{method} {path} returned a non-JSON body: {e}")
            raise BackendRequestException(f"Invalid backend response: {e}", r.status_code) from e

    @staticmethod
    def _parse(convert: Callable[[Any], Any], data: Any) -> Any:
        try:
            return convert(data)
        except (ValidationError, ValueError, TypeError) as e:
            logger.error(f"Invalid backend response: {e}")
            raise BackendRequestException(f"Invalid backend response: {e}") from e

    def _parse_rows(self, convert: Callable[[Any], Any], rows: Any) -> List[Any]:
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise BackendRequestException(f"Invalid backend response: expected a list, got {type(rows).__name__}")
        return [self._parse(convert, row) for row in rows]

    @staticmethod
    def _error_message(r) -> str:
        try:
            body = r.json()
        except ValueError:
            return f"HTTP {r.status_code}: {r.text}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("detail") or body)
        return str(body)

    # ---------------------------
    # Products & categories
    # ---------------------------
    def list_products(self, admin: bool = False) -> List[Product]:
        params = {} if admin else {"available": "true"}
        return self._parse_rows(convert_product, self._request("GET", "/products", params=params))

    def get_product(self, product_id: str) -> Optional[Product]:
        try:
            row = self._request("GET", f"/products/{product_id}")
        except BackendRequestException as e:
            if e.status_code == 404:
                return None
            raise
        return self._parse(convert_product, row)

    def list_categories(self, admin: bool = False) -> List[Category]:
        params = {} if admin else {"active": "true"}
        return self._parse_rows(convert_category, self._request("GET", "/categories", params=params))

    def create_product(self, product: ProductIn) -> Product:
        row = self._request("POST", "/products", json=product.model_dump(mode="json"))
        created = self._parse(convert_product, row)
        self._dispatch_product_event(ProductEvent.PRODUCT_CREATED, created.id, {"name": created.name})
        return created

    def update_product(self, product_id: str, updates: Dict[str, Any]) -> Product:
        row = self._request("PATCH", f"/products/{product_id}", json=updates)
        updated = self._parse(convert_product, row)
        self._dispatch_product_event(ProductEvent.PRODUCT_UPDATED, product_id, {"fields": sorted(updates)})
        return updated

    def delete_product(self, product_id: str) -> bool:
        self._request("DELETE", f"/products/{product_id}")
        self._dispatch_product_event(ProductEvent.PRODUCT_DELETED, product_id)
        return True

    # ---------------------------
    # Orders
    # ---------------------------
    def create_order(self, submission: OrderSubmission) -> OrderResult:
        data = self._request("POST", "/rpc/create_complete_order", json=submission_to_rpc_params(submission))
        if not isinstance(data, dict) or not data.get("order_number"):
            raise BackendRequestException("Order was not created: backend returned no order number")
        result = self._parse(
            OrderResult.model_validate,
            {"order_id": str(data.get("order_id", "")), "order_number": data["order_number"]},
        )
        logger.info(f"Order created: {result.order_number}")
        return result

    def list_orders(self) -> List[Order]:
        return self._parse_rows(convert_order, self._request("GET", "/orders"))

    def get_order(self, order_id: str) -> Optional[Order]:
        try:
            row = self._request("GET", f"/orders/{order_id}")
        except BackendRequestException as e:
            if e.status_code == 404:
                return None
            raise
        return self._parse(convert_order, row)

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        row = self._request("PATCH", f"/orders/{order_id}", json={"status": OrderStatus(status).value})
        return self._parse(convert_order, row)

    # ---------------------------
    # Product images & inventory
    # ---------------------------
    def add_product_image(self, product_id: str, image_url: str, alt_text: Optional[str] = None,
                          is_primary: bool = False) -> ProductImage:
        payload = ProductImageIn(image_url=image_url, alt_text=alt_text, is_primary=is_primary)
        row = self._request("POST", f"/products/{product_id}/images", json=payload.model_dump())
        image = self._parse(convert_image, row)
        self._dispatch_product_event(ProductEvent.PRODUCT_UPDATED, product_id, {"image": image.id})
        return image

    def get_inventory(self, product_id: str) -> Optional[InventoryLevel]:
        try:
            row = self._request("GET", f"/inventory/{product_id}")
        except BackendRequestException as e:
            if e.status_code == 404:
                return None
            raise
        return self._parse(convert_inventory, row)

    def update_inventory(self, product_id: str, updates: Dict[str, Any]) -> InventoryLevel:
        payload = InventoryUpdate.model_validate(updates)
        row = self._request("PATCH", f"/inventory/{product_id}", json=payload.model_dump(exclude_none=True))
        level = self._parse(convert_inventory, row)
        self._dispatch_product_event(ProductEvent.PRODUCT_UPDATED, product_id, {"fields": sorted(updates)})
        return level

    def get_low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> List[InventoryLevel]:
        return self._parse_rows(convert_inventory, self._request("GET", "/inventory", params={"below": threshold}))

    # ---------------------------
    # Analytics
    # ---------------------------
    def get_order_analytics(self, start_date: Optional[date] = None,
                            end_date: Optional[date] = None) -> OrderAnalytics:
        params = {
            "p_start_date": start_date.isoformat() if start_date else None,
            "p_end_date": end_date.isoformat() if end_date else None,
        }
        analytics = self._parse(convert_analytics, self._request("POST", "/rpc/get_order_analytics", json=params))
        analytics.recent_orders = self.list_orders()[:RECENT_ORDERS]
        return analytics

    def get_dashboard_stats(self) -> DashboardStats:
        products = self.list_products(admin=True)
        analytics = self.get_order_analytics()
        return DashboardStats(
            total_products=len(products),
            active_products=sum(1 for p in products if p.available),
            low_stock_items=self.get_low_stock(LOW_STOCK_THRESHOLD),
            recent_orders=analytics.recent_orders,
            analytics=analytics,
        )

    # ---------------------------
    # Change notifications
    # ---------------------------
    def _dispatch_product_event(self, event: ProductEvent, product_id: str, data: Optional[dict] = None) -> None:
        self.bus.publish(event, product_id=product_id, data=data)

    def subscribe_to_product_changes(self, callback: Callable) -> Callable[[], None]:
        if not self.is_configured:
            logger.warning("Product change notifications not available without backend configuration")
            return lambda: None
        return self.bus.subscribe_many(CHANGE_EVENTS, callback)

    def trigger_product_refresh(self) -> None:
        logger.info("Triggering product refresh across all subscribers")
        self.bus.publish(ProductEvent.REFRESH_PRODUCTS)
