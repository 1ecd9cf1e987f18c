import logging
from collections import defaultdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ProductEvent(str, Enum):
    REFRESH_PRODUCTS = "refreshProducts"
    PRODUCT_CREATED = "productCreated"
    PRODUCT_UPDATED = "productUpdated"
    PRODUCT_DELETED = "productDeleted"
    FORCE_PRODUCT_REFRESH = "forceProductRefresh"


CHANGE_EVENTS = (
    ProductEvent.PRODUCT_CREATED,
    ProductEvent.PRODUCT_UPDATED,
    ProductEvent.PRODUCT_DELETED,
)


class ProductChange(BaseModel):
    event: ProductEvent
    product_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any] = {}


Handler = Callable[[ProductChange], None]


class EventBus:
    """
    In-process publish/subscribe channel for catalog refresh requests.

    Handlers run synchronously in subscription order. A handler that raises is
    logged and skipped; the remaining handlers still receive the event.
    """

    def __init__(self) -> None:
        self._handlers: Dict[ProductEvent, List[Handler]] = defaultdict(list)

    def subscribe(self, event: ProductEvent, handler: Handler) -> Callable[[], None]:
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers[event].remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def subscribe_many(self, events, handler: Handler) -> Callable[[], None]:
        unsubscribers = [self.subscribe(e, handler) for e in events]

        def unsubscribe() -> None:
            for u in unsubscribers:
                u()

        return unsubscribe

    def publish(self, event: ProductEvent, product_id: Optional[str] = None,
                data: Optional[Dict[str, Any]] = None) -> ProductChange:
        change = ProductChange(event=event, product_id=product_id, data=data or {})
        logger.debug(f"Dispatching {event.value} (product={product_id})")
        for handler in list(self._handlers[event]):
            try:
                handler(change)
            except Exception:
                logger.exception(f"Handler {handler!r} failed for {event.value}")
        return change

    def subscriber_count(self, event: ProductEvent) -> int:
        return len(self._handlers[event])
