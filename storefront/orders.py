"""
Order composition: validate checkout fields, submit the cart as an order and
build the summary message sent to the shop's messaging channel.

One submission attempt walks IDLE -> VALIDATING -> SUBMITTING -> SUBMITTED and
always ends back in IDLE. Validation and backend failures leave the cart as
it was; nothing is retried automatically.
"""
import logging
import webbrowser
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, List, Optional, Sequence
from urllib.parse import quote

from pydantic import BaseModel

from . import config
from .cart import CartStore
from .exceptions import OrderValidationException, OrderSubmissionException, StorefrontException
from .models import CartItem, CustomerInfo, OrderLineItem, OrderResult, OrderSubmission

logger = logging.getLogger(__name__)

MESSAGING_URL = "https://wa.me/{number}?text={text}"


class ComposerState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class SubmissionOutcome(BaseModel):
    order_id: str
    order_number: str
    total_amount: Decimal
    message: str
    link: str
    dispatched: bool = True


# ---------------------------
# Pure helpers
# ---------------------------
def validate_customer(customer: CustomerInfo) -> None:
    if not customer.phone.strip():
        raise OrderValidationException("phone", "Please enter your phone number")
    if not customer.address.strip():
        raise OrderValidationException("address", "Please enter your delivery address")


def build_line_items(items: Sequence[CartItem]) -> List[OrderLineItem]:
    return [
        OrderLineItem(
            product_id=item.product.id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.line_total,
        )
        for item in items
    ]


def format_amount(value: Decimal, currency: str = None) -> str:
    currency = currency or config.CURRENCY
    value = Decimal(value)
    if value == value.to_integral_value():
        return f"{currency} {int(value):,}"
    return f"{currency} {value:,.2f}"


def format_order_message(
    order_number: str,
    items: Sequence[CartItem],
    customer: CustomerInfo,
    now: Optional[datetime] = None,
    currency: str = None,
    store_name: str = None,
) -> str:
    now = now or datetime.now()
    store_name = store_name or config.STORE_NAME
    total = sum((item.line_total for item in items), Decimal("0"))

    header = "🛍️ *NEW FOOD ORDER PLACED* 🛍️\n\n"

    order_info = (
        "📋 *Order Details*\n"
        f"🔢 Order #: *{order_number}*\n"
        f"📅 Date: {now:%A}, {now:%B} {now.day}, {now.year}\n"
        f"⏰ Time: {now:%I:%M %p}\n\n"
    )

    customer_details = (
        "👤 *Customer Information*\n"
        f"📱 Phone: {customer.phone}\n"
        f"🏠 Address: {customer.address}\n\n"
    )

    items_header = "🛒 *Ordered Items*\n"
    items_list = "".join(
        f"\n*{index}. {item.display_name}*\n"
        f"   📦 Quantity: {item.quantity} {item.product.unit}\n"
        f"   💰 Unit Price: {format_amount(item.unit_price, currency)}\n"
        f"   💵 Subtotal: {format_amount(item.line_total, currency)}\n"
        f"   🏷️ Tags: {', '.join(item.product.tags)}\n"
        for index, item in enumerate(items, start=1)
    )

    summary = (
        "\n💰 *Order Summary*\n"
        f"📊 Total Items: {len(items)}\n"
        f"🧮 Total Quantity: {sum(item.quantity for item in items)} units\n"
        f"💵 *Total Amount: {format_amount(total, currency)}*\n\n"
    )

    footer = (
        "✅ *Order Status: PENDING*\n"
        "🚚 Delivery will be arranged after confirmation\n"
        "💳 Payment: Cash on Delivery\n\n"
        f"Thank you for choosing {store_name}! 🙏\n"
        "We'll contact you shortly to confirm your order."
    )

    return header + order_info + customer_details + items_header + items_list + summary + footer


def build_dispatch_link(message: str, number: str = None) -> str:
    return MESSAGING_URL.format(number=number or config.MESSAGING_NUMBER, text=quote(message, safe=""))


# ---------------------------
# Composer
# ---------------------------
class OrderComposer:
    def __init__(
        self,
        cart: CartStore,
        gateway,
        dispatcher: Callable[[str], object] = webbrowser.open_new_tab,
        messaging_number: str = None,
        currency: str = None,
        store_name: str = None,
        default_customer_name: str = None,
    ) -> None:
        """
        Args:
            cart: the session cart, cleared after a successful submission
            gateway: anything with ``create_order(OrderSubmission) -> OrderResult``
            dispatcher: opens the messaging deep link
        """
        self.cart = cart
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.messaging_number = messaging_number or config.MESSAGING_NUMBER
        self.currency = currency or config.CURRENCY
        self.store_name = store_name or config.STORE_NAME
        self.default_customer_name = default_customer_name or config.DEFAULT_CUSTOMER_NAME
        self.state = ComposerState.IDLE
        self.last_error: Optional[str] = None

    def build_submission(self, customer: CustomerInfo) -> OrderSubmission:
        items = self.cart.items
        return OrderSubmission(
            customer_name=customer.name.strip() or self.default_customer_name,
            customer_phone=customer.phone.strip(),
            customer_address=customer.address.strip(),
            customer_email=customer.email or None,
            notes=customer.notes or None,
            items=build_line_items(items),
            total_amount=self.cart.total_price,
        )

    def submit(self, customer: CustomerInfo, now: Optional[datetime] = None) -> Optional[SubmissionOutcome]:
        """
        Place the current cart as an order.

        Returns None when the cart is empty. Raises OrderValidationException for
        missing checkout fields and OrderSubmissionException when the backend
        call fails; in both cases the cart is left untouched.
        """
        if self.cart.is_empty():
            logger.info("Order submission skipped: cart is empty")
            return None

        self.last_error = None
        try:
            self.state = ComposerState.VALIDATING
            validate_customer(customer)

            self.state = ComposerState.SUBMITTING
            submission = self.build_submission(customer)
            logger.info(f"Creating order: {len(submission.items)} lines, total {submission.total_amount}")
            try:
                result: OrderResult = self.gateway.create_order(submission)
            except OrderSubmissionException:
                raise
            except StorefrontException as e:
                raise OrderSubmissionException(str(e)) from e

            self.state = ComposerState.SUBMITTED
            message = format_order_message(
                result.order_number,
                self.cart.items,
                customer,
                now=now,
                currency=self.currency,
                store_name=self.store_name,
            )
            link = build_dispatch_link(message, self.messaging_number)
            dispatched = self._dispatch(link)
            self.cart.clear_cart()
            logger.info(f"Order {result.order_number} placed")
            return SubmissionOutcome(
                order_id=result.order_id,
                order_number=result.order_number,
                total_amount=submission.total_amount,
                message=message,
                link=link,
                dispatched=dispatched,
            )
        except StorefrontException as e:
            self.last_error = str(e)
            logger.warning(f"Order submission failed: {e}")
            raise
        finally:
            self.state = ComposerState.IDLE

    def _dispatch(self, link: str) -> bool:
        # The order already exists at this point; a failed dispatch must not
        # keep the cart around for a duplicate submission.
        try:
            result = self.dispatcher(link)
        except Exception:
            logger.exception("Could not open the messaging link")
            return False
        return result is not False
