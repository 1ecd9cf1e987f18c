# cli.py - interactive storefront with autocomplete
import logging
import sys
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from storefront import config
from storefront.cart import CartStore
from storefront.catalog import ProductCatalog
from storefront.database import LocalStorage
from storefront.events import ProductEvent
from storefront.exceptions import StorefrontException
from storefront.models import CartItem, CustomerInfo, DashboardStats, Order, OrderStatus, Product
from storefront.orders import OrderComposer, format_amount
from storefront.theme import ThemePreference, THEMES
from storefront_sdk.backend import BackendClient

logger = logging.getLogger(__name__)

console = Console()

status_message = "Ready"

STATUS_STYLES = {
    OrderStatus.PENDING: "yellow",
    OrderStatus.PROCESSING: "cyan",
    OrderStatus.SHIPPED: "blue",
    OrderStatus.DELIVERED: "green",
    OrderStatus.CANCELLED: "red",
}

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


class Session:
    """Everything one storefront session needs, wired together once at startup."""

    def __init__(self, storage, backend: BackendClient):
        self.storage = storage
        self.backend = backend
        self.cart = CartStore(storage)
        self.theme = ThemePreference(storage)
        self.catalog = ProductCatalog(backend)
        self.composer = OrderComposer(self.cart, backend)

    @property
    def accent(self) -> str:
        return "bright_cyan" if self.theme.is_dark() else "blue"


# ---------------------------
# Display helpers
# ---------------------------
def money(value: Decimal) -> str:
    return format_amount(value)


def show_products(products: List[Product], accent: str = "blue"):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="📦 Products Catalog",
        box=box.ROUNDED,
        header_style=f"bold {accent}",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=12)
    table.add_column("Name", style="bold", width=22)
    table.add_column("Price", justify="right", width=16)
    table.add_column("Variants", width=28)
    table.add_column("Tags", width=20)

    for p in products:
        variants = ", ".join(
            f"{v.weight_kg}kg {money(v.price)}" + ("" if v.is_active and v.stock_quantity > 0 else " (out)")
            for v in p.variants
        ) or "-"
        name = p.name + (" ⭐" if p.featured else "")
        table.add_row(p.id[:12], name, f"{money(p.price)} / {p.unit}", variants, ", ".join(p.tags))
    console.print(table)


def show_cart(items: List[CartItem], total_items: int, total_price: Decimal, accent: str = "blue"):
    title = Text()
    title.append("🛒 Shopping Cart", style="bold")
    title.append(f" - {total_items} units - Total: {money(total_price)}", style="bold green")

    if not items:
        console.print(Panel("Your cart is empty 🛍️", title=title, style=accent))
        return

    table = Table(box=box.ROUNDED, header_style=f"bold {accent}", show_lines=True)
    table.add_column("#", justify="right", width=3)
    table.add_column("Product", style="bold", width=30)
    table.add_column("Qty", justify="right", width=8)
    table.add_column("Price", justify="right", width=14)
    table.add_column("Subtotal", justify="right", width=14)

    for index, it in enumerate(items, start=1):
        table.add_row(
            str(index),
            it.display_name,
            f"{it.quantity} {it.product.unit}",
            money(it.unit_price),
            money(it.line_total),
        )

    console.print(Panel(table, title=title, border_style=accent))


def show_orders(orders: List[Order], accent: str = "blue"):
    if not orders:
        console.print("[italic yellow]No orders yet[/italic yellow]")
        return

    table = Table(title="📜 Orders", box=box.ROUNDED, header_style=f"bold {accent}", show_lines=True)
    table.add_column("#", justify="right", width=3)
    table.add_column("Order", style="bold", width=20)
    table.add_column("Placed", width=17)
    table.add_column("Customer", width=22)
    table.add_column("Items", justify="right", width=5)
    table.add_column("Total", justify="right", width=14)
    table.add_column("Status", width=11)
    table.add_column("Payment", width=8)

    for index, o in enumerate(orders, start=1):
        table.add_row(
            str(index),
            o.order_number,
            o.created_at.strftime("%Y-%m-%d %H:%M"),
            f"{o.customer_name}\n{o.customer_phone or ''}",
            str(sum(i.quantity for i in o.items)),
            money(o.total_amount),
            f"[{STATUS_STYLES[o.status]}]{o.status.value}[/{STATUS_STYLES[o.status]}]",
            o.payment_status.value,
        )
    console.print(table)


def show_dashboard(stats: DashboardStats, accent: str = "blue"):
    a = stats.analytics
    summary = Table.grid(padding=(0, 3))
    summary.add_column(style="dim")
    summary.add_column(style="bold")
    summary.add_row("Products", f"{stats.active_products} active / {stats.total_products} total")
    summary.add_row("Orders", str(a.total_orders))
    summary.add_row("Revenue", money(a.total_revenue))
    summary.add_row("Average order", money(a.average_order_value))
    summary.add_row("Customers", str(a.total_customers))
    summary.add_row("By status", ", ".join(f"{s.value} {n}" for s, n in a.by_status.items() if n) or "-")
    console.print(Panel(summary, title="📊 Dashboard", border_style=accent))

    if stats.low_stock_items:
        low = Table(title="⚠️ Low stock", box=box.SIMPLE, header_style="bold red")
        low.add_column("Product", width=24)
        low.add_column("Qty", justify="right", width=6)
        low.add_column("Reorder at", justify="right", width=10)
        for inv in stats.low_stock_items:
            low.add_row(inv.product_name or inv.product_id[:12], str(inv.quantity), str(inv.reorder_level))
        console.print(low)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


def try_call(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner. Storefront errors are shown
    as a status panel and None is returned.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except StorefrontException as e:
        status_message = f"Error: {e}"
        console.print(show_status(f"Error: {e}", False))
        return None


# ---------------------------
# Autocompletion helpers
# ---------------------------
def get_product_completer(session: Session):
    names = [p.name for p in session.catalog.products]
    ids = [p.id for p in session.catalog.products]
    return WordCompleter([n for n in (names + ids) if n], ignore_case=True)


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def pick_product(session: Session) -> Optional[Product]:
    raw = prompt_with_autocomplete("Product name or ID", completer=get_product_completer(session)).strip()
    product = session.catalog.get(raw)
    if product is None:
        matches = [p for p in session.catalog.products if p.name.lower() == raw.lower()]
        product = matches[0] if matches else None
    if product is None:
        console.print(f"[red]No product matches '{raw}'[/red]")
    return product


def pick_cart_item(session: Session) -> Optional[CartItem]:
    items = session.cart.items
    if not items:
        console.print("[italic yellow]Your cart is empty[/italic yellow]")
        return None
    show_cart(items, session.cart.total_items, session.cart.total_price, session.accent)
    index = IntPrompt.ask("Item #", default=1)
    if not 1 <= index <= len(items):
        console.print("[red]No such item[/red]")
        return None
    return items[index - 1]


def create_header(session: Session):
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        f"🛍️ {config.STORE_NAME}",
        f"[bold {session.accent}]Storefront CLI[/bold {session.accent}]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style=f"bold {session.accent}")


# ---------------------------
# Actions
# ---------------------------
def add_to_cart(session: Session):
    product = pick_product(session)
    if product is None:
        return
    variant = None
    if product.variants:
        weights = [str(v.weight_kg) for v in product.variants]
        raw = Prompt.ask("Weight in kg", choices=weights + ["loose"], default="loose")
        if raw != "loose":
            variant = product.variant_for_weight(int(raw))
            if not variant.is_active or variant.stock_quantity <= 0:
                console.print(f"[red]{product.name} {variant.weight_kg}kg is out of stock[/red]")
                return
    qty = IntPrompt.ask("Quantity", default=1)
    if qty <= 0:
        console.print("[red]Quantity must be at least 1[/red]")
        return
    item = session.cart.add_item(product, qty, variant)
    console.print(show_status(f"Added {qty} x {item.display_name} to cart"))


def update_cart_item(session: Session):
    item = pick_cart_item(session)
    if item is None:
        return
    qty = IntPrompt.ask("New quantity (0 removes)", default=item.quantity)
    variant_id = item.selected_variant.id if item.selected_variant else None
    session.cart.update_quantity(item.product.id, qty, variant_id)


def remove_cart_item(session: Session):
    item = pick_cart_item(session)
    if item is None:
        return
    variant_id = item.selected_variant.id if item.selected_variant else None
    session.cart.remove_item(item.product.id, variant_id)
    console.print(show_status(f"Removed {item.display_name} from cart"))


def checkout(session: Session):
    if session.cart.is_empty():
        console.print("[italic yellow]Add some products to your cart to get started![/italic yellow]")
        return
    show_cart(session.cart.items, session.cart.total_items, session.cart.total_price, session.accent)
    customer = CustomerInfo(
        phone=Prompt.ask("📱 Phone number", default=""),
        address=Prompt.ask("🏠 Delivery address", default=""),
    )
    outcome = try_call(session.composer.submit, customer)
    if outcome is None:
        return
    console.print(Panel.fit(
        f"[green]Order {outcome.order_number} placed successfully![/green]\n"
        f"Total: [bold]{money(outcome.total_amount)}[/bold]\n"
        "You'll be redirected to WhatsApp to complete your order.",
        title="✅ Order Confirmation"
    ))
    if not outcome.dispatched:
        console.print(f"Open this link to send your order:\n{outcome.link}")


def manage_orders(session: Session):
    orders = try_call(session.backend.list_orders)
    if orders is None:
        return
    show_orders(orders, session.accent)
    if not orders or not Confirm.ask("Change an order's status?", default=False):
        return
    index = IntPrompt.ask("Order #", default=1)
    if not 1 <= index <= len(orders):
        console.print("[red]No such order[/red]")
        return
    order = orders[index - 1]
    status = Prompt.ask("New status", choices=[s.value for s in OrderStatus], default=order.status.value)
    try_call(
        session.backend.update_order_status, order.id, OrderStatus(status),
        success_msg=f"Order {order.order_number} is now {status}",
    )


def dashboard(session: Session):
    stats = try_call(session.backend.get_dashboard_stats)
    if stats is not None:
        show_dashboard(stats, session.accent)


def choose_theme(session: Session):
    session.theme.theme = Prompt.ask("Theme", choices=list(THEMES), default=session.theme.theme)


# ---------------------------
# Main menu
# ---------------------------
def menu(session: Session):
    global status_message

    console.clear()
    console.print(create_header(session))
    if session.catalog.error:
        console.print(show_status(session.catalog.error, False))

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style=f"bold {session.accent}", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style=f"bold {session.accent}", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "6", "🛒 View cart"),
            ("2", "🔍 Search products", "7", "✅ Place order"),
            ("3", "➕ Add to cart", "8", "🧹 Clear cart"),
            ("4", "✏️ Change quantity", "9", "🔄 Refresh products"),
            ("5", "➖ Remove from cart", "10", "🎨 Theme"),
            ("11", "📜 Orders", "12", "📊 Dashboard"),
            ("", "", "q", "👋 Quit")
        ]
        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 13)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            if session.catalog.error:
                console.print(show_status(session.catalog.error, False))
            show_products(session.catalog.products, session.accent)

        elif choice == "2":
            term = prompt_with_autocomplete("Enter search term")
            show_products(session.catalog.search(term), session.accent)

        elif choice == "3":
            add_to_cart(session)

        elif choice == "4":
            update_cart_item(session)

        elif choice == "5":
            remove_cart_item(session)

        elif choice == "6":
            show_cart(session.cart.items, session.cart.total_items, session.cart.total_price, session.accent)

        elif choice == "7":
            checkout(session)

        elif choice == "8":
            if Confirm.ask("[red]Remove everything from your cart?[/red]"):
                session.cart.clear_cart()
                status_message = "Cart cleared"

        elif choice == "9":
            session.backend.bus.publish(ProductEvent.FORCE_PRODUCT_REFRESH)
            if session.catalog.error:
                status_message = f"Error: {session.catalog.error}"
            else:
                status_message = f"Loaded {len(session.catalog.products)} products"

        elif choice == "10":
            choose_theme(session)
            console.print(create_header(session))

        elif choice == "11":
            manage_orders(session)

        elif choice == "12":
            dashboard(session)

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thank you for shopping with us! 👋[/bold green]", title="Goodbye"))
                session.catalog.close()
                return

        console.print()
        console.rule(style="dim")


def main():
    config.setup_logging("WARNING")
    session = Session(LocalStorage(config.STORAGE_PATH), BackendClient())
    menu(session)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
