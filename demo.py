#!/usr/bin/env python
# Scripted walk through the storefront against a running dev backend:
#   python -m storefront.main    (in another terminal)
#   python demo.py
from storefront import config
from storefront.cart import CartStore
from storefront.catalog import ProductCatalog
from storefront.core import ProductIn, VariantIn
from storefront.database import MemoryStorage
from storefront.models import CustomerInfo
from storefront.orders import OrderComposer
from storefront_sdk.backend import BackendClient


def main():
    config.setup_logging()
    c = BackendClient(base_url=f"http://{config.HOST}:{config.PORT}", api_key="dev-key")

    # -----------------------------
    # Reset everything for demo
    # -----------------------------
    print("Resetting dev backend...")
    c.session.post(f"{c.base_url}/reset")

    # -----------------------------
    # Seed catalog
    # -----------------------------
    print("\nCreating category and products...")
    grains = c.session.post(f"{c.base_url}{c.REST_PATH}/categories", json={"name": "Grains", "icon": "🌾"}).json()
    catalog = ProductCatalog(c)
    rice = c.create_product(ProductIn(
        name="Rice", price=4500, unit="kg", category_id=grains["id"], tags=["local", "staple"],
        variants=[VariantIn(weight_kg=10, price=42000, stock_quantity=5),
                  VariantIn(weight_kg=25, price=100000, stock_quantity=2)],
    ))
    beans = c.create_product(ProductIn(name="Beans", price=3800, unit="kg", category_id=grains["id"], tags=["protein"]))
    print(f"Catalog now has {len(catalog.products)} products")

    # -----------------------------
    # Fill the cart
    # -----------------------------
    print("\nAdding products to cart...")
    cart = CartStore(MemoryStorage())
    cart.add_item(rice, 2)
    cart.add_item(rice, 1, rice.variant_for_weight(10))
    cart.add_item(beans, 3)
    for item in cart.items:
        print(f"  {item.display_name} x{item.quantity} = {item.line_total}")
    print(f"Total items: {cart.total_items}, total price: {cart.total_price}")

    # -----------------------------
    # Place order
    # -----------------------------
    print("\nPlacing order...")
    composer = OrderComposer(cart, c, dispatcher=lambda link: print(f"\nMessaging link:\n{link}\n"))
    outcome = composer.submit(CustomerInfo(phone="+256 700 000000", address="Plot 4, Kampala Road"))
    print(outcome.message)

    # -----------------------------
    # List orders
    # -----------------------------
    print("\nListing all orders...")
    for order in c.list_orders():
        print(f"  {order.order_number}: {order.total_amount} ({order.status.value})")

    # -----------------------------
    # Stock and dashboard
    # -----------------------------
    print("\nRestocking rice...")
    c.update_inventory(rice.id, {"quantity": 40})
    stats = c.get_dashboard_stats()
    print(f"Products: {stats.active_products} active / {stats.total_products} total")
    print(f"Orders: {stats.analytics.total_orders}, revenue {stats.analytics.total_revenue}")
    for inv in stats.low_stock_items:
        print(f"  Low stock: {inv.product_name} ({inv.quantity} left)")

    catalog.close()


if __name__ == "__main__":
    main()
