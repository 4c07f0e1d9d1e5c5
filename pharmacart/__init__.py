"""
Django Pharmacart - Pharmacy point-of-sale cart.

Usage:
    from pharmacart import SessionManager, CheckoutService, CartError

    manager = SessionManager(catalog)
    manager.active.cart.add_product(catalog.find_batches_by_product("Panadol", "Tablet"), quantity=2)
    order = CheckoutService().checkout(manager, payment_method="cash")
"""


def __getattr__(name):
    if name == "CartEngine":
        from pharmacart.cart import CartEngine

        return CartEngine
    elif name == "SessionManager":
        from pharmacart.sessions import SessionManager

        return SessionManager
    elif name == "CheckoutService":
        from pharmacart.service import CheckoutService

        return CheckoutService
    elif name == "CartError":
        from pharmacart.exceptions import CartError

        return CartError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["CartEngine", "SessionManager", "CheckoutService", "CartError"]
__version__ = "0.1.0"
