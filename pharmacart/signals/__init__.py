"""
Pharmacart signals.

Signals:
    session_closed:
        Sent after an order session (tab) is discarded.

        Kwargs:
            sender: SessionManager class
            session: The OrderSession that was closed (its cart is final)

        Example handler::

            from pharmacart.signals import session_closed

            def on_session_closed(sender, session, **kwargs):
                logger.info("Tab closed: %s", session.name)

            session_closed.connect(on_session_closed)

    order_checked_out:
        Sent after CheckoutService hands an order to the sale recorder.

        Kwargs:
            sender: CheckoutService class
            order: OrderSnapshot that was recorded
            sale_id: str | None, id returned by the recorder (None without one)

        Example handler::

            from pharmacart.signals import order_checked_out

            def on_checkout(sender, order, sale_id, **kwargs):
                logger.info("Sale %s: %s", sale_id, order.total)

            order_checked_out.connect(on_checkout)
"""

from django.dispatch import Signal

session_closed = Signal()
order_checked_out = Signal()
