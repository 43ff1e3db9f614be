"""
PIX Checkout Engine

Core components of a self-serve checkout page for digital products:
- engine: CheckoutEngine facade wiring the pieces to buyer events
- services.domains: pricing, coupons, post-click offer flow
- payments: transaction state machine, controller, confirmation poller
- services.payments: PushInPay PIX gateway client
- services.abandoned_carts: debounced abandoned-cart telemetry
- db: Supabase client

Note: Imports are lazy to avoid circular dependency issues.
"""

__all__ = [
    "CheckoutEngine",
    "CheckoutSession",
    "get_settings",
    "get_supabase",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "CheckoutEngine":
        from checkout.engine import CheckoutEngine
        return CheckoutEngine
    elif name == "CheckoutSession":
        from checkout.session import CheckoutSession
        return CheckoutSession
    elif name == "get_settings":
        from checkout.config import get_settings
        return get_settings
    elif name == "get_supabase":
        from checkout.db import get_supabase
        return get_supabase
    raise AttributeError(f"module 'checkout' has no attribute '{name}'")
