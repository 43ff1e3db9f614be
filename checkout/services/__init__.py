# Services Module
# Lazy exports: models/money are imported by checkout.session, which the
# writer and gateway modules import back.
__all__ = ["PushInPayGateway", "get_gateway", "AbandonmentTelemetryWriter"]


def __getattr__(name):
    if name in ("PushInPayGateway", "get_gateway"):
        from checkout.services import payments
        return getattr(payments, name)
    if name == "AbandonmentTelemetryWriter":
        from checkout.services.abandoned_carts import AbandonmentTelemetryWriter
        return AbandonmentTelemetryWriter
    raise AttributeError(f"module 'checkout.services' has no attribute '{name}'")
