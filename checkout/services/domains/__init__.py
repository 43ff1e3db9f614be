"""Domain services: pricing, coupons and the post-click offer flow."""
from .pricing import compute_price, compute_discount, price_session
from .coupons import CouponValidator, CouponValidationResult, find_automatic_coupon
from .offers import OfferDecisionFlow, OfferState

__all__ = [
    "compute_price",
    "compute_discount",
    "price_session",
    "CouponValidator",
    "CouponValidationResult",
    "find_automatic_coupon",
    "OfferDecisionFlow",
    "OfferState",
]
