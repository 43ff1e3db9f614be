"""Pricing engine.

Recomputes the checkout total from scratch on every call. No state is kept
between calls, so any mutation of the session just calls `price_session`
again.
"""
from typing import Iterable, Optional

from checkout.services.models import (
    AddOnOffer,
    Coupon,
    DiscountType,
    PostClickOffer,
    PriceBreakdown,
    Product,
)
from checkout.services.money import clamp, format_brl, percent_of
from checkout.session import CheckoutSession, OfferDecision

__all__ = ["compute_price", "compute_discount", "price_session", "selected_add_ons", "format_brl"]


def compute_discount(pre_discount: int, coupon: Optional[Coupon]) -> int:
    """Discount in centavos, always within [0, pre_discount]."""
    if coupon is None or pre_discount <= 0:
        return 0
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = percent_of(pre_discount, coupon.discount_value)
    else:
        discount = min(pre_discount, coupon.discount_value)
    return clamp(discount, 0, pre_discount)


def compute_price(
    base_price: int,
    selected_add_ons: Iterable[AddOnOffer] = (),
    post_click_offer: Optional[PostClickOffer] = None,
    decision: OfferDecision = OfferDecision.UNSET,
    coupon: Optional[Coupon] = None,
) -> PriceBreakdown:
    """
    Compute the price breakdown for one checkout.

    Args:
        base_price: Product price in centavos
        selected_add_ons: Add-ons the buyer ticked
        post_click_offer: Product's post-click offer, if any
        decision: Buyer's decision on that offer; its price only counts when ACCEPTED
        coupon: Applied coupon (already validated), if any

    Returns:
        PriceBreakdown with pre_discount, discount and final (final >= 0)

    Example:
        base 10000, add-on 2000, 10% coupon -> pre 12000, discount 1200, final 10800
    """
    pre_discount = base_price + sum(add_on.price for add_on in selected_add_ons)
    if post_click_offer is not None and decision == OfferDecision.ACCEPTED:
        pre_discount += post_click_offer.price

    discount = compute_discount(pre_discount, coupon)
    return PriceBreakdown(
        pre_discount=pre_discount,
        discount=discount,
        final=max(0, pre_discount - discount),
    )


def selected_add_ons(product: Product, session: CheckoutSession) -> list[AddOnOffer]:
    """Add-ons of the product the session has selected, in product order."""
    return [a for a in product.add_ons if a.id in session.selected_add_on_ids]


def pre_discount_price(product: Product, session: CheckoutSession) -> int:
    return compute_price(
        product.price,
        selected_add_ons(product, session),
        product.post_click_offer,
        session.offer_decision,
    ).pre_discount


def price_session(product: Product, session: CheckoutSession) -> PriceBreakdown:
    """Recompute and store the session's current price."""
    session.price = compute_price(
        product.price,
        selected_add_ons(product, session),
        product.post_click_offer,
        session.offer_decision,
        session.applied_coupon,
    )
    return session.price
