"""Coupon domain service.

Validates discount codes typed by the buyer and picks the automatic coupon
a product page opens with.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from checkout.errors import (
    ERROR_COUPON_ALREADY_USED,
    ERROR_COUPON_BELOW_MINIMUM,
    ERROR_COUPON_EMPTY,
    ERROR_COUPON_EXPIRED,
    ERROR_COUPON_INACTIVE,
    ERROR_COUPON_NOT_FOUND,
    CouponError,
    CouponErrorKind,
)
from checkout.logging import get_logger, mask_email_for_logging, sanitize_string_for_logging
from checkout.services.domains.pricing import pre_discount_price
from checkout.services.models import Coupon, Product
from checkout.services.money import format_brl
from checkout.session import CheckoutSession

logger = get_logger(__name__)


# ============================================
# Models
# ============================================

class CouponValidationResult(BaseModel):
    """Result of coupon validation."""
    valid: bool
    coupon: Optional[Coupon] = None
    error_kind: Optional[CouponErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def reject(cls, kind: CouponErrorKind, message: str) -> "CouponValidationResult":
        return cls(valid=False, error_kind=kind, error_message=message)

    def raise_for_error(self) -> Coupon:
        """Return the coupon, or raise CouponError when validation failed."""
        if not self.valid or self.coupon is None:
            raise CouponError(self.error_kind or CouponErrorKind.NOT_FOUND, self.error_message or ERROR_COUPON_NOT_FOUND)
        return self.coupon


# ============================================
# Service
# ============================================

class CouponValidator:
    """
    Coupon checks, run in a fixed order and stopping at the first failure:
    existence/active, expiry, minimum purchase, prior use by the buyer.

    The prior-use check asks the order history and is point-in-time: two
    concurrent checkouts with the same email may both pass it.
    """

    def __init__(self, order_history):
        self.order_history = order_history

    # ==================== Manual codes ====================

    async def try_apply(
        self,
        code: str,
        product: Product,
        session: CheckoutSession,
        now: Optional[datetime] = None,
    ) -> CouponValidationResult:
        """Validate a code typed by the buyer against the session's current cart.

        Args:
            code: Code as typed (case-insensitive, surrounding spaces ignored)
            product: Product snapshot whose coupons are searched
            session: Current session (pre-discount price and buyer email)
            now: Reference time for expiry (defaults to UTC now)

        Returns:
            CouponValidationResult; never raises for validation failures
        """
        code = (code or "").strip()
        if not code:
            return CouponValidationResult.reject(CouponErrorKind.NOT_FOUND, ERROR_COUPON_EMPTY)

        now = now or datetime.now(timezone.utc)
        coupon = product.find_coupon(code)

        if coupon is None:
            return CouponValidationResult.reject(CouponErrorKind.NOT_FOUND, ERROR_COUPON_NOT_FOUND)
        if not coupon.is_active:
            return CouponValidationResult.reject(CouponErrorKind.INACTIVE, ERROR_COUPON_INACTIVE)

        if coupon.is_expired(now):
            return CouponValidationResult.reject(CouponErrorKind.EXPIRED, ERROR_COUPON_EXPIRED)

        pre_discount = pre_discount_price(product, session)
        if not coupon.meets_minimum(pre_discount):
            return CouponValidationResult.reject(
                CouponErrorKind.BELOW_MINIMUM,
                ERROR_COUPON_BELOW_MINIMUM.format(minimum=format_brl(coupon.min_purchase_value or 0)),
            )

        if await self._already_used(product, session.buyer_email, coupon.code):
            return CouponValidationResult.reject(
                CouponErrorKind.ALREADY_USED,
                ERROR_COUPON_ALREADY_USED.format(code=coupon.code.upper()),
            )

        logger.info(
            "Coupon %s accepted for product %s",
            sanitize_string_for_logging(coupon.code),
            product.id,
        )
        return CouponValidationResult(valid=True, coupon=coupon)

    async def _already_used(self, product: Product, email: str, code: str) -> bool:
        """Prior completed order by this email with this code (best-effort)."""
        email = (email or "").strip()
        if not email:
            return False
        try:
            return bool(await self.order_history.has_used_coupon(product, email, code))
        except Exception as e:
            logger.warning(
                "Coupon usage lookup failed for %s / %s, treating as unused: %s",
                sanitize_string_for_logging(code),
                mask_email_for_logging(email),
                e,
            )
            return False

    # ==================== Automatic coupons ====================

    @staticmethod
    def find_automatic_coupon(
        product: Product,
        pre_discount: int,
        now: Optional[datetime] = None,
    ) -> Optional[Coupon]:
        """First automatic coupon the product page should open with, if any."""
        now = now or datetime.now(timezone.utc)
        for coupon in product.coupons:
            if (
                coupon.is_automatic
                and coupon.is_active
                and not coupon.is_expired(now)
                and coupon.has_uses_left()
                and coupon.meets_minimum(pre_discount)
            ):
                return coupon
        return None


find_automatic_coupon = CouponValidator.find_automatic_coupon
