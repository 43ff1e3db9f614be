"""Checkout session state owned by one buyer visit."""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from checkout.services.models import BuyerIdentity, Coupon, PriceBreakdown
from checkout.utils.tracking import format_phone


class OfferDecision(str, Enum):
    UNSET = "unset"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class CouponSource(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


@dataclass
class CheckoutSession:
    """
    Mutable state of one checkout page.

    Changed by buyer input and by the offer decision flow only; the
    confirmation poller never writes here.
    """
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    buyer_name: str = ""
    buyer_email: str = ""
    buyer_phone: str = ""  # digits as typed, without country code
    phone_country_code: str = "+55"
    selected_add_on_ids: set[str] = field(default_factory=set)
    offer_decision: OfferDecision = OfferDecision.UNSET
    applied_coupon: Optional[Coupon] = None
    coupon_source: Optional[CouponSource] = None
    displaced_automatic_coupon: Optional[Coupon] = None
    tracking_parameters: dict[str, str] = field(default_factory=dict)
    price: PriceBreakdown = field(default_factory=PriceBreakdown)

    @property
    def full_phone(self) -> str:
        return format_phone(self.phone_country_code, self.buyer_phone)

    @property
    def coupon_code(self) -> Optional[str]:
        return self.applied_coupon.code if self.applied_coupon else None

    def buyer_identity(self) -> BuyerIdentity:
        return BuyerIdentity(
            name=self.buyer_name.strip(),
            email=self.buyer_email.strip(),
            phone=self.full_phone,
        )

    def has_buyer_identity(self) -> bool:
        return bool(self.buyer_name.strip() and self.buyer_email.strip() and self.buyer_phone.strip())

    def set_coupon(self, coupon: Coupon, source: CouponSource) -> None:
        """Apply a coupon, replacing whatever was applied before."""
        if source == CouponSource.MANUAL and self.coupon_source == CouponSource.AUTOMATIC:
            self.displaced_automatic_coupon = self.applied_coupon
        elif source == CouponSource.AUTOMATIC:
            self.displaced_automatic_coupon = None
        self.applied_coupon = coupon
        self.coupon_source = source

    def clear_coupon(self) -> Optional[Coupon]:
        """
        Remove the applied coupon.

        A manual coupon that displaced an automatic one hands the slot back
        to it. Returns the coupon now applied, if any.
        """
        restored = None
        if self.coupon_source == CouponSource.MANUAL:
            restored = self.displaced_automatic_coupon
        self.displaced_automatic_coupon = None
        if restored is not None:
            self.applied_coupon = restored
            self.coupon_source = CouponSource.AUTOMATIC
        else:
            self.applied_coupon = None
            self.coupon_source = None
        return self.applied_coupon
