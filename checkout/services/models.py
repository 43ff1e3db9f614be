"""Checkout Models - Pydantic models for the product snapshot and payment payloads.

All amounts are integer minor units (centavos).
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from checkout.services.money import round_half_up


def _to_minor(v):
    # DB rows sometimes carry numeric strings
    if v is None or isinstance(v, int):
        return v
    return round_half_up(v)


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class AddOnOffer(BaseModel):
    """Checkbox-style order bump shown under the payment form."""
    id: str
    product_id: str
    name: str
    price: int = Field(ge=0)
    description: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def convert_price(cls, v):
        return _to_minor(v)


class PostClickOffer(BaseModel):
    """Single upsell presented in a modal after the buyer clicks pay."""
    product_id: str
    name: str
    price: int = Field(ge=0)
    description: str = ""
    image_url: Optional[str] = None
    modal_title: Optional[str] = None
    modal_accept_button_text: Optional[str] = None
    modal_decline_button_text: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def convert_price(cls, v):
        return _to_minor(v)

    @property
    def title(self) -> str:
        return self.modal_title or self.name


class Coupon(BaseModel):
    """Discount code attached to a product."""
    id: str
    code: str
    discount_type: DiscountType
    discount_value: int = Field(ge=0)  # percent for PERCENTAGE, centavos for FIXED
    is_active: bool = True
    is_automatic: bool = False
    min_purchase_value: Optional[int] = None
    uses: int = 0
    max_uses: Optional[int] = None
    expires_at: Optional[datetime] = None
    description: Optional[str] = None

    class Config:
        extra = "ignore"

    @field_validator("discount_value", "min_purchase_value", mode="before")
    @classmethod
    def convert_amounts(cls, v):
        return _to_minor(v)

    @field_validator("expires_at", mode="after")
    @classmethod
    def ensure_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def matches(self, code: str) -> bool:
        return self.code.strip().upper() == code.strip().upper()

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def meets_minimum(self, pre_discount: int) -> bool:
        return not self.min_purchase_value or pre_discount >= self.min_purchase_value

    def has_uses_left(self) -> bool:
        return self.max_uses is None or self.uses < self.max_uses


class Product(BaseModel):
    """Read-only product snapshot the checkout page is built from."""
    id: str
    owner_id: str  # seller (platform user)
    name: str
    price: int = Field(ge=0)
    description: str = ""
    slug: Optional[str] = None
    delivery_url: Optional[str] = None
    add_ons: list[AddOnOffer] = []
    post_click_offer: Optional[PostClickOffer] = None
    coupons: list[Coupon] = []

    class Config:
        extra = "ignore"

    @field_validator("price", mode="before")
    @classmethod
    def convert_price(cls, v):
        return _to_minor(v)

    def find_add_on(self, add_on_id: str) -> Optional[AddOnOffer]:
        return next((a for a in self.add_ons if a.id == add_on_id), None)

    def find_coupon(self, code: str) -> Optional[Coupon]:
        """Case-insensitive lookup among this product's coupons."""
        return next((c for c in self.coupons if c.matches(code)), None)


class PriceBreakdown(BaseModel):
    pre_discount: int = 0
    discount: int = 0
    final: int = 0


class BuyerIdentity(BaseModel):
    """Buyer contact data as submitted with the charge."""
    name: str
    email: str
    phone: str  # country code + digits


class LineItemKind(str, Enum):
    BASE = "base"
    ADD_ON = "add_on"
    POST_CLICK_OFFER = "post_click_offer"


class LineItem(BaseModel):
    product_id: str
    name: str
    quantity: int = 1
    price: int
    kind: LineItemKind = LineItemKind.BASE

    @property
    def is_add_on(self) -> bool:
        return self.kind == LineItemKind.ADD_ON

    @property
    def is_post_click_offer(self) -> bool:
        return self.kind == LineItemKind.POST_CLICK_OFFER


class ChargeRequest(BaseModel):
    """Everything the gateway and the order record need for one charge."""
    session_id: str
    product_id: str
    owner_id: str
    amount: int
    original_amount: int
    discount_applied: int = 0
    coupon_code: Optional[str] = None
    items: list[LineItem]
    buyer: BuyerIdentity
    tracking_parameters: dict[str, str] = {}


class PaymentInstruction(BaseModel):
    """QR payload returned by the gateway."""
    transaction_id: str
    qr_code: str  # PIX copy-and-paste code
    qr_code_base64: str  # PNG, without data-URL prefix
    status: str
    value: int


class AbandonedCartStatus(str, Enum):
    NOT_CONTACTED = "not_contacted"
    RECOVERY_EMAIL_SENT = "recovery_email_sent"
    RECOVERED = "recovered"
    IGNORED = "ignored"


class AbandonedCartRecord(BaseModel):
    """Snapshot of an unfinished checkout kept for recovery campaigns."""
    platform_user_id: str
    product_id: str
    product_name: str
    customer_name: str = ""
    customer_email: str
    customer_whatsapp: str = ""
    potential_value_in_cents: int = 0
    tracking_parameters: dict[str, str] = {}
    status: AbandonedCartStatus = AbandonedCartStatus.NOT_CONTACTED
    last_interaction_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_row(self, include_status: bool = True) -> dict:
        row = self.model_dump(mode="json")
        if not include_status:
            row.pop("status", None)
        return row
