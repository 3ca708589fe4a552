"""
Pydantic models for request validation.

Field aliases follow the storefront's camelCase JSON; models accept either
the Python name or the alias.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.enums import OrderStatus, PaymentProvider


class ApiBase(BaseModel):
    """Shared base — allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Checkout Models ─────────────────────────────────────────────────

class AddressIn(ApiBase):
    """Shipping / billing address as entered at checkout."""
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=100)
    company: Optional[str] = Field(default=None, max_length=200)
    address_line1: str = Field(..., alias="addressLine1", min_length=1, max_length=255)
    address_line2: Optional[str] = Field(default=None, alias="addressLine2", max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field("", max_length=100)
    postal_code: str = Field(..., alias="postalCode", min_length=1, max_length=20)
    country: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)


class CartLine(ApiBase):
    """One cart line, priced by the storefront at checkout time."""
    product_id: str = Field(..., alias="productId", min_length=1)
    variant_id: Optional[str] = Field(default=None, alias="variantId")
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1, le=50)
    image: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None


class CreateOrderRequest(ApiBase):
    """Checkout form submission."""
    phone: Optional[str] = Field(default=None, max_length=30)
    shipping_address: AddressIn = Field(..., alias="shippingAddress")
    billing_address: Optional[AddressIn] = Field(default=None, alias="billingAddress")
    shipping_method_id: str = Field(..., alias="shippingMethodId", min_length=1, max_length=50)
    shipping_cost: float = Field(0.0, alias="shippingCost", ge=0)
    payment_method: PaymentProvider = Field(..., alias="paymentMethod")
    items: List[CartLine] = Field(..., min_length=1)
    subtotal: float = Field(..., ge=0)
    discount: float = Field(0.0, ge=0)
    coupon_code: Optional[str] = Field(default=None, alias="couponCode", max_length=50)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _discount_not_above_subtotal(self):
        if self.discount > self.subtotal:
            raise ValueError("discount cannot exceed subtotal")
        return self


# ── Payment Models ──────────────────────────────────────────────────

class CheckoutRequest(ApiBase):
    """Start payment for an existing order with the chosen provider."""
    order_id: str = Field(..., alias="orderId", min_length=1)
    provider: PaymentProvider


class CheckoutResponse(ApiBase):
    """Hosted payment page the browser should be sent to."""
    provider: PaymentProvider
    url: str
    reference: Optional[str] = None


# ── Admin Models ────────────────────────────────────────────────────

class OrderStatusUpdateRequest(ApiBase):
    status: OrderStatus
    tracking_number: Optional[str] = Field(default=None, alias="trackingNumber", max_length=100)
