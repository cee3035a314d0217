from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_hhmm, validate_phone
from ...utils.sanitization import TEXT_MAX_LENGTH


class AddToCartRequest(BaseModel):
    serviceId: int
    selectedVariants: dict[str, Any]
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    referenceImages: Optional[list[str]] = None


class UpdateCartItemRequest(BaseModel):
    selectedVariants: Optional[dict[str, Any]] = None
    notes: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    referenceImages: Optional[list[str]] = None


class CheckoutRequest(BaseModel):
    branchId: int
    artistId: Optional[int] = None
    preferredDate: str  # YYYY-MM-DD
    preferredTimeSlot: str  # HH:MM
    customerName: str = Field(min_length=1, max_length=255)
    customerPhone: str
    customerEmail: Optional[str] = None
    specialRequests: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)

    @field_validator("preferredTimeSlot")
    @classmethod
    def check_slot(cls, v):
        return validate_hhmm(v)

    @field_validator("customerPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("customerEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v) if v else None


class CartItemResponse(BaseModel):
    id: int
    cartId: int
    serviceId: int
    serviceName: Optional[str] = None
    serviceDescription: Optional[str] = None
    serviceImageUrl: Optional[str] = None
    selectedVariants: dict[str, Any]
    basePrice: int
    finalPrice: int
    estimatedDuration: int
    addonTotal: int
    notes: Optional[str] = None
    referenceImages: Optional[list[str]] = None
    createdAt: Optional[datetime] = None


class CartResponse(BaseModel):
    id: Optional[int] = None
    userId: Optional[int] = None
    sessionId: Optional[str] = None
    status: str
    expiresAt: Optional[datetime] = None
    items: list[CartItemResponse]
    totalPrice: int
    totalDuration: int
    addonTotal: int


class CheckoutResponse(BaseModel):
    appointmentId: int
    orderId: int
