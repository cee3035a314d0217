"""Service catalog schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...utils.sanitization import TEXT_MAX_LENGTH

VARIANT_TYPES = (
    "size",
    "color",
    "position",
    "side",
    "design_fee",
    "style",
    "complexity",
    "technique",
    "custom",
)


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    price: int = Field(ge=0)
    currency: str = "TWD"
    durationMin: int = Field(default=60, ge=1)
    category: Optional[str] = None
    imageUrl: Optional[str] = None
    isActive: bool = True


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    price: Optional[int] = Field(default=None, ge=0)
    currency: Optional[str] = None
    durationMin: Optional[int] = Field(default=None, ge=1)
    category: Optional[str] = None
    imageUrl: Optional[str] = None
    isActive: Optional[bool] = None


class ServiceBatchUpdate(BaseModel):
    serviceIds: list[int]
    isActive: Optional[bool] = None
    category: Optional[str] = None


class VariantCreate(BaseModel):
    type: str
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    priceModifier: int = 0
    durationModifier: int = 0
    sortOrder: int = 0
    isRequired: bool = False
    isActive: bool = True
    metadata: Optional[dict] = None

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        if v not in VARIANT_TYPES:
            raise ValueError(f"type must be one of {', '.join(VARIANT_TYPES)}")
        return v


class VariantUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)
    priceModifier: Optional[int] = None
    durationModifier: Optional[int] = None
    sortOrder: Optional[int] = None
    isRequired: Optional[bool] = None
    isActive: Optional[bool] = None
    metadata: Optional[dict] = None


class VariantResponse(BaseModel):
    id: int
    serviceId: int
    type: str
    name: str
    description: Optional[str] = None
    priceModifier: int
    durationModifier: int
    sortOrder: int
    isRequired: bool
    isActive: bool
    metadata: Optional[dict] = None


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: int
    currency: str
    durationMin: int
    category: Optional[str] = None
    imageUrl: Optional[str] = None
    isActive: bool
    hasVariants: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    variants: Optional[dict[str, list[VariantResponse]]] = None


class ServiceHistoryResponse(BaseModel):
    id: int
    serviceId: int
    field: str
    oldValue: Optional[str] = None
    newValue: Optional[str] = None
    updatedById: Optional[int] = None
    createdAt: Optional[datetime] = None


def variant_to_response(v) -> VariantResponse:
    return VariantResponse(
        id=v.id,
        serviceId=v.service_id,
        type=v.type,
        name=v.name,
        description=v.description,
        priceModifier=v.price_modifier,
        durationModifier=v.duration_modifier,
        sortOrder=v.sort_order,
        isRequired=v.is_required,
        isActive=v.is_active,
        metadata=v.meta,
    )


def service_to_response(s, include_variants: bool = False) -> ServiceResponse:
    grouped = None
    if include_variants:
        grouped = {t: [] for t in VARIANT_TYPES}
        for v in s.variants:
            if v.is_active:
                grouped.setdefault(v.type, []).append(variant_to_response(v))
    return ServiceResponse(
        id=s.id,
        name=s.name,
        description=s.description,
        price=s.price,
        currency=s.currency,
        durationMin=s.duration_min,
        category=s.category,
        imageUrl=s.image_url,
        isActive=s.is_active,
        hasVariants=s.has_variants,
        createdAt=s.created_at,
        updatedAt=s.updated_at,
        variants=grouped,
    )
