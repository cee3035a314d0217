from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_phone
from ...utils.sanitization import TEXT_MAX_LENGTH

MEMBER_ROLES = ("MEMBER", "ADMIN")
USER_STATUSES = ("ACTIVE", "INACTIVE")


class MemberCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str
    password: str = Field(min_length=8)
    phone: Optional[str] = None
    branchId: Optional[int] = None
    role: str = "MEMBER"
    totalSpent: int = Field(0, ge=0)
    balance: int = Field(0, ge=0)
    membershipLevel: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        v = v.upper()
        if v not in MEMBER_ROLES:
            raise ValueError(f"role must be one of {', '.join(MEMBER_ROLES)}")
        return v


class MemberUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    totalSpent: Optional[int] = Field(None, ge=0)
    balance: Optional[int] = Field(None, ge=0)
    membershipLevel: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class RoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        v = v.upper()
        if v not in MEMBER_ROLES:
            raise ValueError(f"role must be one of {', '.join(MEMBER_ROLES)}")
        return v


class StatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        v = v.upper()
        if v not in USER_STATUSES:
            raise ValueError(f"status must be one of {', '.join(USER_STATUSES)}")
        return v


class PasswordReset(BaseModel):
    password: str = Field(min_length=8)


class PrimaryArtistUpdate(BaseModel):
    artistId: Optional[int] = None


class AmountRequest(BaseModel):
    amount: int = Field(gt=0)
    note: Optional[str] = Field(None, max_length=TEXT_MAX_LENGTH)


class TopupHistoryResponse(BaseModel):
    id: int
    amount: int
    type: str
    note: Optional[str] = None
    operatorId: Optional[int] = None
    operatorName: Optional[str] = None
    createdAt: Optional[datetime] = None


class MemberResponse(BaseModel):
    id: int
    userId: int
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    role: str
    status: str
    branchId: Optional[int] = None
    branchName: Optional[str] = None
    totalSpent: int
    balance: int
    membershipLevel: Optional[str] = None
    primaryArtistId: Optional[int] = None
    createdAt: Optional[datetime] = None


class MemberListStats(BaseModel):
    totalMembers: int
    adminCount: int
    memberCount: int


class MemberListResponse(BaseModel):
    data: list[MemberResponse]
    total: int
    page: int
    pageSize: int
    stats: MemberListStats


def topup_to_response(t) -> TopupHistoryResponse:
    return TopupHistoryResponse(
        id=t.id,
        amount=t.amount,
        type=t.type,
        note=t.note,
        operatorId=t.operator_id,
        operatorName=t.operator.name if t.operator else None,
        createdAt=t.created_at,
    )


def member_to_response(m) -> MemberResponse:
    user = m.user
    return MemberResponse(
        id=m.id,
        userId=m.user_id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        status=user.status,
        branchId=user.branch_id,
        branchName=user.branch.name if user.branch else None,
        totalSpent=m.total_spent,
        balance=m.balance,
        membershipLevel=m.membership_level,
        primaryArtistId=m.primary_artist_id,
        createdAt=m.created_at,
    )
