from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_phone


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class RefreshRequest(BaseModel):
    refreshToken: str


class ChangePasswordRequest(BaseModel):
    oldPassword: str
    newPassword: str = Field(min_length=8, max_length=128)


class BootstrapBossRequest(BaseModel):
    secret: str
    email: str
    password: str = Field(min_length=8, max_length=128)
    name: str = "Boss"

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class TokenResponse(BaseModel):
    accessToken: str
    refreshToken: str


class BranchSummary(BaseModel):
    id: int
    name: str


class MeResponse(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: str
    branchId: Optional[int] = None
    branch: Optional[BranchSummary] = None
    phone: Optional[str] = None
    createdAt: Optional[datetime] = None
    lastLogin: Optional[datetime] = None
