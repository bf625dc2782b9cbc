"""
SpendTrack Backend — Account Schemas
======================================

What:  Request/response models for registration and login.
"""

import uuid

from pydantic import BaseModel, Field, field_validator


class RegisterRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=6, max_length=72)
    confirm_password: str
    monthly_budget: float = Field(default=0.0, ge=0)
    preferred_currency: str = Field(default="USD", min_length=1, max_length=10)
    notification_pref: bool = False

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Lower-cases the email and requires an '@' with text on both sides."""
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or not domain:
            raise ValueError("Invalid email address")
        return v

    @field_validator("preferred_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class MessageResponse(BaseModel):
    message: str


class UserSummary(BaseModel):
    """Public view of an account returned with the login token."""
    id: uuid.UUID
    full_name: str
    email: str
    monthly_budget: float
    preferred_currency: str

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    token: str = Field(description="Bearer access token (JWT)")
    token_type: str = "bearer"
    user: UserSummary

