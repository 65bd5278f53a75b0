"""Stakeholder request/response schemas."""

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    account_type: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    region: str = Field("", max_length=255)
    password: str = Field(..., min_length=1, max_length=255)
    capacity: int | None = Field(None, ge=0)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)


class StakeholderIdentity(BaseModel):
    """Resolved caller identity; safe to cache and to return to clients."""

    id: str
    name: str
    email: str
    region: str = ""
    capacity: int = -1

    model_config = {"from_attributes": True}

    @property
    def is_charity(self) -> bool:
        return self.id.startswith("c")
