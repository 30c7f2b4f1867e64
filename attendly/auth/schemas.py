"""Auth Pydantic schemas for request / response validation."""


from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from attendly.common.constants import MIN_PASSWORD_LENGTH


# ── Requests ────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required.")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def _normalise_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return v.strip().lower()


# ── Embedded / Shared ──────────────────────────────────────────────

class CallerContext(BaseModel):
    """Identity of the authenticated caller, resolved from the bearer token."""

    user_id: int
    is_admin: bool = False


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    is_admin: bool
    created_at: datetime


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
