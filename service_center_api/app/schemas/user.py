"""
Pydantic models for user accounts and authentication.

A user account is a login.  It carries a role id (see ``core.enums.Role``)
and may point to a staff directory entry through ``staff_id``.  Passwords
are accepted on input only and never returned.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, examples=["manager"])
    full_name: Optional[str] = Field(None, examples=["Priya Shankar"])
    role_id: int = Field(..., ge=1, le=5, examples=[2])
    staff_id: Optional[int] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=6, examples=["manager123"])


class UserUpdate(BaseModel):
    """Fields an administrator may change on an existing account."""

    full_name: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    role_id: Optional[int] = Field(None, ge=1, le=5)
    staff_id: Optional[int] = None
    disabled: Optional[bool] = None


class UserRead(UserBase):
    id: int
    role: Optional[str] = None
    disabled: bool = False
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class LoginRequest(BaseModel):
    username: str = Field(..., examples=["admin"])
    password: str = Field(..., examples=["admin123"])


class CurrentUser(BaseModel):
    """The authenticated user as returned by ``/auth/me``."""

    user_id: int
    username: str
    full_name: Optional[str] = None
    role_id: int
    role: Optional[str] = None
    staff_id: Optional[int] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: str
    user: CurrentUser
