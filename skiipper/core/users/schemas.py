"""Typed schemas for user IO."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from skiipper.core.users.models import User


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserResponse(BaseModel):
    # Persisted emails are not re-validated on the way out.
    id: int
    email: str
    full_name: Optional[str] = None
    is_active: bool
    is_admin: bool = False
    role_codes: List[str] = []
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def serialize_user(user: "User", roles: Optional[List[str]] = None) -> UserResponse:
    """Build a UserResponse; ``roles`` overrides the stored role codes (token claims)."""
    role_codes = list(roles) if roles is not None else user.role_codes
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        is_active=user.is_active,
        is_admin="admin" in role_codes,
        role_codes=role_codes,
        created_at=user.created_at,
    )
