# app/schemas/user_profile.py
from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel

UserRole = Literal["studio_admin", "studio_member"]
UserStatus = Literal["pending", "active", "inactive"]


class ProfileCreate(BaseModel):
    user_id: str
    role: UserRole
    studio_id: Optional[int] = None
    status: UserStatus = "active"
    invited_by: Optional[str] = None
    invited_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    # partial update: only fields explicitly set are written (exclude_unset)
    role: Optional[UserRole] = None
    studio_id: Optional[int] = None
    status: Optional[UserStatus] = None
    accepted_at: Optional[datetime] = None


class ProfileOut(BaseModel):
    user_id: str
    role: str
    studio_id: Optional[int] = None
    status: str
    invited_by: Optional[str] = None
    invited_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberOut(ProfileOut):
    email: Optional[str] = None
    full_name: Optional[str] = None
