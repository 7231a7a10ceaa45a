# app/schemas/invitation.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.user_profile import UserRole
from app.schemas.studio import StudioSummary


class InvitationCreate(BaseModel):
    email: EmailStr
    role: UserRole = "studio_member"
    name: Optional[str] = Field(default=None, max_length=255)
    message: Optional[str] = Field(default=None, max_length=2000)


class InvitationOut(BaseModel):
    id: int
    studio_id: int
    invited_email: str
    invited_by: str
    role: str
    status: str
    message: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InviterOut(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class InvitationDetails(InvitationOut):
    studio: Optional[StudioSummary] = None
    inviter: Optional[InviterOut] = None
