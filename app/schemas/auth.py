# app/schemas/auth.py
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class SetPasswordRequest(BaseModel):
    password: str = Field(min_length=8)
    confirm_password: Optional[str] = None

