# app/schemas/form.py
from datetime import datetime
from typing import Optional, List, Dict, Any, Literal

from pydantic import BaseModel, EmailStr, Field

FormStatus = Literal["draft", "completed", "signed", "archived"]


class SignatureData(BaseModel):
    fieldId: str
    imageData: str  # base64 image
    timestamp: str


class FormCreate(BaseModel):
    template_id: int = Field(ge=1)
    client_name: str = Field(..., min_length=1, max_length=255)
    client_email: Optional[EmailStr] = None
    client_phone: Optional[str] = None
    client_fiscal_code: Optional[str] = None
    form_data: Dict[str, Any] = Field(default_factory=dict)
    signatures: List[SignatureData] = Field(default_factory=list)
    status: FormStatus = "draft"
    form_number: Optional[str] = None
    notes: Optional[str] = None


class FormUpdate(BaseModel):
    client_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    client_email: Optional[EmailStr] = None
    client_phone: Optional[str] = None
    client_fiscal_code: Optional[str] = None
    form_data: Optional[Dict[str, Any]] = None
    signatures: Optional[List[SignatureData]] = None
    status: Optional[FormStatus] = None
    form_number: Optional[str] = None
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None


class FormOut(BaseModel):
    id: int
    studio_id: int
    template_id: int
    client_name: str
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    client_fiscal_code: Optional[str] = None
    form_data: Dict[str, Any]
    signatures: List[Dict[str, Any]]
    status: str
    form_number: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
