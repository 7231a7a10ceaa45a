# app/schemas/archived_pdf.py
from datetime import date, datetime
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, ConfigDict


class ArchivedPDFCreate(BaseModel):
    form_id: int = Field(ge=1)
    template_id: int = Field(ge=1)
    file_path: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    file_size: int = Field(default=0, ge=0)
    file_hash: Optional[str] = None
    client_name: str = Field(..., min_length=1)
    client_email: Optional[str] = None
    client_fiscal_code: Optional[str] = None
    form_date: date
    form_type: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_encrypted: bool = False


class ArchivedPDFUpdate(BaseModel):
    # only metadata and encryption flag are mutable
    metadata: Optional[Dict[str, Any]] = None
    is_encrypted: Optional[bool] = None


class ArchivedPDFOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    studio_id: int
    form_id: int
    template_id: int
    file_path: str
    file_name: str
    file_size: int
    file_hash: Optional[str] = None
    mime_type: str
    client_name: str
    client_email: Optional[str] = None
    client_fiscal_code: Optional[str] = None
    form_date: date
    form_type: str
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="pdf_metadata")
    is_encrypted: bool
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None


class ArchivedPDFPage(BaseModel):
    data: List[ArchivedPDFOut]
    count: int


class StorageStats(BaseModel):
    total_files: int
    total_size_bytes: int
    oldest_file: Optional[datetime] = None
    newest_file: Optional[datetime] = None
