# app/schemas/studio.py
import re
from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, EmailStr, Field, field_validator

_PIVA_RE = re.compile(r"^\d{11}$")
_CF_RE = re.compile(r"^[A-Z]{6}\d{2}[A-Z]\d{2}[A-Z]\d{3}[A-Z]$")
_URL_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class StudioBase(BaseModel):
    email: EmailStr
    phone: Optional[str] = None
    website: Optional[str] = None

    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_province: Optional[str] = None
    address_postal_code: Optional[str] = None
    address_country: str = Field(default="IT", min_length=2, max_length=2)

    partita_iva: Optional[str] = None
    codice_fiscale: Optional[str] = None
    business_name: Optional[str] = None

    settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "phone",
        "website",
        "address_street",
        "address_city",
        "address_province",
        "address_postal_code",
        "partita_iva",
        "codice_fiscale",
        "business_name",
        mode="before",
    )
    @classmethod
    def _strip(cls, v):
        return _blank_to_none(v)

    @field_validator("address_country", mode="before")
    @classmethod
    def _country(cls, v):
        v = _blank_to_none(v)
        return (v or "IT").upper()

    @field_validator("website")
    @classmethod
    def _website(cls, v):
        if v is not None and not _URL_RE.match(v):
            raise ValueError("URL non valido")
        return v

    @field_validator("partita_iva")
    @classmethod
    def _piva(cls, v):
        if v is not None and not _PIVA_RE.match(v):
            raise ValueError("La Partita IVA deve essere di 11 cifre")
        return v

    @field_validator("codice_fiscale")
    @classmethod
    def _cf(cls, v):
        if v is not None and not _CF_RE.match(v):
            raise ValueError(
                "Il Codice Fiscale deve essere nel formato corretto (es. RSSMRA80A01H501U)"
            )
        return v


class StudioCreate(StudioBase):
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        if isinstance(v, str):
            v = v.strip()
        if not v:
            raise ValueError("Il nome dello studio è obbligatorio")
        return v


class StudioUpdate(BaseModel):
    # all optional; the route applies only fields that were sent
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_province: Optional[str] = None
    address_postal_code: Optional[str] = None
    address_country: Optional[str] = Field(default=None, min_length=2, max_length=2)
    partita_iva: Optional[str] = None
    codice_fiscale: Optional[str] = None
    business_name: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None

    @field_validator("partita_iva")
    @classmethod
    def _piva(cls, v):
        if v and not _PIVA_RE.match(v):
            raise ValueError("La Partita IVA deve essere di 11 cifre")
        return v

    @field_validator("codice_fiscale")
    @classmethod
    def _cf(cls, v):
        if v and not _CF_RE.match(v):
            raise ValueError(
                "Il Codice Fiscale deve essere nel formato corretto (es. RSSMRA80A01H501U)"
            )
        return v


class StudioOut(StudioBase):
    id: int
    name: str
    slug: str
    owner_id: str
    # stored values are already validated; output must not re-fail on legacy rows
    email: str
    website: Optional[str] = None
    partita_iva: Optional[str] = None
    codice_fiscale: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudioSummary(BaseModel):
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True
