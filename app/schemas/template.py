# app/schemas/template.py
from datetime import datetime
from typing import Optional, List, Literal

from pydantic import BaseModel, Field, field_validator, ConfigDict

TemplateFieldType = Literal["text", "date", "checkbox", "signature"]


class TemplateField(BaseModel):
    # field-specific extras (placeholder, minLength, minDate, text, ...) are kept as-is
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    type: TemplateFieldType
    label: str = Field(..., min_length=1)
    required: bool = False
    helpText: Optional[str] = None


class TemplateSchema(BaseModel):
    fields: List[TemplateField] = Field(default_factory=list)

    @field_validator("fields")
    @classmethod
    def _unique_ids(cls, v: List[TemplateField]):
        seen = set()
        for f in v:
            if f.id in seen:
                raise ValueError(f"Campo duplicato: {f.id}")
            seen.add(f.id)
        return v


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    schema_: TemplateSchema = Field(default_factory=TemplateSchema, alias="schema")
    is_default: bool = False
    is_active: bool = True

    model_config = ConfigDict(populate_by_name=True)


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    schema_: Optional[TemplateSchema] = Field(default=None, alias="schema")
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(populate_by_name=True)


class TemplateOut(BaseModel):
    id: int
    studio_id: int
    name: str
    slug: str
    description: Optional[str] = None
    schema_: dict = Field(alias="schema")
    is_default: bool
    is_active: bool
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
