# app/schemas/common.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ActionResult(BaseModel):
    """Result shape of form-submission endpoints."""

    success: bool
    error: Optional[str] = None
    field_errors: Dict[str, str] = Field(default_factory=dict)
    data: Optional[Any] = None
