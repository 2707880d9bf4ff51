"""
Profile Field Schemas - Request/Response models for the field registry
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
import re

from abiboard.models.profile_field import FieldType


FIELD_KEY_PATTERN = re.compile(r"^[a-z][a-zA-Z0-9]*$")


def clean_label(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Die Bezeichnung darf nicht leer sein.")
    return v


# ============== Field Definition Schemas ==============

class ProfileFieldCreate(BaseModel):
    """Schema for creating a new profile field (Admin only)"""
    key: str = Field(..., min_length=1, max_length=50, description="Stable identifier, camelCase")
    type: FieldType
    label: str = Field(..., min_length=1, max_length=100)
    placeholder: Optional[str] = Field(None, max_length=200)
    max_length: Optional[int] = Field(None, gt=0, description="Character limit for text fields")
    max_files: Optional[int] = Field(None, ge=1, le=10, description="Image limit for multi-image fields")
    rows: Optional[int] = Field(None, ge=1, le=20, description="Height of textarea fields")
    required: bool = False
    order: Optional[int] = Field(None, ge=0, description="Appended after the last field when omitted")

    @field_validator('key')
    @classmethod
    def validate_key(cls, v):
        if not FIELD_KEY_PATTERN.match(v):
            raise ValueError(
                "Der Schlüssel muss mit einem Kleinbuchstaben beginnen und darf nur Buchstaben und Ziffern enthalten."
            )
        return v

    @field_validator('label')
    @classmethod
    def strip_label(cls, v):
        return clean_label(v)


class ProfileFieldUpdate(BaseModel):
    """Schema for updating a profile field; key and type are fixed after creation"""
    label: Optional[str] = Field(None, min_length=1, max_length=100)
    placeholder: Optional[str] = Field(None, max_length=200)
    max_length: Optional[int] = Field(None, gt=0)
    max_files: Optional[int] = Field(None, ge=1, le=10)
    rows: Optional[int] = Field(None, ge=1, le=20)
    required: Optional[bool] = None
    order: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None

    @field_validator('label')
    @classmethod
    def strip_label(cls, v):
        return clean_label(v) if v is not None else v

    @model_validator(mode='before')
    @classmethod
    def reject_immutable_attributes(cls, data):
        if isinstance(data, dict):
            if "type" in data:
                raise ValueError("Der Feldtyp kann nach dem Erstellen nicht geändert werden.")
            if "key" in data:
                raise ValueError("Der Schlüssel eines Feldes kann nicht geändert werden.")
        return data


class ProfileFieldResponse(BaseModel):
    """Schema for profile field response"""
    id: str
    key: str
    type: FieldType
    label: str
    placeholder: Optional[str] = None
    max_length: Optional[int] = None
    max_files: Optional[int] = None
    rows: Optional[int] = None
    required: bool
    order: int
    active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileFieldListResponse(BaseModel):
    fields: List[ProfileFieldResponse]
    total: int


# ============== Reorder Schemas ==============

class FieldOrder(BaseModel):
    id: str
    order: int = Field(..., ge=0)


class ProfileFieldReorder(BaseModel):
    """Bulk reorder, applied as one batch"""
    field_orders: List[FieldOrder] = Field(..., min_length=1)
