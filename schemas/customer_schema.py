# schemas/customer_schema.py
from datetime import datetime
from typing import List, Optional
from sqlmodel import SQLModel
from pydantic import EmailStr, field_validator


class AddressEntry(SQLModel):
    address: str
    notes: Optional[str] = None

    @field_validator("address", mode="before")
    @classmethod
    def strip_address(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def empty_notes_to_none(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        if isinstance(v, str):
            return v.strip()
        return v


def _clean_addresses(v):
    if v is None:
        return v
    cleaned = [a for a in v if (a.address if isinstance(a, AddressEntry) else (a or {}).get("address", "")).strip()]
    if not cleaned:
        raise ValueError("At least one address is required")
    return cleaned


class CustomerCreateSchema(SQLModel):
    name: str
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    addresses: List[AddressEntry]
    notes: Optional[str] = None
    contractor: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            v = v.strip()
        if not v:
            raise ValueError("Customer name is required")
        return v

    @field_validator("email", "phone", "notes", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        if v is None:
            return None
        if isinstance(v, str) and v.strip() == "":
            return None
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("addresses", mode="before")
    @classmethod
    def require_address(cls, v):
        return _clean_addresses(v)


class CustomerUpdateSchema(SQLModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    addresses: Optional[List[AddressEntry]] = None
    notes: Optional[str] = None
    contractor: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Customer name cannot be empty")
        return v

    @field_validator("email", "phone", "notes", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("addresses", mode="before")
    @classmethod
    def require_address(cls, v):
        return _clean_addresses(v)


class CustomerReadSchema(SQLModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    addresses: List[AddressEntry] = []
    notes: Optional[str] = None
    contractor: bool = False
    total_deliveries: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
