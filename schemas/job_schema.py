# schemas/job_schema.py
from datetime import date, datetime
from typing import List, Literal, Optional
from sqlmodel import SQLModel
from pydantic import Field, field_validator

from schemas.product_schema import Unit

JobStatusValue = Literal["to_be_scheduled", "scheduled", "in_progress", "completed", "cancelled"]
PriceTypeValue = Literal["retail", "contractor"]


def _parse_date(v):
    if v in (None, ""):
        return None
    if isinstance(v, str):
        try:
            return datetime.strptime(v[:10], "%Y-%m-%d").date()
        except ValueError:
            raise ValueError("delivery_date must be in YYYY-MM-DD format")
    return v


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


def _driver_id(v):
    if v in (None, ""):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


class JobProductSchema(SQLModel):
    product_name: str = Field(min_length=1)
    quantity: float = Field(gt=0)
    unit: Unit = "yards"
    # absent when the delivery is billed as a flat collection amount
    unit_price: Optional[float] = Field(default=None, ge=0)
    total_price: Optional[float] = Field(default=None, ge=0)
    price_type: Optional[PriceTypeValue] = None

    @field_validator("product_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class JobProductReadSchema(SQLModel):
    product_name: str
    quantity: float
    unit: str
    unit_price: float = 0
    total_price: float = 0
    price_type: str = "retail"


class JobCreateSchema(SQLModel):
    customer_id: Optional[int] = None
    customer_name: str = ""
    customer_phone: Optional[str] = None
    address: str = ""
    delivery_date: Optional[date] = None
    special_instructions: Optional[str] = None
    assigned_driver: Optional[int] = None
    truck: Optional[str] = None
    status: JobStatusValue = "scheduled"
    paid: bool = False
    products: List[JobProductSchema] = []
    total_amount: Optional[float] = Field(default=None, ge=0)
    contractor_discount: bool = False

    @field_validator("delivery_date", mode="before")
    @classmethod
    def validate_delivery_date(cls, v):
        return _parse_date(v)

    @field_validator("customer_phone", "special_instructions", "truck", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("assigned_driver", mode="before")
    @classmethod
    def coerce_driver(cls, v):
        return _driver_id(v)

    @field_validator("customer_name", "address", mode="before")
    @classmethod
    def strip_strings(cls, v):
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v


# Update schema: all editable fields optional
class JobUpdateSchema(SQLModel):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    address: Optional[str] = None
    delivery_date: Optional[date] = None
    special_instructions: Optional[str] = None
    assigned_driver: Optional[int] = None
    truck: Optional[str] = None
    status: Optional[JobStatusValue] = None
    paid: Optional[bool] = None
    driver_notes: Optional[str] = None
    payment_received: Optional[float] = None
    products: Optional[List[JobProductSchema]] = None
    total_amount: Optional[float] = Field(default=None, ge=0)
    contractor_discount: Optional[bool] = None

    @field_validator("delivery_date", mode="before")
    @classmethod
    def validate_delivery_date(cls, v):
        return _parse_date(v)

    @field_validator("customer_phone", "special_instructions", "truck", "driver_notes", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("assigned_driver", mode="before")
    @classmethod
    def coerce_driver(cls, v):
        return _driver_id(v)


class JobReadSchema(SQLModel):
    id: int
    customer_id: Optional[int] = None
    customer_name: str
    customer_phone: Optional[str] = None
    address: str
    delivery_date: Optional[date] = None
    special_instructions: Optional[str] = None
    assigned_driver: Optional[int] = None
    truck: Optional[str] = None
    status: str
    paid: bool = False
    driver_notes: Optional[str] = None
    payment_received: float = 0
    total_amount: float = 0
    contractor_discount: bool = False
    created_by: Optional[int] = None
    products: List[JobProductReadSchema] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
