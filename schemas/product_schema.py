from datetime import datetime
from typing import Literal, Optional
from sqlmodel import SQLModel
from pydantic import Field, field_validator

Unit = Literal["yards", "tons", "bags", "bales", "each"]


def _price(v):
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return None
    return v


class ProductCreateSchema(SQLModel):
    name: str
    unit: Unit
    retail_price: Optional[float] = Field(default=None, ge=0)
    contractor_price: Optional[float] = Field(default=None, ge=0)
    active: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            v = v.strip()
        if not v:
            raise ValueError("Product name is required")
        return v

    @field_validator("unit", mode="before")
    @classmethod
    def strip_unit(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("retail_price", "contractor_price", mode="before")
    @classmethod
    def blank_price_to_none(cls, v):
        return _price(v)


class ProductUpdateSchema(SQLModel):
    name: Optional[str] = None
    unit: Optional[Unit] = None
    retail_price: Optional[float] = Field(default=None, ge=0)
    contractor_price: Optional[float] = Field(default=None, ge=0)
    active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Product name cannot be empty")
        return v

    @field_validator("unit", mode="before")
    @classmethod
    def strip_unit(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("retail_price", "contractor_price", mode="before")
    @classmethod
    def blank_price_to_none(cls, v):
        return _price(v)


class ProductReadSchema(SQLModel):
    id: int
    name: str
    unit: str
    retail_price: float = 0
    contractor_price: float = 0
    current_price: float = 0
    price_type: str = "retail"
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
