# models.py
from datetime import date, datetime, timezone
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import JSON, Column, UniqueConstraint


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False)
    email: str = Field(index=True, nullable=False)
    password_hash: str = Field(nullable=False)
    role: str = Field(default="driver", description="Role: admin | office | driver")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Customer(SQLModel, table=True):
    __tablename__ = "customers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False)
    phone: Optional[str] = Field(default=None, nullable=True)
    email: Optional[str] = Field(default=None, nullable=True)
    # [{"address": "...", "notes": "..."}]
    addresses: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    notes: Optional[str] = Field(default=None, nullable=True)
    contractor: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Product(SQLModel, table=True):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("name", name="uq_products_name"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False)
    unit: str = Field(nullable=False, description="yards | tons | bags | bales | each")
    retail_price: Optional[float] = Field(default=None, nullable=True)
    contractor_price: Optional[float] = Field(default=None, nullable=True)
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Job(SQLModel, table=True):
    __tablename__ = "jobs"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: Optional[int] = Field(default=None, foreign_key="customers.id", nullable=True)
    customer_name: str = Field(nullable=False)
    customer_phone: Optional[str] = Field(default=None, nullable=True)
    address: str = Field(nullable=False)
    # None while the job is waiting to be scheduled
    delivery_date: Optional[date] = Field(default=None, index=True, nullable=True)
    special_instructions: Optional[str] = Field(default=None, nullable=True)
    paid: bool = Field(default=False)
    status: str = Field(default="scheduled", index=True)
    driver_notes: Optional[str] = Field(default=None, nullable=True)
    payment_received: float = Field(default=0)
    total_amount: float = Field(default=0)
    contractor_discount: bool = Field(default=False)
    created_by: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    assigned_driver: Optional[int] = Field(default=None, foreign_key="users.id", index=True, nullable=True)
    truck: Optional[str] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    products: List["JobProduct"] = Relationship(
        back_populates="job",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "JobProduct.position"},
    )


class JobProduct(SQLModel, table=True):
    __tablename__ = "job_products"

    id: Optional[int] = Field(default=None, primary_key=True)
    job_id: Optional[int] = Field(default=None, foreign_key="jobs.id", index=True)
    position: int = Field(default=0)
    product_name: str = Field(nullable=False)
    quantity: float = Field(nullable=False)
    unit: str = Field(nullable=False)
    unit_price: float = Field(default=0)
    total_price: float = Field(default=0)
    price_type: str = Field(default="retail", description="retail | contractor")
    created_at: datetime = Field(default_factory=utcnow)

    job: Optional[Job] = Relationship(back_populates="products")
