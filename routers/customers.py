import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy import or_
from sqlmodel import Session, select

from database import get_session
from models import Customer, Job, User
from schemas.customer_schema import CustomerCreateSchema, CustomerReadSchema, CustomerUpdateSchema
from security.permissions import require_capability
from utils import add_delivery_count
from core.roles import Capability

logger = logging.getLogger(__name__)

office_or_admin = require_capability(Capability.MANAGE_CUSTOMERS, "Office or admin role required")

router = APIRouter(
    prefix="/customers",
    tags=["Customer"],
    dependencies=[Depends(office_or_admin)]
)


def _ordered(stmt):
    # contractors first, then alphabetical
    return stmt.order_by(Customer.contractor.desc(), Customer.name.asc())


def _get_customer_or_404(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


# -------------------------------
# Get list of customers
# -------------------------------
@router.get("", response_model=list[CustomerReadSchema], status_code=status.HTTP_200_OK)
def get_customers(db: Session = Depends(get_session)):
    try:
        customers = db.exec(_ordered(select(Customer))).all()
        return [add_delivery_count(db, c) for c in customers]
    except Exception as e:
        logger.exception("Failed to fetch customers")
        raise HTTPException(status_code=500, detail=f"Failed to fetch customers: {str(e)}")


# -------------------------------
# Search customers by name, phone or email
# -------------------------------
@router.get("/search", response_model=list[CustomerReadSchema], status_code=status.HTTP_200_OK)
def search_customers(
    q: str = Query(..., min_length=1, description="Name, phone or email fragment"),
    db: Session = Depends(get_session),
):
    term = q.strip()
    if not term:
        raise HTTPException(status_code=400, detail="Search query is required")
    try:
        pattern = f"%{term}%"
        stmt = select(Customer).where(or_(
            Customer.name.ilike(pattern),
            Customer.phone.ilike(pattern),
            Customer.email.ilike(pattern),
        ))
        customers = db.exec(_ordered(stmt).limit(10)).all()
        return [add_delivery_count(db, c) for c in customers]
    except Exception as e:
        logger.exception("Customer search failed for %r", term)
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")


@router.get("/{customer_id}", response_model=CustomerReadSchema, status_code=status.HTTP_200_OK)
def get_customer(
    customer_id: int = Path(...),
    db: Session = Depends(get_session),
):
    return add_delivery_count(db, _get_customer_or_404(db, customer_id))


# -------------------------------
# Create customer
# -------------------------------
@router.post("", response_model=CustomerReadSchema, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreateSchema,
    db: Session = Depends(get_session),
):
    try:
        if payload.phone:
            duplicate = db.exec(
                select(Customer).where(Customer.name == payload.name, Customer.phone == payload.phone)
            ).first()
            if duplicate:
                raise HTTPException(status_code=400, detail="Customer with this name and phone number already exists")

        customer = Customer(
            name=payload.name,
            phone=payload.phone,
            email=payload.email,
            addresses=[a.model_dump() for a in payload.addresses],
            notes=payload.notes,
            contractor=payload.contractor,
        )

        db.add(customer)
        db.commit()
        db.refresh(customer)
        logger.info("Customer %s created (%s)", customer.id, customer.name)
        return add_delivery_count(db, customer)

    except HTTPException:
        raise
    except Exception:
        db.rollback()
        logger.exception("Failed to create customer %r", payload.name)
        raise HTTPException(status_code=500, detail="Failed to create customer")


# -------------------------------
# Update customer
# -------------------------------
@router.put("/{customer_id}", response_model=CustomerReadSchema, status_code=status.HTTP_200_OK)
def update_customer(
    payload: CustomerUpdateSchema,
    customer_id: int = Path(...),
    db: Session = Depends(get_session),
):
    try:
        customer = _get_customer_or_404(db, customer_id)

        update_data = payload.model_dump(exclude_unset=True)
        if not update_data:
            raise HTTPException(status_code=400, detail="No valid fields to update")
        for required in ("name", "addresses", "contractor"):
            if required in update_data and update_data[required] is None:
                raise HTTPException(status_code=400, detail=f"{required} cannot be empty")

        for key, value in update_data.items():
            setattr(customer, key, value)
        customer.updated_at = datetime.now(timezone.utc)

        db.add(customer)
        db.commit()
        db.refresh(customer)
        logger.info("Customer %s updated", customer_id)
        return add_delivery_count(db, customer)

    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Failed to update customer %s", customer_id)
        raise HTTPException(status_code=500, detail=f"Failed to update customer: {str(e)}")


@router.delete("/{customer_id}", status_code=status.HTTP_200_OK)
def delete_customer(
    customer_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(office_or_admin),
):
    customer = _get_customer_or_404(db, customer_id)
    try:
        # keep the job history; jobs carry their own customer name and phone
        for job in db.exec(select(Job).where(Job.customer_id == customer_id)).all():
            job.customer_id = None
            db.add(job)
        db.delete(customer)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Failed to delete customer %s", customer_id)
        raise HTTPException(status_code=500, detail=f"Failed to delete customer: {str(e)}")

    logger.info("Customer %s deleted by %s", customer_id, current_user.id)
    return {"message": "Customer deleted successfully"}
