from typing import Optional
from fastapi import Depends
from sqlmodel import Session, select, func
from models import Customer, Job, Product, User
from core.pricing import applicable_price, default_contractor_price
from core.roles import Capability, has_capability
from security.oauth2 import get_current_user


# -------------------------------
# Dependency: Filter jobs by current user
# -------------------------------
def filter_jobs_by_user(current_user: User = Depends(get_current_user)):
    """
    Returns a function that limits a job query to the driver's own jobs.
    Office and admin see all jobs.
    """
    def filter_stmt(stmt):
        if not has_capability(current_user.role, Capability.VIEW_ALL_JOBS):
            stmt = stmt.where(Job.assigned_driver == current_user.id)
        return stmt
    return filter_stmt


# -------------------------------
# To return a customer with its delivery count
# -------------------------------
def add_delivery_count(db: Session, customer: Customer) -> dict:
    count = db.exec(select(func.count()).select_from(Job).where(Job.customer_id == customer.id)).one()
    data = customer.model_dump()
    data["total_deliveries"] = count
    return data


# -------------------------------
# To return a product with its resolved price
# -------------------------------
def add_pricing(product: Product, contractor: Optional[bool] = None) -> dict:
    """
    Product as the catalog sees it. With ``contractor`` unset the current
    price is retail; with a customer tier it is that customer's price.
    """
    data = product.model_dump()
    retail = product.retail_price or 0.0
    contractor_price = product.contractor_price or default_contractor_price(retail) or 0.0
    data["retail_price"] = retail
    data["contractor_price"] = contractor_price

    if contractor is None:
        data["current_price"] = retail
        data["price_type"] = "retail"
    else:
        price, price_type = applicable_price(
            {"retail_price": retail, "contractor_price": contractor_price}, contractor
        )
        data["current_price"] = price
        data["price_type"] = price_type
    return data


# -------------------------------
# To return a job with its product lines
# -------------------------------
def job_with_products(job: Job) -> dict:
    data = job.model_dump()
    data["products"] = [p.model_dump() for p in job.products]
    return data
