import logging
from datetime import date, datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlmodel import Session, select

from database import get_session
from models import Customer, Job, JobProduct, User
from schemas.job_schema import JobCreateSchema, JobProductSchema, JobReadSchema, JobStatusValue, JobUpdateSchema
from security.oauth2 import get_current_user
from security.permissions import require_capability, user_can
from utils import filter_jobs_by_user, job_with_products
from core.errors import ServiceError
from core.job_builder import JobForm, ProductLine, validate_job_form
from core.job_state import (
    PAYMENT_TOLERANCE,
    JobStatus,
    can_complete,
    check_payment,
    check_schedule_fields,
    check_transition,
    is_settled,
)
from core.roles import Capability, Role

logger = logging.getLogger(__name__)

DRIVER_FIELDS = {"status", "driver_notes", "payment_received"}
DRIVER_STATUSES = {JobStatus.IN_PROGRESS, JobStatus.COMPLETED}

router = APIRouter(
    prefix="/jobs",
    tags=["Job"],
    dependencies=[Depends(get_current_user)]
)


def _get_job_or_404(db: Session, job_id: int) -> Job:
    job = db.get(Job, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


def _check_driver(db: Session, driver_id: Optional[int]) -> None:
    if driver_id is None:
        return
    driver = db.get(User, driver_id)
    if not driver or driver.role != Role.DRIVER.value:
        raise HTTPException(status_code=400, detail="Assigned driver not found")


def _product_rows(lines: List[JobProductSchema]) -> List[JobProduct]:
    return [
        JobProduct(
            position=i,
            product_name=line.product_name,
            quantity=line.quantity,
            unit=line.unit,
            unit_price=line.unit_price or 0.0,
            total_price=line.total_price if line.total_price is not None else (line.unit_price or 0.0) * line.quantity,
            price_type=line.price_type or "retail",
        )
        for i, line in enumerate(lines)
    ]


def _lines_total(lines: List[JobProductSchema]) -> Optional[float]:
    """Sum of line totals, or None when the lines carry no prices (flat collection amount)."""
    if not any(line.total_price is not None or line.unit_price is not None for line in lines):
        return None
    return sum(row.total_price for row in _product_rows(lines))


def _stored_lines_total(job: Job) -> Optional[float]:
    total = sum(p.total_price or 0.0 for p in job.products)
    return total if total > 0 else None


def _resolve_total(lines_total: Optional[float], requested: Optional[float]) -> Optional[float]:
    """Priced lines decide the total; a typed amount is only taken for unpriced lines."""
    if lines_total is None:
        return requested
    if requested is not None and abs(requested - lines_total) > PAYMENT_TOLERANCE:
        raise HTTPException(status_code=400, detail="Total amount does not match product prices")
    return lines_total


def _validate_form_fields(customer_name, address, delivery_date, to_be_scheduled, lines) -> None:
    form = JobForm(
        customer_name=customer_name or "",
        address=address or "",
        delivery_date=delivery_date.isoformat() if delivery_date else "",
        products=[ProductLine(product_name=line.product_name, quantity=line.quantity) for line in lines],
    )
    validate_job_form(form, to_be_scheduled)


# -------------------------------
# Get jobs (drivers only see their own)
# -------------------------------
@router.get("", response_model=list[JobReadSchema], status_code=status.HTTP_200_OK)
def get_jobs(
    date_: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD"),
    status_: Optional[JobStatusValue] = Query(None, alias="status"),
    db: Session = Depends(get_session),
    filter_stmt=Depends(filter_jobs_by_user),
):
    try:
        stmt = filter_stmt(select(Job))
        if date_:
            stmt = stmt.where(Job.delivery_date == date_)
        if status_:
            stmt = stmt.where(Job.status == status_)
        stmt = stmt.order_by(Job.delivery_date.asc(), Job.created_at.asc())

        jobs = db.exec(stmt).all()
        return [job_with_products(j) for j in jobs]
    except Exception as e:
        logger.exception("Failed to fetch jobs")
        raise HTTPException(status_code=500, detail=f"Failed to fetch jobs: {str(e)}")


@router.get("/{job_id}", response_model=JobReadSchema, status_code=status.HTTP_200_OK)
def get_job(
    job_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    job = _get_job_or_404(db, job_id)
    if not user_can(current_user, Capability.VIEW_ALL_JOBS) and job.assigned_driver != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return job_with_products(job)


# -------------------------------
# Create job
# -------------------------------
@router.post("", response_model=JobReadSchema, status_code=status.HTTP_201_CREATED)
def create_job(
    payload: JobCreateSchema,
    db: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.MANAGE_JOBS, "Office or admin role required")),
):
    to_be_scheduled = payload.status == JobStatus.TO_BE_SCHEDULED.value
    if payload.status not in (JobStatus.TO_BE_SCHEDULED.value, JobStatus.SCHEDULED.value):
        raise HTTPException(status_code=400, detail="New deliveries must be scheduled or to be scheduled")

    try:
        _validate_form_fields(payload.customer_name, payload.address, payload.delivery_date, to_be_scheduled, payload.products)
    except ServiceError as e:
        raise HTTPException(status_code=400, detail=e.message)

    delivery_date = None if to_be_scheduled else payload.delivery_date
    assigned_driver = None if to_be_scheduled else payload.assigned_driver
    _check_driver(db, assigned_driver)

    if payload.customer_id is not None and db.get(Customer, payload.customer_id) is None:
        raise HTTPException(status_code=400, detail="Customer not found")

    total_amount = _resolve_total(_lines_total(payload.products), payload.total_amount) or 0.0

    try:
        job = Job(
            customer_id=payload.customer_id,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            address=payload.address,
            delivery_date=delivery_date,
            special_instructions=payload.special_instructions,
            assigned_driver=assigned_driver,
            truck=payload.truck,
            status=payload.status,
            paid=payload.paid,
            total_amount=total_amount,
            payment_received=0,
            contractor_discount=payload.contractor_discount,
            created_by=current_user.id,
        )
        job.products = _product_rows(payload.products)

        db.add(job)
        db.commit()
        db.refresh(job)
        logger.info("Job %s created by %s (%s)", job.id, current_user.id, job.status)
        return job_with_products(job)

    except Exception as e:
        db.rollback()
        logger.exception("Failed to create job for %r", payload.customer_name)
        raise HTTPException(status_code=500, detail=f"Failed to create job: {str(e)}")


# -------------------------------
# Update job / move it through its lifecycle
# -------------------------------
@router.put("/{job_id}", response_model=JobReadSchema, status_code=status.HTTP_200_OK)
def update_job(
    payload: JobUpdateSchema,
    job_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    job = _get_job_or_404(db, job_id)
    update_data = payload.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    # 1. Who may touch what
    if not user_can(current_user, Capability.MANAGE_JOBS):
        if job.assigned_driver != current_user.id:
            raise HTTPException(status_code=403, detail="Access denied")
        if set(update_data) - DRIVER_FIELDS:
            raise HTTPException(
                status_code=403,
                detail="Drivers can only update status, driver notes, and payment received",
            )
        target = update_data.get("status")
        if target is not None and JobStatus(target) not in DRIVER_STATUSES and target != job.status:
            raise HTTPException(status_code=403, detail="Drivers can only start or complete deliveries")

    for required in (
        "customer_name", "address", "status", "paid", "products",
        "contractor_discount", "total_amount", "payment_received",
    ):
        if required in update_data and update_data[required] is None:
            raise HTTPException(status_code=400, detail=f"{required} cannot be empty")

    try:
        # 2. Lifecycle
        target = update_data.get("status")
        if (
            target is None
            and job.status == JobStatus.TO_BE_SCHEDULED.value
            and update_data.get("delivery_date") is not None
        ):
            # giving an unscheduled job a date schedules it
            target = JobStatus.SCHEDULED.value
        new_status = check_transition(job.status, target or job.status)

        if new_status == JobStatus.COMPLETED and job.status != JobStatus.COMPLETED.value:
            if not can_complete(current_user.role, current_user.id, job):
                raise HTTPException(status_code=403, detail="Not allowed to complete this delivery")

        delivery_date = update_data.get("delivery_date", job.delivery_date)
        assigned_driver = update_data.get("assigned_driver", job.assigned_driver)
        if new_status == JobStatus.TO_BE_SCHEDULED:
            delivery_date, assigned_driver = None, None
        check_schedule_fields(new_status, delivery_date, assigned_driver)
        if "assigned_driver" in update_data:
            _check_driver(db, assigned_driver)

        # 3. Money
        products = update_data.pop("products", None)
        requested_total = update_data.pop("total_amount", None)
        if products is not None:
            total_amount = _resolve_total(_lines_total(payload.products), requested_total)
        elif requested_total is not None:
            total_amount = _resolve_total(_stored_lines_total(job), requested_total)
        else:
            total_amount = None
        if total_amount is None:
            total_amount = job.total_amount
        payment_received = update_data.get("payment_received", job.payment_received)
        check_payment(total_amount, payment_received)

        # 4. Apply
        for key, value in update_data.items():
            setattr(job, key, value)
        job.status = new_status.value
        job.delivery_date = delivery_date
        job.assigned_driver = assigned_driver
        job.total_amount = total_amount
        job.payment_received = payment_received
        if is_settled(total_amount, payment_received):
            job.paid = True
        if products is not None:
            job.products = _product_rows(payload.products)
        job.updated_at = datetime.now(timezone.utc)

        db.add(job)
        db.commit()
        db.refresh(job)
        logger.info("Job %s updated by %s (status %s)", job_id, current_user.id, job.status)
        return job_with_products(job)

    except HTTPException:
        raise
    except ServiceError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        db.rollback()
        logger.exception("Failed to update job %s", job_id)
        raise HTTPException(status_code=500, detail=f"Failed to update job: {str(e)}")


@router.delete("/{job_id}", status_code=status.HTTP_200_OK)
def delete_job(
    job_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.DELETE_JOBS, "Admin role required")),
):
    job = _get_job_or_404(db, job_id)
    try:
        db.delete(job)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Failed to delete job %s", job_id)
        raise HTTPException(status_code=500, detail=f"Failed to delete job: {str(e)}")

    logger.info("Job %s deleted by %s", job_id, current_user.id)
    return {"message": "Job deleted successfully"}
