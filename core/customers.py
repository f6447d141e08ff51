import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from core.errors import JobValidationError, ServiceError

logger = logging.getLogger(__name__)

CUSTOMER_NAME_REQUIRED = "Customer name is required"


@dataclass(frozen=True)
class CustomerResolution:
    customer_id: Optional[int]
    created: bool = False
    warning: Optional[str] = None


def new_customer_payload(name: str, phone: Optional[str], address: Optional[str], instructions: Optional[str]) -> dict:
    address = (address or "").strip()
    return {
        "name": name.strip(),
        "phone": (phone or "").strip() or None,
        "email": None,
        "addresses": [{"address": address, "notes": (instructions or "").strip()}] if address else [],
        "notes": None,
        "contractor": False,
    }


def resolve_customer(
    selected_customer: Optional[Mapping],
    typed_name: Optional[str],
    typed_phone: Optional[str],
    address: Optional[str],
    instructions: Optional[str],
    create_customer: Callable[[dict], Mapping],
) -> CustomerResolution:
    """
    Decide which customer a new job belongs to.

    A customer picked from the search box is reused as-is. Otherwise a
    customer is created from the typed name. A failed create does not stop
    the job: the job goes in without a customer id and the caller gets a
    warning to show.
    """
    if selected_customer:
        return CustomerResolution(customer_id=selected_customer.get("id"))

    if not typed_name or not typed_name.strip():
        raise JobValidationError(CUSTOMER_NAME_REQUIRED)

    payload = new_customer_payload(typed_name, typed_phone, address, instructions)
    try:
        created = create_customer(payload)
    except ServiceError as e:
        logger.warning("Customer auto-create failed for %r, continuing without customer id: %s", payload["name"], e.message)
        return CustomerResolution(customer_id=None, warning=f"Customer record not saved: {e.message}")

    customer_id = created.get("id") if created else None
    if customer_id is None:
        return CustomerResolution(customer_id=None, warning="Customer record not saved")
    logger.info("Created customer %s for %r", customer_id, payload["name"])
    return CustomerResolution(customer_id=customer_id, created=True)
