from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from core.customers import CUSTOMER_NAME_REQUIRED
from core.errors import JobValidationError
from core.pricing import parse_quantity, price_order

ADDRESS_REQUIRED = "Delivery address is required"
DATE_REQUIRED = "Delivery date is required"
PRODUCTS_INCOMPLETE = "All products must have a name and quantity"


@dataclass
class ProductLine:
    product_name: str = ""
    quantity: str = ""
    unit: str = "yards"
    unit_price: float = 0.0
    total_price: float = 0.0
    price_type: str = "retail"


@dataclass
class JobForm:
    customer_name: str = ""
    customer_phone: str = ""
    address: str = ""
    delivery_date: str = ""
    special_instructions: str = ""
    assigned_driver: str = ""
    truck: str = ""
    paid: bool = False
    collection_amount: str = ""
    products: List[ProductLine] = field(default_factory=lambda: [ProductLine()])


def _blank(value) -> bool:
    return value is None or not str(value).strip()


def validate_job_form(form: JobForm, to_be_scheduled: bool = False) -> None:
    """Raise ``JobValidationError`` carrying the first problem found, in form order."""
    if _blank(form.customer_name):
        raise JobValidationError(CUSTOMER_NAME_REQUIRED)
    if _blank(form.address):
        raise JobValidationError(ADDRESS_REQUIRED)
    if not to_be_scheduled and _blank(form.delivery_date):
        raise JobValidationError(DATE_REQUIRED)
    if any(_blank(p.product_name) or parse_quantity(p.quantity) <= 0 for p in form.products):
        raise JobValidationError(PRODUCTS_INCOMPLETE)


def parse_driver_id(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _clean(value) -> Optional[str]:
    return None if _blank(value) else str(value).strip()


def build_job_payload(
    form: JobForm,
    to_be_scheduled: bool,
    selected_customer: Optional[Mapping],
    resolved_customer_id: Optional[int],
    use_collection_amount: bool = False,
) -> dict:
    """
    Assemble the JSON body for ``POST /api/jobs`` from validated form state.

    With ``use_collection_amount`` the order total is the amount the
    operator typed and products go out without prices; otherwise line
    prices carried on the form are summed into the total.
    """
    if use_collection_amount:
        products = [
            {"product_name": p.product_name.strip(), "quantity": parse_quantity(p.quantity), "unit": p.unit}
            for p in form.products
        ]
        try:
            total_amount = float(form.collection_amount) if not _blank(form.collection_amount) else 0.0
        except ValueError:
            total_amount = 0.0
    else:
        products = [
            {
                "product_name": p.product_name.strip(),
                "quantity": parse_quantity(p.quantity),
                "unit": p.unit,
                "unit_price": p.unit_price,
                "total_price": p.total_price,
                "price_type": p.price_type or "retail",
            }
            for p in form.products
        ]
        total_amount = sum(p["total_price"] for p in products)

    payload = {
        "customer_id": resolved_customer_id,
        "customer_name": form.customer_name.strip(),
        "customer_phone": _clean(form.customer_phone),
        "address": form.address.strip(),
        "special_instructions": _clean(form.special_instructions),
        "truck": _clean(form.truck),
        "paid": bool(form.paid),
        "products": products,
        "total_amount": total_amount,
        "contractor_discount": bool(selected_customer.get("contractor")) if selected_customer else False,
    }

    if to_be_scheduled:
        payload.update(delivery_date=None, assigned_driver=None, status="to_be_scheduled")
    else:
        payload.update(
            delivery_date=form.delivery_date.strip(),
            assigned_driver=parse_driver_id(form.assigned_driver),
            status="scheduled",
        )
    return payload


def apply_pricing(form: JobForm, catalog, customer: Optional[Mapping] = None) -> float:
    """Write fresh line prices onto the form's product lines and return the order total."""
    pricing = price_order(form.products, catalog, customer)
    for line, priced in zip(form.products, pricing.lines):
        line.unit_price = priced.unit_price
        line.total_price = priced.total_price
        line.price_type = priced.price_type
    return pricing.total
