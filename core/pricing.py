# core/pricing.py: per-line and order pricing against a product catalog

from dataclasses import dataclass
from typing import Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

PriceType = Literal["retail", "contractor"]

CONTRACTOR_DISCOUNT = 0.10


@dataclass(frozen=True)
class LinePrice:
    unit_price: float
    total_price: float
    price_type: PriceType


@dataclass(frozen=True)
class PricedLine:
    product_name: str
    quantity: float
    unit: str
    unit_price: float
    total_price: float
    price_type: PriceType


@dataclass(frozen=True)
class OrderPricing:
    lines: Tuple[PricedLine, ...]
    total: float


def _to_float(value) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_quantity(value) -> float:
    """Quantity as a positive float, or 0.0 when blank, non-numeric or not positive."""
    q = _to_float(value)
    return q if q > 0 else 0.0


def default_contractor_price(retail_price) -> Optional[float]:
    retail = _to_float(retail_price)
    if retail <= 0:
        return None
    return round(retail * (1 - CONTRACTOR_DISCOUNT), 2)


def is_contractor(customer: Optional[Mapping]) -> bool:
    return bool(customer and customer.get("contractor"))


def find_product(catalog: Iterable[Mapping], name: str) -> Optional[Mapping]:
    if not name:
        return None
    for entry in catalog:
        if entry.get("name") == name:
            return entry
    return None


def applicable_price(entry: Mapping, contractor: bool) -> Tuple[float, PriceType]:
    """
    Price a catalog entry for a customer tier.

    Entries already resolved for a customer (``current_price`` present) are
    taken as-is, keeping their ``price_type``. Otherwise a contractor gets
    the contractor price when one exists; everyone else pays retail.
    """
    if entry.get("current_price") is not None:
        return _to_float(entry.get("current_price")), entry.get("price_type") or "retail"

    contractor_price = _to_float(entry.get("contractor_price"))
    if contractor and contractor_price > 0:
        return contractor_price, "contractor"
    return _to_float(entry.get("retail_price")), "retail"


def compute_line(
    product_name: str,
    quantity,
    catalog: Sequence[Mapping],
    customer: Optional[Mapping] = None,
    previous_price_type: PriceType = "retail",
) -> LinePrice:
    entry = find_product(catalog, product_name)
    if entry is None:
        # unknown product: zero the prices, keep whatever tier the line had
        return LinePrice(0.0, 0.0, previous_price_type)

    unit_price, price_type = applicable_price(entry, is_contractor(customer))
    return LinePrice(unit_price, unit_price * parse_quantity(quantity), price_type)


def price_order(lines: Iterable, catalog: Sequence[Mapping], customer: Optional[Mapping] = None) -> OrderPricing:
    """
    Price every line of an order. ``lines`` are objects with ``product_name``,
    ``quantity``, ``unit`` and optionally ``price_type`` attributes.
    """
    priced: List[PricedLine] = []
    for line in lines:
        result = compute_line(
            line.product_name,
            line.quantity,
            catalog,
            customer,
            getattr(line, "price_type", None) or "retail",
        )
        priced.append(PricedLine(
            product_name=line.product_name,
            quantity=parse_quantity(line.quantity),
            unit=line.unit,
            unit_price=result.unit_price,
            total_price=result.total_price,
            price_type=result.price_type,
        ))
    return OrderPricing(lines=tuple(priced), total=sum(p.total_price for p in priced))
