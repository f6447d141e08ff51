# seed.py: demo accounts, products and customers for a fresh database
import logging
import os

from sqlmodel import Session, select, func

from models import Customer, Product, User
from security.hashing import hash_password
from core.pricing import default_contractor_price

logger = logging.getLogger(__name__)

DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "admin123")

DEMO_USERS = [
    ("eastmeadow_admin", "admin@eastmeadow.com", "admin"),
    ("eastmeadow_office", "office@eastmeadow.com", "office"),
    ("eastmeadow_driver1", "driver1@eastmeadow.com", "driver"),
]

DEMO_PRODUCTS = [
    ("Premium Bark Mulch", "yards", 45.00),
    ("Screened Topsoil", "yards", 38.00),
    ("Compost Blend", "yards", 42.00),
    ("Play Sand", "yards", 32.00),
]

DEMO_CUSTOMERS = [
    {
        "name": "Pioneer Valley Landscaping",
        "phone": "(413) 555-0123",
        "email": "orders@pvlandscaping.com",
        "addresses": [{"address": "456 Industrial Dr, Westfield, MA 01085", "notes": "Commercial loading dock"}],
        "contractor": True,
        "notes": "Volume contractor - 10% discount",
    },
    {
        "name": "Johnson Residence",
        "phone": "(413) 555-0198",
        "email": "mjohnson@email.com",
        "addresses": [{"address": "123 Maple Street, East Longmeadow, MA 01028", "notes": "Side driveway access"}],
        "contractor": False,
        "notes": "Residential customer",
    },
]


def _count(session: Session, model) -> int:
    return session.exec(select(func.count()).select_from(model)).one()


def seed_demo_data(session: Session) -> None:
    """Idempotent: demo users are upserted by email, products and customers only go into empty tables."""
    password_hash = hash_password(DEMO_PASSWORD)
    for username, email, role in DEMO_USERS:
        user = session.exec(select(User).where(User.email == email)).first()
        if user is None:
            session.add(User(username=username, email=email, password_hash=password_hash, role=role))
            logger.info("Demo account %s created", email)

    if _count(session, Product) == 0:
        for name, unit, retail in DEMO_PRODUCTS:
            session.add(Product(name=name, unit=unit, retail_price=retail, contractor_price=default_contractor_price(retail)))
        logger.info("Default products added")

    if _count(session, Customer) == 0:
        for data in DEMO_CUSTOMERS:
            session.add(Customer(**data))
        logger.info("Sample customers added")

    session.commit()
