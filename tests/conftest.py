# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - One throwaway SQLite file per test session, tables recreated per test
# - Environment is set before the app is imported (engine is built at import)
# - Users are created straight in the db; fixtures hand back plain dicts
#   with id/email/role/headers so no ORM object outlives its session
# - Cheap bcrypt rounds
# ---------------------------------------------------------------------

import os
import tempfile
from pathlib import Path

_TMP_DIR = Path(tempfile.mkdtemp(prefix="deliveries-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret"
os.environ.pop("SEED_DEMO_DATA", None)

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

import database
from main import app
from models import Customer, Product, User
from security.hashing import hash_password
from security.token_jwt import token_for_user

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def _fresh_tables():
    SQLModel.metadata.drop_all(database.engine)
    SQLModel.metadata.create_all(database.engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user():
    def _make(username: str, role: str, email: str = None, password: str = PASSWORD) -> dict:
        email = email or f"{username}@eastmeadow.com"
        with Session(database.engine) as session:
            user = User(username=username, email=email, password_hash=hash_password(password), role=role)
            session.add(user)
            session.commit()
            session.refresh(user)
            token = token_for_user(user)
            return {
                "id": user.id,
                "username": user.username,
                "email": user.email,
                "role": user.role,
                "password": password,
                "token": token,
                "headers": {"Authorization": f"Bearer {token}"},
            }
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", "admin")


@pytest.fixture
def office(make_user):
    return make_user("office", "office")


@pytest.fixture
def driver(make_user):
    return make_user("driver1", "driver")


@pytest.fixture
def other_driver(make_user):
    return make_user("driver2", "driver")


@pytest.fixture
def make_customer():
    def _make(name: str, contractor: bool = False, phone: str = None, address: str = "1 Main St") -> dict:
        with Session(database.engine) as session:
            customer = Customer(
                name=name,
                phone=phone,
                addresses=[{"address": address, "notes": None}],
                contractor=contractor,
            )
            session.add(customer)
            session.commit()
            session.refresh(customer)
            return {"id": customer.id, "name": customer.name, "contractor": customer.contractor}
    return _make


@pytest.fixture
def make_product():
    def _make(name: str, retail_price: float, contractor_price: float = None, unit: str = "yards", active: bool = True) -> dict:
        with Session(database.engine) as session:
            product = Product(
                name=name,
                unit=unit,
                retail_price=retail_price,
                contractor_price=contractor_price,
                active=active,
            )
            session.add(product)
            session.commit()
            session.refresh(product)
            return {"id": product.id, "name": product.name}
    return _make


@pytest.fixture
def job_payload():
    def _payload(**overrides) -> dict:
        payload = {
            "customer_name": "Johnson Residence",
            "customer_phone": "(413) 555-0198",
            "address": "123 Maple Street",
            "delivery_date": "2025-03-10",
            "status": "scheduled",
            "products": [
                {
                    "product_name": "Mulch",
                    "quantity": 3,
                    "unit": "yards",
                    "unit_price": 40,
                    "total_price": 120,
                    "price_type": "retail",
                }
            ],
        }
        payload.update(overrides)
        return payload
    return _payload
