"""Pytest fixtures for Last Piece tests.

The app runs against an in-memory mongomock-motor database and a mailer that
records instead of sending.
"""

import asyncio
import os
import re

# must be set before lastpiece.shared.utils builds its settings
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["REQUIRE_EMAIL_VERIFICATION"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from lastpiece.auth.models import UserDB
from lastpiece.catalog.models import ProductDB
from lastpiece.main import create_app
from lastpiece.orders.models import OrderDB
from lastpiece.shared.database import Database
from lastpiece.shared.email import Mailer
from lastpiece.shared.helpers import generate_order_number, generate_sku, generate_slug
from lastpiece.shared.utils import create_access_token, get_password_hash, settings

PASSWORD = "Password123!"


def run(coro):
    """Run a coroutine against the mock database from synchronous test code."""
    return asyncio.run(coro)


class RecordingMailer(Mailer):
    def __init__(self):
        super().__init__(settings)
        self.sent = []

    async def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True

    def token_for(self, to: str) -> str:
        """The raw token from the last link mailed to `to`."""
        for message in reversed(self.sent):
            if message["to"] == to:
                return re.search(r"token=([0-9a-f]+)", message["html"]).group(1)
        raise AssertionError(f"No email sent to {to}")


@pytest.fixture
def db():
    return Database(AsyncMongoMockClient(), "lastpiece_test")


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def client(db, mailer):
    app = create_app(database=db, mailer=mailer)
    with TestClient(app) as test_client:
        yield test_client


class Seeder:
    """Writes fixtures straight into the database and mints tokens for them."""

    def __init__(self, db: Database):
        self.db = db
        self._count = 0

    def _next(self) -> int:
        self._count += 1
        return self._count

    def user(self, role: str = "customer", email: str = None, password: str = PASSWORD, **fields) -> dict:
        n = self._next()
        user = UserDB(
            first_name=fields.pop("first_name", "User"),
            last_name=fields.pop("last_name", str(n)),
            email=email or f"user{n}@mail.com",
            password=get_password_hash(password),
            role=role,
            email_verified=True,
            **fields,
        )
        doc = user.model_dump(by_alias=True, exclude={"id"})
        result = run(self.db.users.insert_one(doc))
        user_id = str(result.inserted_id)
        token = create_access_token({"sub": user_id, "role": role})
        return {
            "id": user_id,
            "email": doc["email"],
            "password": password,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    def product(self, name: str = None, price: float = 150.0, stock: int = 1,
                status: str = "active", **fields) -> str:
        name = name or f"Product {self._next()}"
        product = ProductDB(
            name=name,
            slug=generate_slug(name),
            sku=generate_sku(name),
            description=fields.pop("description", f"{name} description"),
            price=price,
            category=fields.pop("category", str(ObjectId())),
            stock=stock,
            status=status,
            **fields,
        )
        doc = product.model_dump(by_alias=True, exclude={"id"})
        return str(run(self.db.products.insert_one(doc)).inserted_id)

    def order(self, user_id: str, product_id: str, quantity: int = 1, price: float = 100.0,
              status: str = "pending", payment_method: str = "card", payment_status: str = "pending",
              **fields) -> str:
        subtotal = price * quantity
        tax = round(subtotal * settings.TAX_RATE, 2)
        order = OrderDB(
            order_number=generate_order_number(),
            user_id=user_id,
            items=[{
                "product_id": product_id,
                "product_name": "Seeded product",
                "quantity": quantity,
                "price": price,
                "subtotal": subtotal,
            }],
            status=status,
            status_timeline=[{"status": status}],
            billing_address={"first_name": "Ada", "email": "ada@mail.com"},
            shipping_address={"first_name": "Ada", "city": "Springfield"},
            payment={"method": payment_method, "status": payment_status, "amount": subtotal + tax},
            pricing={"subtotal": subtotal, "tax": tax, "total": subtotal + tax},
            **fields,
        )
        doc = order.model_dump(by_alias=True, exclude={"id"})
        return str(run(self.db.orders.insert_one(doc)).inserted_id)

    def update(self, collection: str, doc_id: str, changes: dict) -> None:
        run(self.db[collection].update_one({"_id": ObjectId(doc_id)}, {"$set": changes}))

    def delete(self, collection: str, doc_id: str) -> None:
        run(self.db[collection].delete_one({"_id": ObjectId(doc_id)}))

    def find(self, collection: str, **query) -> dict:
        if "_id" in query and isinstance(query["_id"], str):
            query["_id"] = ObjectId(query["_id"])
        return run(self.db[collection].find_one(query))


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def customer(seed):
    return seed.user()


@pytest.fixture
def admin(seed):
    return seed.user(role="admin")


@pytest.fixture
def super_admin(seed):
    return seed.user(role="super-admin")
