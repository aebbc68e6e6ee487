import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal

# πριν από οποιοδήποτε import του app: in-memory βάση και προσωρινά uploads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="marketplace-uploads-")
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ.pop("AUTH_JWT_AUDIENCE", None)

import pytest  # noqa: E402
import stripe  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import models  # noqa: E402,F401
from database import Base, SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402
from models import Category, Order, OrderStatusEnum, Review, Template, User  # noqa: E402
from token_module import create_access_token  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(db):
    def _make(user_id="user-1", email=None, is_admin=False, **kw):
        user = User(id=user_id, email=email or f"{user_id}@example.com", is_admin=is_admin, **kw)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def buyer(make_user):
    return make_user("buyer-1", "buyer@example.com")


@pytest.fixture
def admin_user(make_user):
    return make_user("admin-1", "admin@example.com", is_admin=True)


@pytest.fixture
def make_category(db):
    def _make(name="Landing Pages", slug=None, **kw):
        category = Category(name=name, slug=slug or name.lower().replace(" ", "-"), **kw)
        db.add(category)
        db.commit()
        db.refresh(category)
        return category
    return _make


@pytest.fixture
def make_template(db):
    counter = {"n": 0}

    def _make(name=None, price="10.00", created_at=None, **kw):
        counter["n"] += 1
        n = counter["n"]
        name = name or f"Template {n}"
        fields = dict(
            name=name,
            slug=kw.pop("slug", f"{name.lower().replace(' ', '-')}-{n}"),
            description=kw.pop("description", f"Description of {name}"),
            price=Decimal(price),
            created_at=created_at or datetime(2024, 1, 1) + timedelta(minutes=n),
        )
        fields.update(kw)
        template = Template(**fields)
        db.add(template)
        db.commit()
        db.refresh(template)
        return template
    return _make


@pytest.fixture
def add_review(db):
    def _add(user, template, rating):
        review = Review(user_id=user.id, template_id=template.id, rating=rating)
        db.add(review)
        db.commit()
        return review
    return _add


@pytest.fixture
def completed_order(db):
    """Completed order straight in the DB (bypasses checkout)."""
    from models import OrderItem

    def _make(user, *templates):
        order = Order(
            user_id=user.id,
            status=OrderStatusEnum.completed,
            total_amount=sum((t.price for t in templates), Decimal("0.00")),
            items=[OrderItem(template_id=t.id, price=t.price) for t in templates],
        )
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return _make


class FakeStripe:
    """In-memory stand-in for stripe.PaymentIntent."""

    def __init__(self):
        self.intents = {}
        self.create_error = None

    def create(self, **kwargs):
        if self.create_error is not None:
            raise self.create_error
        pid = f"pi_test_{len(self.intents) + 1}"
        intent = {
            "id": pid,
            "object": "payment_intent",
            "status": "requires_payment_method",
            "client_secret": f"{pid}_secret_abc",
            "amount": kwargs["amount"],
            "currency": kwargs["currency"],
            "metadata": dict(kwargs.get("metadata") or {}),
        }
        self.intents[pid] = intent
        return intent

    def retrieve(self, pid, **kwargs):
        if pid not in self.intents:
            raise stripe.InvalidRequestError(f"No such payment_intent: '{pid}'", "id")
        return self.intents[pid]

    def cancel(self, pid, **kwargs):
        intent = self.retrieve(pid)
        intent["status"] = "canceled"
        return intent

    def succeed(self, pid):
        self.intents[pid]["status"] = "succeeded"


@pytest.fixture
def fake_stripe(monkeypatch):
    fake = FakeStripe()
    monkeypatch.setattr(stripe.PaymentIntent, "create", fake.create)
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", fake.retrieve)
    monkeypatch.setattr(stripe.PaymentIntent, "cancel", fake.cancel)
    return fake


@pytest.fixture
def headers_for():
    return auth_headers
