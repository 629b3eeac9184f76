from datetime import date, timedelta

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from cakeshop import create_app
from cakeshop.config import TestConfig
from cakeshop.extensions import db
from cakeshop.model import BookingDraft, Category, Coupon, Product, User


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(email, name, role="user"):
    u = User(email=email, name=name, role=role, password_hash=generate_password_hash("secret123"))
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def admin(app):
    return _user("admin@cakes.test", "Admin", role="admin")


@pytest.fixture
def alice(app):
    return _user("alice@cakes.test", "Alice")


@pytest.fixture
def bob(app):
    return _user("bob@cakes.test", "Bob")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(identity=str(user.id))}"}


@pytest.fixture
def products(app):
    cake = Category(name="cake")
    pastry = Category(name="pastry")
    items = [
        Product(name="Chocolate Truffle Cake", price=1000, specification="Dark chocolate", category=cake),
        Product(name="Strawberry Cake", price=650, specification="Fresh strawberries", category=cake),
        Product(name="Butterscotch Pastry", price=120, specification="Caramel crunch", category=pastry),
    ]
    db.session.add_all([cake, pastry, *items])
    db.session.commit()
    return {p.name: p for p in items}


@pytest.fixture
def truffle(products):
    return products["Chocolate Truffle Cake"]


@pytest.fixture
def coupon(alice):
    c = Coupon(code="SAVE10", message="10% off your next cake", discount_percent=10, user_id=alice.id)
    db.session.add(c)
    db.session.commit()
    return c


@pytest.fixture
def delivery_date():
    return (date.today() + timedelta(days=3)).isoformat()


@pytest.fixture
def make_draft(truffle, delivery_date):
    def make(**changes):
        draft = BookingDraft(
            product_id=truffle.id,
            product_name=truffle.name,
            price_per_kg=1000,
            area="Gomti Nagar",
            size=3,
            delivery_type="delivery",
            instruction="",
            delivery_date=delivery_date,
            delivery_time="18:30",
            address="12 Vibhuti Khand",
            phone="9876543210",
        )
        return draft.update(**changes)
    return make


class FakeInterpreter:
    def __init__(self, answer=None, error=None):
        self.answer = answer or {"reply": "Here you go", "products": []}
        self.error = error
        self.calls = []

    def interpret(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.answer


class FakeCatalog:
    def __init__(self, products=None, error=None):
        self.products = products or []
        self.error = error
        self.calls = []

    def filter(self, name_contains):
        self.calls.append(name_contains)
        if self.error:
            raise self.error
        return [p for p in self.products if name_contains.lower() in p["name"].lower()]
