import os

# Resolve the in-memory SQLite engine before the app modules are imported
os.environ.setdefault("PYTEST_RUNNING", "1")
for _var in ("DEV_MODE", "ADMIN_EMAILS", "MAINTENANCE_MODE", "ALLOW_REGISTRATIONS", "DATABASE_URL"):
    os.environ.pop(_var, None)

import uuid

import pytest
from fastapi.testclient import TestClient

from erp.api.main import app
from erp.db import models, schemas
from erp.db.database import SessionLocal, engine
from erp.db.repositories import users as user_repo
from erp.services import order_service
from erp.services import storage_service
from erp.services import transactional_email_service
from erp.utils.feature_flags import refresh_feature_flag_cache


class FakeEmailService:
    """Records outgoing mail instead of calling a provider."""

    is_configured = True

    def __init__(self):
        self.sent = []
        self.fail = False

    def render_template(self, template_name, context):
        return f"<p>{template_name}: {context.get('task_title')}</p>", f"{template_name}: {context.get('task_title')}"

    async def send_email(self, to_email, subject, html_content, text_content=None):
        self.sent.append({"to": to_email, "subject": subject, "html": html_content, "text": text_content})
        if self.fail:
            return {"success": False, "error": "provider rejected the message"}
        return {"success": True, "provider": "fake", "message_id": f"msg-{len(self.sent)}"}


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(models.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(autouse=True)
def _reset_flags():
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


@pytest.fixture(autouse=True)
def email_outbox(monkeypatch):
    fake = FakeEmailService()
    monkeypatch.setattr(transactional_email_service, "get_transactional_email_service", lambda: fake)
    yield fake


@pytest.fixture(autouse=True)
def report_storage(monkeypatch, tmp_path):
    monkeypatch.setenv("STORAGE_PROVIDER", "local")
    monkeypatch.setenv("STORAGE_LOCAL_DIR", str(tmp_path))
    storage_service.reset_storage_service_for_tests()
    yield tmp_path
    storage_service.reset_storage_service_for_tests()


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def auth_headers(user_or_email, name=None):
    email = getattr(user_or_email, "email", user_or_email)
    return {"x-auth-request-email": email, "x-auth-request-user": name or email.split("@")[0]}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def user_factory(db_session):
    def _create(email=None, role="viewer", full_name=None, department_id=None):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        user = models.User(email=email, full_name=full_name or email.split("@")[0], department_id=department_id)
        db_session.add(user)
        db_session.commit()
        user_repo.set_user_role(db_session, user.id, role)
        return user

    return _create


@pytest.fixture
def admin_user(user_factory):
    return user_factory(email="admin@example.com", role="admin", full_name="Ayse Admin")


@pytest.fixture
def manager_user(user_factory):
    return user_factory(email="manager@example.com", role="manager", full_name="Mert Manager")


@pytest.fixture
def operator_user(user_factory):
    return user_factory(email="operator@example.com", role="operator", full_name="Okan Operator")


@pytest.fixture
def viewer_user(user_factory):
    return user_factory(email="viewer@example.com", role="viewer", full_name="Veli Viewer")


@pytest.fixture
def customer_factory(db_session):
    def _create(name="Acme Kimya", **fields):
        customer = models.Customer(name=name, **fields)
        db_session.add(customer)
        db_session.commit()
        db_session.refresh(customer)
        return customer

    return _create


@pytest.fixture
def product_factory(db_session):
    def _create(name="Cleaner 5L", sku=None, price=100.0, cost=40.0, stock=10, min_stock=0, **fields):
        product = models.Product(
            name=name,
            sku=sku or f"P-{uuid.uuid4().hex[:6]}",
            price=price,
            cost=cost,
            stock=stock,
            min_stock=min_stock,
            **fields,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _create


@pytest.fixture
def material_factory(db_session):
    def _create(name="Surfactant", sku=None, stock=100, cost=2.5, min_stock=10, **fields):
        material = models.RawMaterial(
            name=name,
            sku=sku or f"RM-{uuid.uuid4().hex[:6]}",
            stock=stock,
            cost=cost,
            min_stock=min_stock,
            **fields,
        )
        db_session.add(material)
        db_session.commit()
        db_session.refresh(material)
        return material

    return _create


@pytest.fixture
def recipe_factory(db_session):
    def _create(product, material, quantity_per_unit):
        line = models.ProductRecipe(
            product_id=product.id, raw_material_id=material.id, quantity_per_unit=quantity_per_unit
        )
        db_session.add(line)
        db_session.commit()
        return line

    return _create


@pytest.fixture
def order_factory(db_session):
    def _create(customer, items, **fields):
        payload = schemas.OrderCreate(
            customer_id=customer.id,
            items=[
                schemas.OrderItemCreate(product_id=product.id, quantity=qty, unit_price=price)
                for product, qty, price in items
            ],
            **fields,
        )
        return order_service.create_order(db_session, payload)

    return _create
