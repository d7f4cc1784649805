import os
import tempfile

import pytest

# Settings are read at import time; point them at an in-memory database first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DASHBOARD_ADMIN_TOKEN"] = "admin-test-token"
os.environ["INTAKE_SHARED_SECRET"] = "intake-test-token"
os.environ["LOG_FILE"] = os.path.join(tempfile.mkdtemp(prefix="vadash-logs-"), "vadash.log")

from fastapi.testclient import TestClient

from config.database import Base, DatabaseManager, SessionLocal, engine, get_db
from vadash.api.dependencies import create_access_token
from vadash.main import app
from vadash.models.tenant import Tenant, TenantUser, TenantRole, PackageTier
from vadash.models.user import User

ADMIN_HEADERS = {"x-admin-token": "admin-test-token"}
INTAKE_HEADERS = {"x-intake-token": "intake-test-token"}


def make_user(db, email, password="correct-horse-1", full_name=None):
    user = User(email=email, full_name=full_name)
    user.set_password(password)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_tenant(db, owner, name="Acme Bakery", role=TenantRole.OWNER):
    tenant = Tenant(name=name, package_tier=PackageTier.GROWTH, currency="USD")
    db.add(tenant)
    db.flush()
    db.add(TenantUser(tenant_id=tenant.id, user_id=owner.id, role=role))
    db.commit()
    db.refresh(tenant)
    return tenant


def bearer(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def db():
    DatabaseManager.reset_schema()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user(db):
    return make_user(db, "va@acme-books.com", full_name="Vera Assist")


@pytest.fixture
def auth_headers(user):
    return bearer(user)


@pytest.fixture
def tenant(db, user):
    return make_tenant(db, user)


@pytest.fixture
def outsider(db):
    """A signed-in user with no membership in ``tenant``."""
    return make_user(db, "outsider@acme-books.com")


@pytest.fixture
def other_tenant(db, outsider):
    return make_tenant(db, outsider, name="Other Co")
