# tests/conftest.py
"""
Test configuration.

Environment is pinned before any app module is imported: no Postgres, no
Supabase, a known JWT secret. Each test gets a fresh in-memory SQLite
database.
"""
import os

os.environ["DATABASE_URL"] = ""
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = ""
os.environ["SUPABASE_JWT_SECRET"] = "test-secret"
os.environ["REALTIME_ENABLED"] = "false"

import time
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.database import get_session
from app.models.product import Product
from app.models.product_tag import ProductTag
from app.models.tag import Tag
from app.repositories.tag_repo import TagRepository


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def session_factory(engine):
    @contextmanager
    def factory():
        with Session(engine) as s:
            yield s

    return factory


@pytest.fixture
def app():
    from app.main import app

    yield app
    app.dependency_overrides.clear()
    if hasattr(app.state, "catalog_view"):
        del app.state.catalog_view


@pytest.fixture
def client(app, session):
    def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    return TestClient(app)


@pytest.fixture
def offline_client(app):
    """Client for a deployment with no database configured."""

    def override_session():
        yield None

    app.dependency_overrides[get_session] = override_session
    return TestClient(app)


@pytest.fixture
def admin_headers():
    token = jwt.encode(
        {"sub": "admin-1", "exp": int(time.time()) + 3600},
        "test-secret",
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


# ----- Factories -----


@pytest.fixture
def make_product(session):
    counter = {"n": 0}

    def factory(name: str | None = None, **kwargs) -> Product:
        counter["n"] += 1
        name = name or f"Product {counter['n']}"
        kwargs.setdefault("slug", name.lower().replace(" ", "-"))
        kwargs.setdefault("published", True)
        product = Product(name=name, **kwargs)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return factory


@pytest.fixture
def make_tag(session):
    def factory(name: str, order_index: int | None = None, **kwargs) -> Tag:
        if order_index is None:
            order_index = TagRepository().count(session)
        tag = Tag(name=name, slug=name.lower().replace(" ", "-"), order_index=order_index, **kwargs)
        session.add(tag)
        session.commit()
        session.refresh(tag)
        return tag

    return factory


@pytest.fixture
def link(session):
    def factory(product: Product, tag: Tag, position: int) -> ProductTag:
        row = ProductTag(product_id=product.id, tag_id=tag.id, order_position=position)
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    return factory
