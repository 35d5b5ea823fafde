# tests/test_product_service.py
import uuid

import pytest
from fastapi import HTTPException
from sqlmodel import select

from app.models.product import Product
from app.models.product_tag import ProductTag
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.repositories.tag_repo import TagRepository
from app.schemas.product import ProductCreate, ProductUpdate
from app.services import product_service as product_service_module
from app.services.product_service import ProductService, slugify
from app.services.product_tag_service import ProductTagService


@pytest.fixture
def products():
    product_repo = ProductRepository()
    junction_repo = ProductTagRepository()
    memberships = ProductTagService(junction_repo, product_repo, TagRepository())
    return ProductService(product_repo, junction_repo, memberships)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Geocentric Plugin", "geocentric-plugin"),
        ("  SEO -- Rocket!! ", "seo-rocket"),
        ("***", "product"),
    ],
)
def test_slugify(raw, expected):
    assert slugify(raw) == expected


def test_create_generates_unique_slugs_and_appends_to_all(session, products):
    first = products.create_product(session, ProductCreate(name="Rank Tracker"))
    second = products.create_product(session, ProductCreate(name="Rank Tracker"))

    assert (first.slug, second.slug) == ("rank-tracker", "rank-tracker-2")
    assert (first.all_order, second.all_order) == (0, 1)
    assert first.featured_order is None


def test_create_flagged_product_joins_end_of_system_lists(session, make_product, products):
    make_product("Existing", featured=True, featured_order=4)

    created = products.create_product(session, ProductCreate(name="New", featured=True, free=True))

    assert created.featured_order == 5
    assert created.free_order == 0


def test_create_with_tag_ids_adds_memberships(session, make_tag, make_product, link, products):
    tag = make_tag("SEO")
    link(make_product("Old"), tag, 0)

    created = products.create_product(session, ProductCreate(name="New", tag_ids=[tag.id]))

    assert [(m.tag_id, m.order_position) for m in created.product_tags] == [(tag.id, 1)]


def test_update_toggles_flag_order_fields(session, make_product, products):
    make_product("Free one", free=True, free_order=0)
    p = make_product("P")

    updated = products.update_product(session, p.id, ProductUpdate(free=True, priority=3))
    assert (updated.free, updated.free_order, updated.priority) == (True, 1, 3)

    updated = products.update_product(session, p.id, ProductUpdate(free=False))
    assert (updated.free, updated.free_order) == (False, None)


def test_update_slug_stays_unique(session, make_product, products):
    make_product("Taken")
    p = make_product("P")

    assert products.update_product(session, p.id, ProductUpdate(slug="Taken")).slug == "taken-2"


def test_delete_removes_memberships_first(session, make_product, make_tag, link, products):
    tag = make_tag("SEO")
    p = make_product("P", icon_url="🚀")
    keep = make_product("Keep")
    link(p, tag, 0)
    link(keep, tag, 1)

    assert products.delete_product(session, p.id) is True

    rows = session.exec(select(ProductTag)).all()
    assert [row.product_id for row in rows] == [keep.id]
    assert session.get(Product, p.id) is None


def test_get_by_slug_hides_drafts_from_guests(session, make_product, products):
    make_product("Draft", published=False)

    with pytest.raises(HTTPException) as exc:
        products.get_by_slug(session, "draft")
    assert exc.value.status_code == 404

    assert products.get_by_slug(session, "draft", include_unpublished=True).name == "Draft"


def test_system_list_membership(session, make_product, products):
    p = make_product("P")

    added = products.add_to_system_list(session, "featured", p.id)
    assert (added.featured, added.featured_order) == (True, 0)

    removed = products.remove_from_system_list(session, "featured", p.id)
    assert (removed.featured, removed.featured_order) == (False, None)

    with pytest.raises(HTTPException) as exc:
        products.remove_from_system_list(session, "all", p.id)
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        products.add_to_system_list(session, "popular", p.id)
    assert exc.value.status_code == 400


def test_reorder_system_list_skips_non_members(session, make_product, products):
    a = make_product("A", featured=True, featured_order=0)
    b = make_product("B", featured=True, featured_order=1)
    outsider = make_product("Outsider", featured=False)

    assert products.reorder_system_list(session, "Featured", [b.id, outsider.id, uuid.uuid4(), a.id])

    session.expire_all()
    assert (session.get(Product, b.id).featured_order, session.get(Product, a.id).featured_order) == (0, 1)
    assert session.get(Product, outsider.id).featured_order is None


def test_reorder_all_uses_all_order(session, make_product, products):
    a = make_product("A", all_order=0)
    b = make_product("B", all_order=1)

    assert products.reorder_system_list(session, "all", [b.id, a.id])

    session.expire_all()
    assert (session.get(Product, b.id).all_order, session.get(Product, a.id).all_order) == (0, 1)


def test_set_icon_validates_type_and_size(session, make_product, products):
    p = make_product("P")

    with pytest.raises(HTTPException) as exc:
        products.set_icon(session, p.id, "application/pdf", b"%PDF")
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        products.set_icon(session, p.id, "image/png", b"0" * (2 * 1024 * 1024 + 1))
    assert exc.value.status_code == 413


def test_set_icon_uploads_to_deterministic_path(session, make_product, products, monkeypatch):
    p = make_product("P", icon_url="🚀")
    uploads = []

    def fake_upload(path, file_bytes, content_type):
        uploads.append((path, content_type))
        return f"https://example.supabase.co/storage/v1/object/public/product-icons/{path}"

    monkeypatch.setattr(product_service_module, "upload_to_storage", fake_upload)

    updated = products.set_icon(session, p.id, "image/png", b"png-bytes")

    assert uploads == [(f"products/{p.id}/icon.png", "image/png")]
    assert updated.icon_url.endswith(f"products/{p.id}/icon.png")


def test_without_database(products):
    assert products.list_products(None) == []
    assert products.create_product(None, ProductCreate(name="X")) is None
    assert products.reorder_system_list(None, "featured", []) is False

    with pytest.raises(HTTPException) as exc:
        products.get_product(None, uuid.uuid4())
    assert exc.value.status_code == 503
