# tests/test_tag_service.py
import uuid

import pytest
from fastapi import HTTPException
from sqlmodel import select

from app.models.product import Product
from app.models.product_tag import ProductTag
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.repositories.tag_repo import TagRepository
from app.schemas.tag import TagCreate, TagUpdate
from app.services.tag_resolution_service import TagResolutionService
from app.services.tag_service import TagService


@pytest.fixture
def tags():
    return TagService(TagRepository(), ProductTagRepository(), ProductRepository())


def _order(session):
    return [(t.name, t.order_index) for t in TagRepository().list_ordered(session)]


def test_create_appends_with_dense_order_index(session, tags):
    tags.create_tag(session, TagCreate(name="SEO"))
    tags.create_tag(session, TagCreate(name="Local SEO", color="#f00"))

    assert _order(session) == [("SEO", 0), ("Local SEO", 1)]
    assert TagRepository().get_by_name(session, "Local SEO").slug == "local-seo"


@pytest.mark.parametrize("name", ["Featured", "Free", "All"])
def test_system_names_are_reserved(session, tags, name):
    with pytest.raises(HTTPException) as exc:
        tags.create_tag(session, TagCreate(name=name))
    assert exc.value.status_code == 400


def test_duplicate_name_conflicts(session, tags):
    tags.create_tag(session, TagCreate(name="SEO"))

    with pytest.raises(HTTPException) as exc:
        tags.create_tag(session, TagCreate(name="SEO"))
    assert exc.value.status_code == 409


def test_rename_regenerates_slug(session, make_tag, tags):
    tag = make_tag("SEO")

    updated = tags.update_tag(session, tag.id, TagUpdate(name="Technical SEO"))

    assert updated.name == "Technical SEO"
    assert updated.slug == "technical-seo"


def test_rename_leaves_no_filter_under_the_old_name(session, make_tag, make_product, link, tags):
    tag = make_tag("SEO")
    a = make_product("A", tags=["SEO", "Local"])
    link(a, tag, 0)
    make_product("B", tags=["SEO"])

    tags.update_tag(session, tag.id, TagUpdate(name="Search"))

    repo = ProductRepository()
    assert {p.name: p.tags for p in repo.list_all(session)} == {"A": ["Search", "Local"], "B": ["Search"]}

    resolution = TagResolutionService(repo, ProductTagRepository(), TagRepository())
    products = repo.list_all(session)
    assert resolution.list_available_filters(session, products, is_admin=False) == [
        "Featured",
        "Free",
        "All",
        "Search",
    ]
    assert resolution.resolve_filter(session, "SEO") == []
    assert [p.name for p in resolution.resolve_filter(session, "Search")] == ["A"]


def test_reorder_tags_rewrites_full_order(session, make_tag, tags):
    a, b, c = make_tag("A"), make_tag("B"), make_tag("C")

    assert tags.reorder_tags(session, [c.id, a.id])

    assert _order(session) == [("C", 0), ("A", 1), ("B", 2)]


def test_delete_cascades_and_compacts_order(session, make_tag, make_product, link, tags):
    a, b, c = make_tag("A"), make_tag("B"), make_tag("C")
    p = make_product("P", tags=["B", "A"])
    link(p, b, 0)

    assert tags.delete_tag(session, b.id) is True

    assert _order(session) == [("A", 0), ("C", 1)]
    assert session.exec(select(ProductTag)).all() == []
    assert session.get(Product, p.id).tags == ["A"]


def test_deleted_tag_resolves_to_empty(session, make_tag, make_product, link, tags):
    tag = make_tag("SEO")
    p = make_product("P", tags=["SEO"])
    link(p, tag, 0)

    tags.delete_tag(session, tag.id)

    resolution = TagResolutionService(ProductRepository(), ProductTagRepository(), TagRepository())
    assert resolution.resolve_filter(session, "SEO") == []


def test_missing_tag_is_404(session, tags):
    with pytest.raises(HTTPException) as exc:
        tags.get_tag(session, uuid.uuid4())
    assert exc.value.status_code == 404


def test_without_database(tags):
    assert tags.list_tags(None) == []
    assert tags.create_tag(None, TagCreate(name="SEO")) is None
