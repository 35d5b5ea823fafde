# tests/test_routers.py
import asyncio
import json

import pytest

from app.repositories.software_repo import SoftwareRepository
from app.routers import software as software_router
from app.services.catalog_view import CatalogView, LegacySoftwareSource

API = "/api/v1"


def test_health(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# ----- Products -----


def test_list_products_by_filter_is_publish_gated(client, admin_headers, make_product):
    make_product("Live", featured=True, featured_order=1)
    make_product("Draft", featured=True, featured_order=0, published=False)

    guest = client.get(f"{API}/products", params={"filter": "Featured"})
    admin = client.get(f"{API}/products", params={"filter": "Featured"}, headers=admin_headers)

    assert [p["name"] for p in guest.json()] == ["Live"]
    assert [p["name"] for p in admin.json()] == ["Draft", "Live"]


def test_product_filters_endpoint(client, make_product, make_tag, link):
    local, analytics = make_tag("Local"), make_tag("Analytics")
    link(make_product("P", tags=["Stale"]), analytics, 0)
    link(make_product("Q"), local, 0)

    response = client.get(f"{API}/products/filters")

    assert response.json() == ["Featured", "Free", "All", "Local", "Analytics"]


def test_get_product_by_slug(client, admin_headers, make_product, make_tag, link):
    tag = make_tag("SEO")
    p = make_product("Rank Tracker", published=False)
    link(p, tag, 0)

    assert client.get(f"{API}/products/rank-tracker").status_code == 404

    response = client.get(f"{API}/products/rank-tracker", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["product_tags"][0]["tag"]["name"] == "SEO"


def test_writes_require_authentication(client):
    response = client.post(f"{API}/products", json={"name": "New"})

    assert response.status_code == 401


def test_invalid_token_is_rejected(client):
    response = client.post(
        f"{API}/products",
        json={"name": "New"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401


def test_create_update_delete_product(client, admin_headers):
    created = client.post(
        f"{API}/products",
        json={"name": "Schema Builder", "featured": True},
        headers=admin_headers,
    )
    assert created.status_code == 201
    product = created.json()
    assert product["slug"] == "schema-builder"
    assert product["featured_order"] == 0

    patched = client.patch(
        f"{API}/products/{product['id']}",
        json={"published": True, "description": "Structured data"},
        headers=admin_headers,
    )
    assert patched.json()["published"] is True

    deleted = client.delete(f"{API}/products/{product['id']}", headers=admin_headers)
    assert deleted.status_code == 204
    assert client.get(f"{API}/products/schema-builder", headers=admin_headers).status_code == 404


def test_publish_and_system_list_endpoints(client, admin_headers, make_product):
    a = make_product("A", published=False)
    b = make_product("B")

    published = client.put(f"{API}/products/{a.id}/publish", json={"published": True}, headers=admin_headers)
    assert published.json()["published"] is True

    for p in (a, b):
        client.post(f"{API}/products/system/free/{p.id}", headers=admin_headers)

    order = client.put(
        f"{API}/products/system/free/order",
        json={"product_ids": [str(b.id), str(a.id)]},
        headers=admin_headers,
    )
    assert order.json() == {"success": True}

    listed = client.get(f"{API}/products", params={"filter": "Free"})
    assert [p["name"] for p in listed.json()] == ["B", "A"]


def test_set_product_tags(client, admin_headers, make_product, make_tag):
    tag = make_tag("SEO")
    p = make_product("P")

    response = client.put(f"{API}/products/{p.id}/tags", json={"tag_ids": [str(tag.id)]}, headers=admin_headers)

    assert response.json() == {"success": True}
    assert [x["name"] for x in client.get(f"{API}/products", params={"filter": "SEO"}).json()] == ["P"]


# ----- Tags -----


def test_tag_crud_and_order(client, admin_headers):
    ids = []
    for name in ("SEO", "Local", "Analytics"):
        response = client.post(f"{API}/tags", json={"name": name}, headers=admin_headers)
        assert response.status_code == 201
        ids.append(response.json()["id"])

    reserved = client.post(f"{API}/tags", json={"name": "Featured"}, headers=admin_headers)
    assert reserved.status_code == 400

    order = client.put(f"{API}/tags/order", json={"tag_ids": [ids[2], ids[0]]}, headers=admin_headers)
    assert order.json() == {"success": True}
    assert [t["name"] for t in client.get(f"{API}/tags").json()] == ["Analytics", "SEO", "Local"]

    assert client.delete(f"{API}/tags/{ids[0]}", headers=admin_headers).status_code == 204
    assert [(t["name"], t["order_index"]) for t in client.get(f"{API}/tags").json()] == [
        ("Analytics", 0),
        ("Local", 1),
    ]


def test_tag_membership_endpoints(client, admin_headers, make_product, make_tag):
    tag = make_tag("SEO")
    a, b = make_product("A"), make_product("B")

    for p in (a, b):
        added = client.post(f"{API}/tags/{tag.id}/products", json={"product_id": str(p.id)}, headers=admin_headers)
        assert added.json() == {"success": True}

    reordered = client.put(
        f"{API}/tags/{tag.id}/products/order",
        json={"product_slugs": ["b", "a"]},
        headers=admin_headers,
    )
    assert reordered.json() == {"success": True}
    assert [p["name"] for p in client.get(f"{API}/tags/{tag.id}/products").json()] == ["B", "A"]

    unknown = client.put(
        f"{API}/tags/{tag.id}/products/order",
        json={"product_slugs": ["a", "ghost"]},
        headers=admin_headers,
    )
    assert unknown.json() == {"success": False}

    both = client.put(
        f"{API}/tags/{tag.id}/products/order",
        json={"product_slugs": ["a"], "product_ids": [str(a.id)]},
        headers=admin_headers,
    )
    assert both.status_code == 400

    removed = client.delete(f"{API}/tags/{tag.id}/products/{a.id}", headers=admin_headers)
    assert removed.json() == {"success": True}
    assert [p["name"] for p in client.get(f"{API}/tags/{tag.id}/products").json()] == ["B"]


# ----- Configuration absent -----


def test_without_database_reads_are_empty_and_writes_503(offline_client, admin_headers):
    assert offline_client.get(f"{API}/products").json() == []
    assert offline_client.get(f"{API}/products", params={"filter": "SEO"}).json() == []
    assert offline_client.get(f"{API}/tags").json() == []
    assert offline_client.get(f"{API}/products/filters").json() == ["Featured", "Free", "All"]

    created = offline_client.post(f"{API}/products", json={"name": "X"}, headers=admin_headers)
    assert created.status_code == 503


# ----- Legacy software file -----


@pytest.fixture
def software_repo(tmp_path, monkeypatch):
    path = tmp_path / "software.json"
    path.write_text(
        json.dumps(
            {
                "metadata": {"lastUpdated": "", "version": "1.0.0", "totalSoftware": 1},
                "software": [
                    {"id": "one", "name": "One", "tags": ["SEO"], "releaseDate": "2024-01-01", "featured": True},
                ],
                "tags": ["Featured", "Free", "All", "SEO"],
            }
        ),
        encoding="utf-8",
    )
    repo = SoftwareRepository(path)
    monkeypatch.setattr(software_router, "repo", repo)
    return repo


def test_software_read(client, software_repo):
    body = client.get(f"{API}/software").json()

    assert body["software"][0]["releaseDate"] == "2024-01-01"
    assert body["tags"][-1] == "SEO"


def test_software_write_refused_on_read_only_deployment(client, admin_headers, software_repo):
    payload = client.get(f"{API}/software").json()

    response = client.put(f"{API}/software", json=payload, headers=admin_headers)

    assert response.json()["success"] is False


def test_software_write_when_writable(client, admin_headers, software_repo):
    software_repo.writable = True
    payload = client.get(f"{API}/software").json()
    payload["software"][0]["name"] = "Renamed"

    response = client.put(f"{API}/software", json=payload, headers=admin_headers)

    assert response.json()["success"] is True
    assert software_repo.load().software[0].name == "Renamed"


# ----- Catalog view -----


@pytest.fixture
def catalog(app, software_repo):
    view = CatalogView(LegacySoftwareSource(software_repo), poll_interval_seconds=0)
    asyncio.run(view.reload())
    app.state.catalog_view = view
    return view


def test_catalog_state(client, catalog):
    body = client.get(f"{API}/catalog").json()

    assert body["active_filter"] == "Featured"
    assert body["available_filters"] == ["Featured", "Free", "All", "SEO"]
    assert [p["id"] for p in body["products"]] == ["one"]
    assert body["connection"] == "disconnected"
    assert body["reorder_state"] == "idle"


def test_catalog_filter_query_does_not_change_active_filter(client, catalog):
    body = client.get(f"{API}/catalog", params={"filter": "Free"}).json()

    assert body["products"] == []
    assert catalog.active_filter == "Featured"


def test_catalog_admin_actions(client, admin_headers, catalog):
    assert client.put(f"{API}/catalog/filter", json={"filter_name": "SEO"}).status_code == 401

    selected = client.put(f"{API}/catalog/filter", json={"filter_name": "SEO"}, headers=admin_headers)
    assert selected.json()["active_filter"] == "SEO"

    out_of_range = client.post(f"{API}/catalog/move", json={"old_index": 0, "new_index": 4}, headers=admin_headers)
    assert out_of_range.status_code == 400

    no_realtime = client.post(f"{API}/catalog/reconnect", headers=admin_headers)
    assert no_realtime.status_code == 409


def test_catalog_unavailable_without_view(client):
    assert client.get(f"{API}/catalog").status_code == 503
