import pytest

from flysim.tenants.app import create_app
from flysim.tenants.config import Config


@pytest.fixture
def app(tmp_path):
    application = create_app(Config(database_path=str(tmp_path / "data"), port=8080, primary=True))
    yield application
    application.extensions["tenant_databases"].close()


@pytest.fixture
def client(app):
    return app.test_client()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.data == b"OK"


def test_create_and_list_items_via_api(client):
    created = client.post(
        "/api/items", json={"name": "Widget", "description": "Blue"}, headers={"X-Tenant": "Acme"}
    )
    assert created.status_code == 201
    body = created.get_json()
    assert body["name"] == "Widget"
    assert body["description"] == "Blue"
    assert body["created_at"] == body["updated_at"]

    listed = client.get("/api/items", headers={"X-Tenant": "acme"}).get_json()
    assert [item["id"] for item in listed] == [body["id"]]


def test_tenants_are_isolated(client):
    client.post("/api/items", json={"name": "Only A"}, headers={"X-Tenant": "a"})
    assert client.get("/api/items", headers={"X-Tenant": "b"}).get_json() == []
    assert sorted(client.get("/api/tenants").get_json()) == ["a", "b"]


def test_default_tenant_without_hints(client, app):
    client.post("/api/items", json={"name": "Thing"})
    assert client.get("/api/tenants").get_json() == ["default"]
    conn = app.extensions["tenant_databases"].get("default")
    assert conn.execute("SELECT item_count FROM tenant_info WHERE id = 1").fetchone()[0] == 1


def test_path_tenant_items_routes(client):
    created = client.post("/tenant/Shop/items", json={"name": "Lamp"})
    assert created.status_code == 201
    page = client.get("/tenant/shop/items")
    assert page.status_code == 200
    text = page.get_data(as_text=True)
    assert "Items for tenant: shop" in text
    assert "<li>Lamp - </li>" in text


def test_dashboard_shows_items_and_count(client):
    for name in ("First", "Second"):
        client.post("/api/items", json={"name": name}, headers={"X-Tenant": "acme"})
    page = client.get("/tenant/acme").get_data(as_text=True)
    assert "Tenant: acme" in page
    assert "First" in page and "Second" in page
    assert "Total items: 2" in page


def test_index_lists_tenants(client):
    client.post("/api/items", json={"name": "x"}, headers={"X-Tenant": "zeta"})
    page = client.get("/")
    assert page.status_code == 200
    assert 'href="/tenant/zeta"' in page.get_data(as_text=True)


def test_missing_name_is_rejected(client):
    response = client.post("/api/items", json={"description": "no name"})
    assert response.status_code == 422


def test_unknown_route_is_not_found(client):
    assert client.get("/nope").status_code == 404


def test_database_failure_returns_internal_error(client, app, tmp_path):
    app.extensions["tenant_databases"].root = tmp_path / "missing"
    response = client.get("/api/tenants")
    assert response.status_code == 500
    assert response.get_data(as_text=True).startswith("Internal server error:")