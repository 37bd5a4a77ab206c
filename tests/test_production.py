import os
import sqlite3

import pytest

from flysim.production import (
    DNS_NOTE,
    SECRETS_NOTE,
    create_app,
    fly_environment,
    secret_keys,
)


@pytest.fixture
def db_env(tmp_path):
    db_dir = tmp_path / "db"
    db_dir.mkdir()
    (db_dir / "production.db").touch()
    return {"DATABASE_PATH": str(db_dir)}


def test_fly_environment_keeps_fly_port_and_node_env():
    environ = {
        "FLY_APP_NAME": "demo",
        "FLY_REGION": "lhr",
        "PORT": "9000",
        "NODE_ENV": "production",
        "HOME": "/root",
        "MY_FLY_THING": "x",
    }
    assert fly_environment(environ) == {
        "FLY_APP_NAME": "demo",
        "FLY_REGION": "lhr",
        "PORT": "9000",
        "NODE_ENV": "production",
    }


def test_secret_keys_sorted_and_filtered():
    environ = {
        "STRIPE_SECRET_KEY": "secret",
        "AUTH_TOKEN": "token",
        "DATABASE_URL": "sqlite:///x",
        "DATABASE_PATH": "/litefs",
        "API_HOST": "h",
        "ADMIN_PASSWORD": "password",
        "HOME": "/root",
        "PATH": "/bin",
    }
    result = secret_keys(environ)
    assert result == sorted(result)
    assert set(result) == {
        "STRIPE_SECRET_KEY",
        "AUTH_TOKEN",
        "DATABASE_URL",
        "DATABASE_PATH",
        "API_HOST",
        "ADMIN_PASSWORD",
    }


def test_health_reports_environment(tmp_path):
    environ = {
        "FLY_APP_NAME": "demo",
        "FLY_MACHINE_ID": "m123",
        "FLY_REGION": "ams",
        "FLY_PRIVATE_IP": "fdaa::2",
        "FLY_PUBLIC_IP": "10.0.0.2",
        "PORT": "9000",
        "OTHER": "x",
    }
    client = create_app(environ, volume_path=tmp_path).test_client()
    for path in ("/", "/health"):
        body = client.get(path).get_json()
        assert body["status"] == "ok"
        assert body["app_name"] == "demo"
        assert body["machine_id"] == "m123"
        assert body["region"] == "ams"
        assert body["private_ip"] == "fdaa::2"
        assert body["public_ip"] == "10.0.0.2"
        assert body["port"] == "9000"
        assert body["environment"] == fly_environment(environ)


def test_health_defaults(tmp_path):
    body = create_app({}, volume_path=tmp_path).test_client().get("/health").get_json()
    assert body["app_name"] == "unknown"
    assert body["region"] == "unknown"
    assert body["port"] == "8080"
    assert body["environment"] == {}


def test_cors_header_present(tmp_path):
    response = create_app({}, volume_path=tmp_path).test_client().get("/health")
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_secrets_endpoint_lists_names_only(tmp_path):
    environ = {"MY_SECRET": "secret", "HOME": "/root"}
    body = create_app(environ, volume_path=tmp_path).test_client().get("/secrets").get_json()
    assert body["loaded_secrets"] == ["MY_SECRET"]
    assert body["note"] == SECRETS_NOTE
    assert "secret" not in body["loaded_secrets"]


def test_volumes_lists_files_and_cleans_up(tmp_path):
    (tmp_path / "a.txt").write_text("hello")
    body = create_app({}, volume_path=tmp_path).test_client().get("/volumes").get_json()
    assert body["volume_path"] == str(tmp_path)
    assert body["files"] == ["a.txt"]
    assert body["write_test"] == "Successfully wrote to volume"
    assert os.listdir(tmp_path) == ["a.txt"]


def test_volumes_not_mounted(tmp_path):
    missing = tmp_path / "missing"
    body = create_app({}, volume_path=missing).test_client().get("/volumes").get_json()
    assert body["files"] == ["Volume not mounted"]
    assert body["write_test"].startswith("Failed to write to volume:")


def test_discover_uses_app_and_machine(tmp_path):
    environ = {"FLY_APP_NAME": "demo", "FLY_MACHINE_ID": "m1"}
    body = create_app(environ, volume_path=tmp_path).test_client().get("/discover").get_json()
    assert body["app_internal"] == "demo.internal"
    assert body["machine_internal"] == "m1.vm.demo.internal"
    assert body["consul_url"] == "http://localhost:8500"
    assert body["test_result"] == "DNS resolution testing not implemented in example"


def test_discover_defaults(tmp_path):
    body = create_app({}, volume_path=tmp_path).test_client().get("/discover").get_json()
    assert body["app_internal"] == "production-app.internal"
    assert body["machine_internal"] == "unknown.vm.production-app.internal"


def test_dns_test_lists_three_domains(tmp_path):
    environ = {"FLY_APP_NAME": "demo", "FLY_MACHINE_ID": "m1"}
    body = create_app(environ, volume_path=tmp_path).test_client().get("/test-dns").get_json()
    assert body["app_domain"] == "demo.internal"
    assert body["machine_domain"] == "m1.vm.demo.internal"
    assert [a["domain"] for a in body["test_attempts"]] == [
        "demo.internal",
        "m1.vm.demo.internal",
        "fly-local-6pn.internal",
    ]
    assert all(a["resolved"] and a["error"] is None for a in body["test_attempts"])
    assert body["note"] == DNS_NOTE


def test_database_endpoints_unavailable_without_path(tmp_path):
    client = create_app({}, volume_path=tmp_path).test_client()
    assert client.get("/database").status_code == 503
    assert client.post("/database/records").status_code == 503


def test_database_missing_file_fails(tmp_path):
    with pytest.raises(sqlite3.OperationalError):
        create_app({"DATABASE_PATH": str(tmp_path / "nowhere")}, volume_path=tmp_path)


def test_create_record_and_count(db_env, tmp_path):
    client = create_app(db_env, volume_path=tmp_path).test_client()
    before = client.get("/database").get_json()
    assert before["records_count"] == 0
    assert before["database_path"] == db_env["DATABASE_PATH"]
    assert before["operation_result"] == "Database connection successful"

    created = client.post("/database/records", query_string={"name": "alpha"}).get_json()
    assert created["name"] == "alpha"
    assert created["message"] == "Record created successfully"

    assert client.get("/database").get_json()["records_count"] == 1


def test_create_record_default_name(db_env, tmp_path):
    client = create_app(db_env, volume_path=tmp_path).test_client()
    first = client.post("/database/records").get_json()
    second = client.post("/database/records").get_json()
    assert first["name"].startswith("Record-")
    assert first["id"] != second["id"] and first["name"] != second["name"]
    assert client.get("/database").get_json()["records_count"] == 2