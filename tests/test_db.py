import pytest

from flysim.tenants.db import TenantDatabases, init_db_directory, list_all_tenants


@pytest.fixture
def databases(tmp_path):
    with init_db_directory(tmp_path / "data") as dbs:
        yield dbs


def test_init_creates_nested_directory(tmp_path):
    target = tmp_path / "a" / "b"
    dbs = init_db_directory(target)
    assert target.is_dir()
    assert dbs.root == target


def test_get_creates_file_and_schema(databases):
    conn = databases.get("acme")
    assert (databases.root / "acme.db").is_file()
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"items", "tenant_info"} <= tables
    info = conn.execute("SELECT id, name, item_count FROM tenant_info").fetchall()
    assert [tuple(row) for row in info] == [(1, "Default Tenant", 0)]


def test_get_is_cached(databases):
    assert databases.get("acme") is databases.get("acme")
    assert databases.get("acme") is not databases.get("beta")


def test_migrations_are_idempotent(databases):
    databases.get("acme")
    databases.close()
    conn = databases.get("acme")
    count = conn.execute("SELECT COUNT(*) FROM tenant_info").fetchone()[0]
    assert count == 1


def test_list_tenants(databases):
    databases.get("acme")
    databases.get("beta")
    assert sorted(databases.list_tenants()) == ["acme", "beta"]


def test_list_all_tenants_ignores_other_files(tmp_path):
    (tmp_path / "one.db").write_bytes(b"")
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "two.db-journal").write_bytes(b"")
    assert list_all_tenants(tmp_path) == ["one"]


def test_list_all_tenants_trims_repeated_suffix(tmp_path):
    (tmp_path / "x.db.db").write_bytes(b"")
    assert list_all_tenants(tmp_path) == ["x"]


def test_list_all_tenants_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        list_all_tenants(tmp_path / "missing")


def test_close_empties_cache(tmp_path):
    dbs = TenantDatabases(tmp_path)
    first = dbs.get("acme")
    dbs.close()
    second = dbs.get("acme")
    assert first is not second
    dbs.close()