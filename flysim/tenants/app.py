"""The multi-tenant web service: per-tenant item lists backed by SQLite."""

from __future__ import annotations

import argparse
import html
import logging
import uuid
from datetime import datetime, timezone

from flask import (
    Flask,
    abort,
    current_app,
    g,
    jsonify,
    render_template_string,
    request,
)

from flysim.tenants.config import Config
from flysim.tenants.db import TenantDatabases, init_db_directory
from flysim.tenants.middleware import extract_tenant_id

log = logging.getLogger(__name__)

_INDEX_TEMPLATE = """<!DOCTYPE html>
<html>
<head><title>Multi-Tenant Application</title></head>
<body>
<h1>Multi-Tenant Application</h1>
<h2>Tenants</h2>
{% if tenants %}
<ul>
{% for tenant in tenants %}<li><a href="/tenant/{{ tenant }}">{{ tenant }}</a></li>
{% endfor %}
</ul>
{% else %}
<p>No tenants yet.</p>
{% endif %}
</body>
</html>
"""

_TENANT_TEMPLATE = """<!DOCTYPE html>
<html>
<head><title>Tenant {{ tenant_name }}</title></head>
<body>
<h1>Tenant: {{ tenant_name }}</h1>
<p>Total items: {{ item_count }}</p>
<ul>
{% for item in items %}<li>{{ item.name }}{% if item.description %} - {{ item.description }}{% endif %} ({{ item.created_at }})</li>
{% endfor %}
</ul>
</body>
</html>
"""

_ITEM_COLUMNS = ("id", "name", "description", "created_at", "updated_at")


def _item(row) -> dict:
    return {column: row[column] for column in _ITEM_COLUMNS}


def _databases() -> TenantDatabases:
    return current_app.extensions["tenant_databases"]


def _is_http_error(err: Exception) -> bool:
    """Tell whether ``err`` is an HTTP error raised by ``abort`` or routing."""
    return isinstance(getattr(err, "code", None), int) and callable(
        getattr(err, "get_response", None)
    )


def _fetch_items(tenant: str, limit: int | None = None) -> list[dict]:
    conn = _databases().get(tenant)
    query = "SELECT * FROM items ORDER BY created_at DESC"
    if limit is not None:
        query += f" LIMIT {int(limit)}"
    return [_item(row) for row in conn.execute(query)]


def _create_item(tenant: str):
    payload = request.get_json(silent=False)
    if not isinstance(payload, dict) or not isinstance(payload.get("name"), str):
        abort(422, description="Request body must be an object with a string 'name'")
    description = payload.get("description")
    if description is not None and not isinstance(description, str):
        abort(422, description="'description' must be a string")

    now = datetime.now(timezone.utc).isoformat()
    item = {
        "id": str(uuid.uuid4()),
        "name": payload["name"],
        "description": description,
        "created_at": now,
        "updated_at": now,
    }
    conn = _databases().get(tenant)
    with conn:
        conn.execute(
            "INSERT INTO items (id, name, description, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            tuple(item[column] for column in _ITEM_COLUMNS),
        )
        conn.execute("UPDATE tenant_info SET item_count = item_count + 1 WHERE id = 1")
    return jsonify(item), 201


def create_app(config: Config | None = None) -> Flask:
    """Build the Flask application for the given configuration."""
    config = Config.from_env() if config is None else config
    app = Flask(__name__)
    app.config["TENANT_CONFIG"] = config
    app.extensions["tenant_databases"] = init_db_directory(config.database_path)

    @app.before_request
    def _resolve_tenant():
        g.tenant = extract_tenant_id(request.headers, request.path)
        log.debug("Processing request for tenant: %s", g.tenant)

    @app.errorhandler(Exception)
    def _internal_error(err):
        if _is_http_error(err):
            return err
        log.error("Application error: %r", err)
        return f"Internal server error: {err}", 500

    @app.get("/")
    def index():
        tenants = _databases().list_tenants()
        return render_template_string(_INDEX_TEMPLATE, tenants=tenants)

    @app.get("/api/tenants")
    def list_tenants_api():
        return jsonify(_databases().list_tenants())

    @app.get("/tenant/<tenant>")
    def tenant_dashboard(tenant):
        items = _fetch_items(tenant, limit=10)
        conn = _databases().get(tenant)
        item_count = conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
        return render_template_string(
            _TENANT_TEMPLATE, tenant_name=tenant, items=items, item_count=item_count
        )

    @app.get("/tenant/<path_tenant>/items")
    def list_items(path_tenant):
        items = _fetch_items(g.tenant)
        entries = "".join(
            f"<li>{html.escape(item['name'])} - {html.escape(item['description'] or '')}</li>"
            for item in items
        )
        return f"<h2>Items for tenant: {html.escape(g.tenant)}</h2><ul>{entries}</ul>"

    @app.post("/tenant/<path_tenant>/items")
    def create_item(path_tenant):
        return _create_item(g.tenant)

    @app.get("/api/items")
    def list_items_api():
        return jsonify(_fetch_items(g.tenant))

    @app.post("/api/items")
    def create_item_api():
        return _create_item(g.tenant)

    @app.get("/health")
    def health_check():
        return "OK"

    return app


def main(argv: list[str] | None = None) -> int:
    """Run the multi-tenant service on the configured port."""
    parser = argparse.ArgumentParser(
        description="Multi-tenant item service; configured through DATABASE_PATH and PORT."
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log.info("Starting Multi-Tenant Application")

    config = Config.from_env()
    app = create_app(config)
    log.info("Listening on 0.0.0.0:%d", config.port)
    app.run(host="0.0.0.0", port=config.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())