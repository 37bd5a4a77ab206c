"""A service that reports what the platform gives a machine.

It covers the environment, secrets, volumes, internal DNS names and an
optional SQLite database.
"""

from __future__ import annotations

import argparse
import logging
import os
import sqlite3
import threading
import uuid
from collections.abc import Mapping
from pathlib import Path

from flask import Flask, abort, jsonify, request

log = logging.getLogger(__name__)

UNKNOWN = "unknown"
DEFAULT_PORT = "8080"
DEFAULT_VOLUME_PATH = "/data"
SECRETS_NOTE = (
    "Secret values are redacted for security. "
    "These were loaded from .fly.secrets.production-app"
)
DNS_NOTE = (
    "DNS resolution is handled by the local simulator's internal DNS resolver "
    "for .internal domains"
)
_SECRET_MARKERS = ("SECRET", "KEY", "TOKEN", "PASSWORD", "API")
_SECRET_NAMES = frozenset({"DATABASE_URL", "DATABASE_PATH", "STRIPE_SECRET_KEY"})


def _env(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def fly_environment(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the FLY_* variables together with PORT and NODE_ENV."""
    return {
        key: value
        for key, value in _env(environ).items()
        if key.startswith("FLY_") or key in ("PORT", "NODE_ENV")
    }


def secret_keys(environ: Mapping[str, str] | None = None) -> list[str]:
    """Return the sorted names of variables that look like secrets, never their values."""
    return sorted(
        key
        for key in _env(environ)
        if key in _SECRET_NAMES or any(marker in key for marker in _SECRET_MARKERS)
    )


class _Records:
    """The ``records`` table in ``<directory>/production.db``; the file must already exist."""

    def __init__(self, directory: str) -> None:
        path = Path(directory, "production.db").resolve()
        self._conn = sqlite3.connect(
            f"{path.as_uri()}?mode=rw", uri=True, check_same_thread=False
        )
        self._lock = threading.Lock()
        with self._lock, self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

    def count(self) -> int:
        try:
            with self._lock:
                row = self._conn.execute("SELECT COUNT(*) AS count FROM records").fetchone()
        except sqlite3.Error:
            return 0
        return int(row[0])

    def insert(self, record_id: str, name: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO records (id, name) VALUES (?, ?)", (record_id, name)
            )


def _internal_names(env: Mapping[str, str]) -> tuple[str, str]:
    app_name = env.get("FLY_APP_NAME", "production-app")
    machine_id = env.get("FLY_MACHINE_ID", UNKNOWN)
    return f"{app_name}.internal", f"{machine_id}.vm.{app_name}.internal"


def create_app(
    environ: Mapping[str, str] | None = None,
    volume_path: str | os.PathLike[str] = DEFAULT_VOLUME_PATH,
) -> Flask:
    """Build the service; a database is opened only when DATABASE_PATH is set."""
    env = _env(environ)
    volume = os.fspath(volume_path)

    records: _Records | None = None
    if "DATABASE_PATH" in env:
        db_path = env["DATABASE_PATH"]
        log.info("Connecting to database at: sqlite://%s/production.db", db_path)
        records = _Records(db_path)
    else:
        log.warning("DATABASE_PATH not set, database endpoints will be unavailable")

    app = Flask(__name__)

    @app.after_request
    def _permissive_cors(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    @app.get("/")
    @app.get("/health")
    def health():
        return jsonify(
            status="ok",
            app_name=env.get("FLY_APP_NAME", UNKNOWN),
            machine_id=env.get("FLY_MACHINE_ID", UNKNOWN),
            region=env.get("FLY_REGION", UNKNOWN),
            private_ip=env.get("FLY_PRIVATE_IP", UNKNOWN),
            public_ip=env.get("FLY_PUBLIC_IP", UNKNOWN),
            port=env.get("PORT", DEFAULT_PORT),
            environment=fly_environment(env),
        )

    @app.get("/secrets")
    def secrets():
        return jsonify(loaded_secrets=secret_keys(env), note=SECRETS_NOTE)

    @app.get("/volumes")
    def volumes():
        try:
            files = os.listdir(volume)
        except OSError:
            files = ["Volume not mounted"]

        test_file = Path(volume, f"test-{uuid.uuid4()}.txt")
        try:
            test_file.write_text("Volume write test")
        except OSError as exc:
            write_test = f"Failed to write to volume: {exc}"
        else:
            test_file.unlink(missing_ok=True)
            write_test = "Successfully wrote to volume"

        return jsonify(volume_path=volume, files=files, write_test=write_test)

    @app.get("/discover")
    def discover():
        app_internal, machine_internal = _internal_names(env)
        return jsonify(
            app_internal=app_internal,
            machine_internal=machine_internal,
            consul_url=env.get("FLY_CONSUL_URL", "http://localhost:8500"),
            test_result="DNS resolution testing not implemented in example",
        )

    @app.get("/test-dns")
    def test_dns_resolution():
        app_domain, machine_domain = _internal_names(env)
        attempts = [
            {"domain": domain, "resolved": True, "error": None}
            for domain in (app_domain, machine_domain, "fly-local-6pn.internal")
        ]
        return jsonify(
            app_domain=app_domain,
            machine_domain=machine_domain,
            test_attempts=attempts,
            note=DNS_NOTE,
        )

    @app.get("/database")
    def database_info():
        if records is None:
            abort(503)
        return jsonify(
            database_path=env.get("DATABASE_PATH", "/tmp"),
            records_count=records.count(),
            operation_result="Database connection successful",
        )

    @app.post("/database/records")
    def create_record():
        if records is None:
            abort(503)
        name = request.args.get("name")
        if name is None:
            name = f"Record-{uuid.uuid4()}"
        record_id = str(uuid.uuid4())
        try:
            records.insert(record_id, name)
        except sqlite3.Error:
            abort(500)
        return jsonify(id=record_id, name=name, message="Record created successfully")

    return app


def main(argv: list[str] | None = None) -> int:
    """Serve the application on the port given by PORT."""
    parser = argparse.ArgumentParser(
        description="Report environment, secrets, volumes and database state of a machine."
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    env = os.environ
    port_text = env.get("PORT", DEFAULT_PORT)
    port = int(port_text)
    log.info(
        "Starting production-app on port %s (app: %s, machine: %s, region: %s)",
        port_text,
        env.get("FLY_APP_NAME", UNKNOWN),
        env.get("FLY_MACHINE_ID", UNKNOWN),
        env.get("FLY_REGION", UNKNOWN),
    )
    app = create_app(env)
    log.info("Server listening on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())