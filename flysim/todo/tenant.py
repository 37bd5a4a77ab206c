"""Provisioning a per-user tenant app and machine through the machines API."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from flysim.todo.errors import TenantProvisioningError

log = logging.getLogger(__name__)

API_URL_VARIABLE = "FLYSIM_API_URL"
DEFAULT_API_URL = "http://host.docker.internal:4280"
TENANT_IMAGE = "sqlite-app:latest"
_APP_PREFIX = "todo-user-"
_ID_PREFIX_LENGTH = 8


def _app_name(user_id: str) -> str:
    if len(user_id) < _ID_PREFIX_LENGTH:
        raise ValueError(f"user id must be at least {_ID_PREFIX_LENGTH} characters")
    return f"{_APP_PREFIX}{user_id[:_ID_PREFIX_LENGTH]}"


def build_machine_request(app_name: str, user_id: str, email: str, region: str) -> dict[str, Any]:
    """Build the body that creates the tenant's machine."""
    return {
        "name": f"{app_name}-machine",
        "region": region,
        "config": {
            "image": TENANT_IMAGE,
            "guest": {"cpu_kind": "shared", "cpus": 1, "memory_mb": 256},
            "env": {
                "USER_ID": user_id,
                "USER_EMAIL": email,
                "TENANT_REGION": region,
                "DATABASE_PATH": "/data",
            },
            "services": [
                {
                    "ports": [{"port": 3000, "handlers": ["http"]}],
                    "protocol": "tcp",
                    "internal_port": 3000,
                }
            ],
            "mounts": [{"volume": f"user_data_{user_id}", "path": "/data"}],
        },
    }


def _status_text(response: requests.Response) -> str:
    return f"{response.status_code} {response.reason or ''}".rstrip()


def provision_tenant_app(
    user_id: str, email: str, region: str, api_url: str | None = None
) -> tuple[str, str]:
    """Create the user's app and machine; return the app name and machine id.

    A failed app creation is tolerated (the app may already exist); a failed
    machine creation raises TenantProvisioningError.
    """
    base = (api_url or os.environ.get(API_URL_VARIABLE, DEFAULT_API_URL)).rstrip("/")
    app_name = _app_name(user_id)
    log.info("Provisioning tenant app %s for user %s in region %s", app_name, email, region)

    try:
        response = requests.post(
            f"{base}/v1/apps", json={"app_name": app_name, "org_slug": "personal"}
        )
    except requests.RequestException as exc:
        raise TenantProvisioningError(f"Failed to create app: {exc}") from exc
    if not response.ok:
        log.warning(
            "App creation answered %s - %s; continuing", _status_text(response), response.text
        )

    try:
        response = requests.post(
            f"{base}/v1/apps/{app_name}/machines",
            json=build_machine_request(app_name, user_id, email, region),
        )
    except requests.RequestException as exc:
        raise TenantProvisioningError(f"Failed to create machine: {exc}") from exc
    if not response.ok:
        log.error("Failed to create machine: %s - %s", _status_text(response), response.text)
        raise TenantProvisioningError(f"Failed to create machine: {_status_text(response)}")

    try:
        machine = response.json()
        machine_id = machine["id"]
        state = machine["state"]
        if not isinstance(machine_id, str) or not isinstance(state, str):
            raise TypeError("id and state must be strings")
    except (ValueError, KeyError, TypeError) as exc:
        raise TenantProvisioningError(f"Failed to parse machine response: {exc}") from exc

    log.info("Successfully provisioned tenant app %s with machine %s", app_name, machine_id)
    return app_name, machine_id


def tenant_app_url(app_name: str) -> str:
    """Return the local URL under which the tenant app is reached."""
    return f"http://localhost/apps/{app_name}"