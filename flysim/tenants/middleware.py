"""Working out which tenant a request belongs to."""

from __future__ import annotations

from collections.abc import Mapping

DEFAULT_TENANT = "default"
_MAX_TENANT_LENGTH = 50


def _header_text(value: str | None) -> str | None:
    """Return the header value if it is visible ASCII (or tab), otherwise None."""
    if value is None:
        return None
    if all(ch == "\t" or " " <= ch <= "~" for ch in value):
        return value
    return None


def sanitize_tenant_id(tenant: str) -> str:
    """Keep only alphanumerics, '-' and '_', cap the length at 50 and lower-case it."""
    kept = (ch for ch in tenant if ch.isalnum() or ch in "-_")
    return "".join(ch for _, ch in zip(range(_MAX_TENANT_LENGTH), kept)).lower()


def extract_subdomain_tenant(host: str) -> str | None:
    """Take the tenant from the first label of a host such as ``tenant1.example.com``."""
    parts = host.split(".")
    if len(parts) > 2:
        tenant = parts[0]
        if tenant and tenant != "www":
            return sanitize_tenant_id(tenant)
    return None


def extract_path_tenant(path: str) -> str | None:
    """Take the tenant from a path such as ``/tenant/tenant1/...``."""
    parts = [part for part in path.split("/") if part]
    if len(parts) >= 2 and parts[0] == "tenant":
        return sanitize_tenant_id(parts[1])
    return None


def extract_tenant_id(headers: Mapping[str, str], path: str) -> str:
    """Resolve the tenant from the X-Tenant header, the Host subdomain, then the path."""
    tenant = _header_text(headers.get("X-Tenant"))
    if tenant is not None:
        return sanitize_tenant_id(tenant)

    host = _header_text(headers.get("Host"))
    if host is not None:
        from_host = extract_subdomain_tenant(host)
        if from_host is not None:
            return from_host

    from_path = extract_path_tenant(path)
    if from_path is not None:
        return from_path

    return DEFAULT_TENANT