"""Scripted tours of the machines API: a single machine, and a primary/replica cluster."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TextIO

import requests

DEFAULT_BASE_URL = "http://localhost:4280/v1"


class ApiError(Exception):
    """The API answered with a status outside the 2xx range."""

    def __init__(self, status_code: int, text: str) -> None:
        super().__init__(f"HTTP {status_code}: {text}")
        self.status_code = status_code
        self.text = text


class MachinesClient:
    """A thin client for the apps and machines endpoints."""

    def __init__(
        self, base_url: str = DEFAULT_BASE_URL, session: requests.Session | None = None
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()

    def _send(self, method: str, path: str, payload: Any = None) -> requests.Response:
        response = self.session.request(method, f"{self.base_url}{path}", json=payload)
        if not 200 <= response.status_code < 300:
            raise ApiError(response.status_code, response.text)
        return response

    def create_app(self, app_name: str, org_slug: str = "personal") -> None:
        """Create an app in the given organisation."""
        self._send("POST", "/apps", {"app_name": app_name, "org_slug": org_slug})

    def delete_app(self, app_name: str) -> None:
        """Delete an app."""
        self._send("DELETE", f"/apps/{app_name}")

    def create_machine(self, app_name: str, request: Mapping[str, Any]) -> dict:
        """Create a machine and return the API's description of it."""
        return self._send("POST", f"/apps/{app_name}/machines", request).json()

    def get_machine(self, app_name: str, machine_id: str) -> dict:
        """Return the API's description of a machine."""
        return self._send("GET", f"/apps/{app_name}/machines/{machine_id}").json()

    def stop_machine(self, app_name: str, machine_id: str) -> None:
        """Stop a running machine."""
        self._send("POST", f"/apps/{app_name}/machines/{machine_id}/stop")

    def delete_machine(self, app_name: str, machine_id: str) -> None:
        """Delete a machine."""
        self._send("DELETE", f"/apps/{app_name}/machines/{machine_id}")


def machine_request(
    name: str,
    image: str = "alpine:latest",
    env: Mapping[str, str] | None = None,
    mounts: Iterable[tuple[str, str]] | None = None,
    services: Iterable[Mapping[str, Any]] | None = None,
    size: str | None = None,
) -> dict:
    """Build a machine-creation body in the local region; mounts are (volume, path) pairs."""
    config: dict[str, Any] = {"image": image}
    if size is not None:
        config["size"] = size
    if env is not None:
        config["env"] = dict(env)
    if services is not None:
        config["services"] = [dict(service) for service in services]
    if mounts is not None:
        config["mounts"] = [{"volume": volume, "path": path} for volume, path in mounts]
    return {"name": name, "region": "local", "config": config, "skip_launch": False}


def _http_service(port: int) -> dict:
    return {
        "ports": [{"port": port, "handlers": ["http"], "force_https": False}],
        "protocol": "tcp",
        "internal_port": port,
    }


def _machine_id(machine: Any) -> str:
    value = machine.get("id") if isinstance(machine, dict) else None
    return value if isinstance(value, str) else "unknown"


def run_basic(client: MachinesClient, out: TextIO | None = None) -> None:
    """Create an app and a machine with a volume, inspect, stop and delete them."""
    out = sys.stdout if out is None else out

    def say(text: str = "") -> None:
        print(text, file=out)

    app_name = "my-app"
    say("=== Basic Usage Walkthrough ===\n")

    say(f"1. Creating app '{app_name}'...")
    try:
        client.create_app(app_name)
    except ApiError as exc:
        say(f"   ✗ Failed to create app: {exc.text}")
        return
    say("   ✓ App created successfully")

    say("\n2. Creating machine with LiteFS volume...")
    request = machine_request(
        f"{app_name}-1",
        env={"DATABASE_URL": "/litefs/db.sqlite", "FLY_LITEFS_PRIMARY": "true"},
        mounts=[("sqlite_data", "/litefs")],
        services=[_http_service(8080)],
        size="shared-cpu-1x",
    )
    try:
        machine = client.create_machine(app_name, request)
    except ApiError as exc:
        say(f"   ✗ Failed to create machine: {exc.text}")
    else:
        machine_id = _machine_id(machine)
        say(f"   ✓ Machine created with ID: {machine_id}")
        say("   ✓ LiteFS is running for SQLite replication")

        say("\n3. Checking machine status...")
        try:
            status = client.get_machine(app_name, machine_id)
        except ApiError:
            pass
        else:
            say(f"   Machine state: {json.dumps(status.get('state'))}")
            say(f"   Private IP: {json.dumps(status.get('private_ip'))}")

        say("\n4. Stopping machine...")
        try:
            client.stop_machine(app_name, machine_id)
        except ApiError:
            pass
        else:
            say("   ✓ Machine stopped successfully")

        say("\n5. Cleaning up - deleting machine...")
        try:
            client.delete_machine(app_name, machine_id)
        except ApiError:
            pass
        else:
            say("   ✓ Machine deleted successfully")

    say("\n6. Cleaning up - deleting app...")
    try:
        client.delete_app(app_name)
    except ApiError:
        pass
    else:
        say("   ✓ App deleted successfully")

    say("\n=== Walkthrough completed ===")


def _wait_for_enter() -> None:
    sys.stdin.readline()


def _cluster_node(name: str, role: str, primary: bool, volume: str) -> dict:
    return machine_request(
        name,
        env={
            "DATABASE_URL": "/litefs/app.db",
            "FLY_LITEFS_PRIMARY": "true" if primary else "false",
            "NODE_ROLE": role,
        },
        mounts=[(volume, "/litefs")],
    )


def run_cluster(
    client: MachinesClient,
    out: TextIO | None = None,
    wait: Callable[[], object] | None = None,
) -> list[str]:
    """Create one primary and two replica nodes, wait, then remove everything.

    Returns the ids of the machines that were created.
    """
    out = sys.stdout if out is None else out
    wait = _wait_for_enter if wait is None else wait

    def say(text: str = "") -> None:
        print(text, file=out)

    app_name = "distributed-app"
    say("=== LiteFS Cluster Walkthrough ===\n")

    say(f"Creating app '{app_name}'...")
    try:
        client.create_app(app_name)
    except ApiError:
        pass

    machine_ids: list[str] = []

    say("\nCreating PRIMARY node...")
    try:
        machine = client.create_machine(
            app_name, _cluster_node(f"{app_name}-primary", "primary", True, "primary_data")
        )
    except ApiError:
        pass
    else:
        machine_id = _machine_id(machine)
        say(f"✓ Primary node created: {machine_id}")
        machine_ids.append(machine_id)

    for number in (1, 2):
        say(f"\nCreating REPLICA node {number}...")
        request = _cluster_node(
            f"{app_name}-replica-{number}",
            f"replica-{number}",
            False,
            f"replica_data_{number}",
        )
        try:
            machine = client.create_machine(app_name, request)
        except ApiError:
            continue
        machine_id = _machine_id(machine)
        say(f"✓ Replica node {number} created: {machine_id}")
        machine_ids.append(machine_id)

    say("\n=== LiteFS Cluster Setup Complete ===")
    say("Primary: 1 node")
    say("Replicas: 2 nodes")
    say("\nIn a real setup, LiteFS would now:")
    say("- Replicate SQLite changes from primary to replicas")
    say("- Handle automatic failover if primary fails")
    say("- Provide consistent reads across the cluster")

    say("\nPress Enter to clean up resources...")
    wait()

    say("Cleaning up...")
    for machine_id in machine_ids:
        try:
            client.delete_machine(app_name, machine_id)
        except ApiError:
            pass
    try:
        client.delete_app(app_name)
    except ApiError:
        pass

    say("✓ Cleanup complete")
    return machine_ids


def main(argv: list[str] | None = None) -> int:
    """Run one of the walkthroughs against a running API server."""
    parser = argparse.ArgumentParser(description="Walk through the machines API.")
    parser.add_argument("scenario", choices=("basic", "cluster"))
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    args = parser.parse_args(argv)

    client = MachinesClient(args.base_url)
    try:
        if args.scenario == "basic":
            run_basic(client)
        else:
            run_cluster(client)
    except requests.RequestException as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())