"""Runtime settings for the multi-tenant service, read from the environment."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

_PORT_PATTERN = re.compile(r"\+?[0-9]+")
_MAX_PORT = 65535


def _parse_port(text: str) -> int:
    if not _PORT_PATTERN.fullmatch(text):
        raise ValueError(f"invalid port number: {text!r}")
    port = int(text)
    if port > _MAX_PORT:
        raise ValueError(f"port number out of range: {text!r}")
    return port


def _parse_bool(text: str) -> bool | None:
    return {"true": True, "false": False}.get(text)


@dataclass(frozen=True)
class Config:
    """Where tenant databases live, which port to serve on, and whether this node is primary."""

    database_path: str = "./data"
    port: int = 8080
    primary: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """Build a config from DATABASE_PATH, PORT and FLY_LITEFS_PRIMARY.

        An unparsable PORT raises ValueError; an unparsable primary flag
        falls back to True.
        """
        env = os.environ if environ is None else environ
        primary = _parse_bool(env.get("FLY_LITEFS_PRIMARY", "true"))
        return cls(
            database_path=env.get("DATABASE_PATH", "./data"),
            port=_parse_port(env.get("PORT", "8080")),
            primary=True if primary is None else primary,
        )