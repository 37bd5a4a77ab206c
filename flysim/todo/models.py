"""Records and form data of the todo service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

#: Region code -> human readable location, in the order offered to users.
AVAILABLE_REGIONS: Mapping[str, str] = MappingProxyType(
    {
        "iad": "Ashburn, Virginia (US)",
        "ord": "Chicago, Illinois (US)",
        "lax": "Los Angeles, California (US)",
        "lhr": "London, United Kingdom",
        "ams": "Amsterdam, Netherlands",
        "fra": "Frankfurt, Germany",
        "syd": "Sydney, Australia",
        "nrt": "Tokyo, Japan",
        "sin": "Singapore",
    }
)


def is_available_region(code: str) -> bool:
    """Tell whether ``code`` is one of the regions users may pick."""
    return code in AVAILABLE_REGIONS


@dataclass
class User:
    """A registered account."""

    id: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime


@dataclass
class UserApp:
    """A tenant app provisioned for a user in one region."""

    id: str
    user_id: str
    app_name: str
    region: str
    machine_id: str | None
    status: str
    created_at: datetime
    updated_at: datetime


@dataclass
class Todo:
    """One todo entry, optionally with an attached image stored as base64."""

    id: str
    user_id: str
    title: str
    description: str | None
    completed: bool
    image_data: str | None
    image_mime_type: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class LoginForm:
    """Credentials entered on the login page."""

    email: str
    password: str


@dataclass(frozen=True)
class SignupForm:
    """Account details and chosen region entered on the signup page."""

    email: str
    password: str
    region: str


@dataclass(frozen=True)
class CreateTodoForm:
    """A new todo's title and optional description."""

    title: str
    description: str | None = None


@dataclass(frozen=True)
class SessionUser:
    """The identity remembered in a logged-in session."""

    id: str
    email: str