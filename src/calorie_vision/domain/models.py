"""Domain models for the authenticated user."""

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """Represents the identity returned by the backend on login."""

    user_id: str
    name: str = ""
    email: str = ""
