"""Identifier generation shared by all entities."""

from uuid import uuid4


def new_id() -> str:
    """Return a fresh collision-resistant identifier."""
    return uuid4().hex
