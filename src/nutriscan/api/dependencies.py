"""Shared FastAPI dependencies."""

from uuid import UUID

from fastapi import Header


async def current_user_id(x_user_id: UUID = Header()) -> UUID:
    """Return the user id forwarded by the authenticating gateway."""
    return x_user_id
