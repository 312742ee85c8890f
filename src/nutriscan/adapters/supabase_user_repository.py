"""Supabase-backed user repository."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from nutriscan.domain.users import UserRecord
from nutriscan.services.summary import UserRepository


@dataclass
class SupabaseUserRepository(UserRepository):
    """Supabase implementation for user lookups."""

    client: Client

    def get_user(self, user_id: UUID) -> UserRecord | None:
        """Return the user for an id, if present."""
        response = (
            self.client.table("users")
            .select("id, name, email")
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return UserRecord(
            id=UUID(row["id"]),
            name=str(row.get("name") or ""),
            email=row.get("email"),
        )
