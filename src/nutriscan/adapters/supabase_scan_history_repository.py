"""Supabase repository for the scan ledger."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from nutriscan.services.quota import ScanHistoryRepository


@dataclass
class SupabaseScanHistoryRepository(ScanHistoryRepository):
    """Supabase implementation for scan history counting."""

    client: Client

    def count_scans(self, user_id: UUID, start: datetime, end: datetime) -> int:
        """Count scans in ``[start, end)``."""
        response = (
            self.client.table("scan_history")
            .select("id", count="exact", head=True)
            .eq("user_id", str(user_id))
            .gte("created_at", start.isoformat())
            .lt("created_at", end.isoformat())
            .execute()
        )
        return int(response.count or 0)

    def add_scan(self, user_id: UUID, created_at: datetime) -> None:
        """Append a scan row."""
        response = (
            self.client.table("scan_history")
            .insert({"user_id": str(user_id), "created_at": created_at.isoformat()})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to record scan history")
