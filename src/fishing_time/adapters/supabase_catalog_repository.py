"""Supabase repository for durations, tables and users."""

from dataclasses import dataclass

from supabase import Client

from fishing_time.adapters.supabase_rows import (
    execute,
    parse_duration,
    parse_table,
    parse_user,
)
from fishing_time.domain.sessions import Duration, TableNumber, UserSnapshot
from fishing_time.services.catalog import CatalogRepository


@dataclass
class SupabaseCatalogRepository(CatalogRepository):
    """Supabase implementation for catalog lookups."""

    client: Client

    def list_durations(self) -> list[Duration]:
        """Return all durations."""
        response = execute(self.client.table("durations").select("id, name, seconds"))
        return [parse_duration(row) for row in response.data or []]

    def get_duration(self, duration_id: int) -> Duration | None:
        """Return a duration by id, if present."""
        response = execute(
            self.client.table("durations")
            .select("id, name, seconds")
            .eq("id", duration_id)
            .limit(1)
        )
        if not response.data:
            return None
        return parse_duration(response.data[0])

    def list_tables(self) -> list[TableNumber]:
        """Return all tables."""
        response = execute(self.client.table("table_numbers").select("id, number"))
        return [parse_table(row) for row in response.data or []]

    def get_table(self, table_id: int) -> TableNumber | None:
        """Return a table by id, if present."""
        response = execute(
            self.client.table("table_numbers")
            .select("id, number")
            .eq("id", table_id)
            .limit(1)
        )
        if not response.data:
            return None
        return parse_table(response.data[0])

    def get_user(self, user_id: int) -> UserSnapshot | None:
        """Return a user snapshot by id, if present."""
        response = execute(
            self.client.table("users")
            .select("id, name, avatar")
            .eq("id", user_id)
            .limit(1)
        )
        if not response.data:
            return None
        return parse_user(response.data[0])
