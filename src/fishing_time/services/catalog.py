"""Catalog lookups supplied by the surrounding storefront."""

from dataclasses import dataclass
from typing import Protocol

from fishing_time.domain.sessions import Duration, TableNumber, UserSnapshot


class CatalogRepository(Protocol):
    """Read-only access to durations, tables and users."""

    def list_durations(self) -> list[Duration]:
        """Return all purchasable durations."""

    def get_duration(self, duration_id: int) -> Duration | None:
        """Return a duration by id, if present."""

    def list_tables(self) -> list[TableNumber]:
        """Return all fishing stations."""

    def get_table(self, table_id: int) -> TableNumber | None:
        """Return a table by id, if present."""

    def get_user(self, user_id: int) -> UserSnapshot | None:
        """Return a user snapshot by id, if present."""


@dataclass
class CatalogService:
    """Service exposing catalog listings."""

    repository: CatalogRepository

    def list_durations(self) -> list[Duration]:
        """Return durations ordered from shortest to longest."""
        return sorted(
            self.repository.list_durations(), key=lambda d: d.length_in_seconds
        )

    def list_tables(self) -> list[TableNumber]:
        """Return tables ordered by label."""
        return sorted(self.repository.list_tables(), key=lambda t: t.label)
