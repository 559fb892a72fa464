"""Resolve a product name to its Airtable record id, creating the record when absent.

The lookup filters with ``pyairtable.formulas.match`` and then re-checks the name
field client-side, so matching is case-sensitive and byte-for-byte on the
submitted string. Nothing is normalized: "Widget" and "widget " are different
products.

When several rows share a name the oldest one wins (``createdTime``, then
record id).

Read-then-create is not atomic. Two concurrent resolutions of the same new
name can each create a row; Airtable offers no transaction or unique
constraint to prevent it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pyairtable.formulas import match

from app.config.logger import app_logger
from app.db.airtable_db import AirtableStore
from app.utils.errors import ResolutionError, StoreError


def pick_oldest(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Deterministic tie-break between rows sharing a name."""
    return min(records, key=lambda r: (r.get("createdTime") or "", r.get("id") or ""))


class RecordLinkingResolver:
    """Find-or-create lookup against the reference table."""

    def __init__(self, store: AirtableStore, table: str, name_field: str):
        self.store = store
        self.table = table
        self.name_field = name_field

    async def find(self, name: str) -> Optional[str]:
        """Return the id of the row named exactly ``name``, or ``None``."""
        try:
            records = await self.store.list_records(
                self.table,
                formula=str(match({self.name_field: name})),
            )
        except StoreError as e:
            app_logger.error(f"Lookup of '{name}' in '{self.table}' failed: {e}")
            raise ResolutionError("lookup", name, e) from e

        matches = [r for r in records if (r.get("fields") or {}).get(self.name_field) == name and r.get("id")]
        if not matches:
            return None
        if len(matches) > 1:
            app_logger.warning(
                f"{len(matches)} rows in '{self.table}' are named '{name}'; using the oldest"
            )
        return pick_oldest(matches)["id"]

    async def create(self, name: str) -> str:
        """Create a row with only the name field set and return its id."""
        try:
            record = await self.store.create_record(self.table, {self.name_field: name})
        except StoreError as e:
            app_logger.error(f"Creating '{name}' in '{self.table}' failed: {e}")
            raise ResolutionError("create", name, e) from e

        record_id = record.get("id")
        if not record_id:
            app_logger.error(f"Airtable returned no id for new '{self.table}' row '{name}'")
            raise ResolutionError("create", name)
        return record_id

    async def resolve_or_create(self, name: str) -> str:
        """Map a product name to a record id, creating the record if needed."""
        existing_id = await self.find(name)
        if existing_id:
            app_logger.info(f"Linked record found for '{name}': {existing_id}")
            return existing_id

        app_logger.info(f"No '{self.table}' row named '{name}'; creating one")
        new_id = await self.create(name)
        app_logger.info(f"Linked record created for '{name}': {new_id}")
        return new_id
