"""Save a generated description to Airtable, linking it to its product."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from app.api.descriptions.schemas import SaveDescriptionRequest, SavedDescription
from app.config.logger import app_logger
from app.config.settings import Settings
from app.db.airtable_db import AirtableStore
from app.services.record_linking import RecordLinkingResolver
from app.utils.errors import StoreError

# Column names of the descriptions table
PRIMARY_FIELD = "Product Name"
KEY_FEATURES_FIELD = "Key Features"
TARGET_AUDIENCE_FIELD = "Target Audience"
DESCRIPTION_LENGTH_FIELD = "Description Length"
GENERATED_TEXT_FIELD = "Generated Text"


class DescriptionSaveService:
    """Validate-resolve-write pipeline behind POST /save-description."""

    def __init__(
        self,
        settings: Settings,
        store: AirtableStore,
        resolver: Optional[RecordLinkingResolver] = None,
    ):
        self.settings = settings
        self.store = store
        self.table = settings.AIRTABLE_DESCRIPTIONS_TABLE
        self.link_field = settings.AIRTABLE_PRODUCT_LINK_FIELD
        self.resolver = resolver or RecordLinkingResolver(
            store,
            table=settings.AIRTABLE_PRODUCTS_TABLE,
            name_field=settings.AIRTABLE_PRODUCT_NAME_FIELD,
        )

    def build_fields(self, request: SaveDescriptionRequest, linked_ids: List[str]) -> Dict[str, Any]:
        return {
            PRIMARY_FIELD: request.record_id,
            self.link_field: linked_ids,
            KEY_FEATURES_FIELD: request.key_features,
            TARGET_AUDIENCE_FIELD: request.target_audience,
            DESCRIPTION_LENGTH_FIELD: request.description_length,
            GENERATED_TEXT_FIELD: request.generated_text,
        }

    async def save(self, request: SaveDescriptionRequest) -> SavedDescription:
        """Resolve the optional product link, then create the description row.

        Any failure (lookup, product creation, row creation) propagates and no
        description row is written.
        """
        linked_ids: List[str] = []
        product_name = request.linked_product_name
        if product_name:
            linked_ids = [await self.resolver.resolve_or_create(product_name)]

        fields = self.build_fields(request, linked_ids)
        app_logger.info(
            f"Saving description '{request.record_id}' to '{self.table}' (linked: {linked_ids or 'none'})"
        )
        record = await self.store.create_record(self.table, fields)
        if not record.get("id"):
            app_logger.error(f"Airtable returned no id for new '{self.table}' row '{request.record_id}'")
            raise StoreError("Airtable create returned no record id.")

        return SavedDescription(
            id=record["id"],
            created_time=record.get("createdTime"),
            record_id=request.record_id,
            linked_product_ids=linked_ids,
            key_features=request.key_features,
            target_audience=request.target_audience,
            description_length=request.description_length,
            generated_text=request.generated_text,
            fields=record.get("fields") or {},
        )
