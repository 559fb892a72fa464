"""Request and response schemas for the description endpoints."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DescriptionLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class GenerateRequest(BaseModel):
    """Request schema for POST /generate."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={"example": {
            "prompt": 'Generate a short product description for "Widget". Key features: fast. Target audience: devs.'
        }},
    )

    prompt: str = Field(..., min_length=1, description="Prompt forwarded verbatim to Gemini")


class GenerationRequest(BaseModel):
    """Form input the prompt is synthesized from."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_name: str = Field(..., min_length=1)
    key_features: str = Field(..., min_length=1)
    target_audience: str = Field(..., min_length=1)
    description_length: DescriptionLength = DescriptionLength.MEDIUM


class LinkedProductRef(BaseModel):
    """One element of the link field as sent by the UI."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None


class SaveDescriptionRequest(BaseModel):
    """Request schema for POST /save-description.

    Fields are accepted either in camelCase or under the Airtable column
    names the UI historically sent ("Product Name", "Key Features", ...).
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        json_schema_extra={"example": {
            "recordId": "R1",
            "linkedProduct": [{"name": "Widget"}],
            "keyFeatures": "fast",
            "targetAudience": "devs",
            "descriptionLength": "short",
            "generatedText": "A fast widget.",
        }},
    )

    record_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("recordId", "Product Name"),
        description="Value of the primary field of the new row",
    )
    linked_product: Optional[List[LinkedProductRef]] = Field(
        default=None, validation_alias=AliasChoices("linkedProduct", "Product"),
        description="Product to link; only the first element is used",
    )
    key_features: str = Field(..., min_length=1, validation_alias=AliasChoices("keyFeatures", "Key Features"))
    target_audience: str = Field(..., min_length=1, validation_alias=AliasChoices("targetAudience", "Target Audience"))
    description_length: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("descriptionLength", "Description Length")
    )
    generated_text: str = Field(..., min_length=1, validation_alias=AliasChoices("generatedText", "Generated Text"))

    @property
    def linked_product_name(self) -> Optional[str]:
        """Name to resolve, or None when no link was requested."""
        if not self.linked_product:
            return None
        return self.linked_product[0].name or None


class SavedDescription(BaseModel):
    """The stored row, echoed back to the caller."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Airtable record id of the new row")
    created_time: Optional[str] = None
    record_id: str
    linked_product_ids: List[str] = Field(default_factory=list)
    key_features: str
    target_audience: str
    description_length: str
    generated_text: str
    fields: Dict[str, Any] = Field(default_factory=dict, description="Fields as stored by Airtable")
