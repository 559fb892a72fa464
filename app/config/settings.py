from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, computed_field

load_dotenv()

APP_NAME = "Product Description Backend"
APP_VERSION = "1.0.0"


class Settings(BaseSettings):
    """Base settings for the application."""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = APP_NAME
    APP_VERSION: str = APP_VERSION
    APP_DESCRIPTION: str = "Generates product descriptions with Gemini and stores them in Airtable"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0, description="Timeout for every upstream call")

    # Gemini settings
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # Airtable settings
    AIRTABLE_API_TOKEN: str = Field(default="", description="Airtable personal access token")
    AIRTABLE_BASE_ID: str = Field(default="", description="Airtable base id (appXXXXXXXXXXXXXX)")
    AIRTABLE_DESCRIPTIONS_TABLE: str = "Generated Descriptions"
    AIRTABLE_PRODUCTS_TABLE: str = "Products"
    AIRTABLE_PRODUCT_NAME_FIELD: str = "Name"
    AIRTABLE_PRODUCT_LINK_FIELD: str = "Product"

    @computed_field
    @property
    def gemini_configured(self) -> bool:
        """True when the Gemini key is set."""
        return bool(self.GEMINI_API_KEY and self.GEMINI_API_KEY.strip())

    @computed_field
    @property
    def airtable_configured(self) -> bool:
        """True when both the Airtable token and base id are set."""
        return bool(
            self.AIRTABLE_API_TOKEN and self.AIRTABLE_API_TOKEN.strip()
            and self.AIRTABLE_BASE_ID and self.AIRTABLE_BASE_ID.strip()
        )


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide settings once."""
    return Settings()
