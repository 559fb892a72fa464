"""Airtable table operations.

Wraps the ``pyairtable`` client used by the services: listing rows with a
formula filter and creating a single row. The client is synchronous, so each
call runs in the threadpool and never blocks the event loop.
"""

import time
from typing import Any, Callable, Dict, List, Optional

import requests
from pyairtable import Api, Table
from starlette.concurrency import run_in_threadpool

from app.config.logger import app_logger, log_performance
from app.config.settings import Settings
from app.utils.errors import ConfigurationError, StoreError, truncate_detail


def build_airtable_api(settings: Settings) -> Api:
    """Create the Airtable client from settings, with retries disabled."""
    timeout = (settings.HTTP_TIMEOUT_SECONDS, settings.HTTP_TIMEOUT_SECONDS)
    return Api(settings.AIRTABLE_API_TOKEN, timeout=timeout, retry_strategy=None)


class AirtableStore:
    """Airtable base accessed through one shared ``pyairtable.Api``."""

    def __init__(self, settings: Settings, api: Optional[Api] = None):
        self.settings = settings
        self._api = api

    @property
    def api(self) -> Api:
        if self._api is None:
            self._api = build_airtable_api(self.settings)
            app_logger.info("Airtable client initialized")
        return self._api

    def _ensure_configured(self) -> None:
        if not self.settings.airtable_configured:
            app_logger.error("Missing Airtable API token or base id")
            raise ConfigurationError("Server configuration error: Missing Airtable credentials.")

    def table(self, name: str) -> Table:
        self._ensure_configured()
        return self.api.table(self.settings.AIRTABLE_BASE_ID, name)

    async def _call(self, operation: str, table: str, func: Callable[..., Any], **kwargs) -> Any:
        started = time.perf_counter()
        try:
            return await run_in_threadpool(func, **kwargs)
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            body = e.response.text if e.response is not None else str(e)
            app_logger.error(
                f"Error from Airtable API: {operation} on '{table}' "
                f"status {status_code}, body: {truncate_detail(body)}"
            )
            raise StoreError(
                f"Airtable {operation} failed. Status: {status_code}.",
                status_code=status_code,
                detail=body,
            ) from e
        except (ValueError, TypeError, AttributeError) as e:
            # non-JSON body, or JSON that is not the record shape the client expects
            app_logger.error(f"Airtable {operation} on '{table}' returned an unreadable body: {e}")
            raise StoreError(f"Airtable {operation} returned an unreadable response.", detail=str(e)) from e
        except requests.exceptions.RequestException as e:
            app_logger.error(f"Airtable {operation} on '{table}' failed to connect: {e}")
            raise StoreError(f"Could not reach Airtable: {e}") from e
        finally:
            log_performance(f"airtable.{operation}", time.perf_counter() - started, table=table)

    def _unreadable(self, operation: str, table: str, data: Any) -> StoreError:
        app_logger.error(f"Airtable {operation} on '{table}' returned {type(data).__name__}, not records")
        return StoreError(
            f"Airtable {operation} returned an unreadable response.",
            detail=str(data),
        )

    async def list_records(
        self,
        table: str,
        formula: Optional[str] = None,
        max_records: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """List rows of ``table`` matching an optional formula."""
        options: Dict[str, Any] = {}
        if formula:
            options["formula"] = formula
        if max_records:
            options["max_records"] = max_records

        records = await self._call("list", table, self.table(table).all, **options)
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise self._unreadable("list", table, records)
        return records

    async def create_record(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create one row in ``table`` and return Airtable's record object."""
        record = await self._call("create", table, self.table(table).create, fields=fields)
        if not isinstance(record, dict):
            raise self._unreadable("create", table, record)
        app_logger.info(f"Airtable record created in '{table}': {record.get('id')}")
        return record

    async def ping(self) -> tuple[bool, str]:
        """Check that the base is reachable with the configured credentials."""
        try:
            await self.list_records(self.settings.AIRTABLE_PRODUCTS_TABLE, max_records=1)
            return True, "Airtable API connection healthy"
        except (ConfigurationError, StoreError) as e:
            return False, f"Airtable connection failed: {e}"

    def close(self) -> None:
        if self._api is not None:
            self._api.session.close()
