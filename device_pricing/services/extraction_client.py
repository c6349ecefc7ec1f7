"""Extraction Client - HTTP client for the product extraction service.

The extraction service turns raw document or row text into a structured
product record, sometimes with a suggested category code. Every call
returns one of three explicit variants:
- ExtractionFound: a record (possibly without a suggestion)
- ExtractionPending: the service accepted the job but has no result yet
- ExtractionUnavailable: the lookup failed (timeout, HTTP error, bad payload)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from device_pricing.config import settings
from device_pricing.infra.logging import get_logger

logger = get_logger(__name__)


class SuggestionSource(str, Enum):
    """Where a suggested category code came from."""

    DOCUMENT = "document"
    INFERRED = "inferred"


class ExtractedProduct(BaseModel):
    """Structured product record returned by the extraction service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    sku: str | None = None
    manufacturer_name: str | None = Field(default=None, alias="manufacturerName")
    description: str | None = None
    suggested_category_code: str | None = Field(default=None, alias="suggestedCategoryCode")
    source: SuggestionSource = SuggestionSource.INFERRED


@dataclass(frozen=True)
class ExtractionFound:
    record: ExtractedProduct


@dataclass(frozen=True)
class ExtractionPending:
    job_id: str


@dataclass(frozen=True)
class ExtractionUnavailable:
    reason: str


ExtractionResult = ExtractionFound | ExtractionPending | ExtractionUnavailable


class ExtractionClient:
    """HTTP client for the extraction service."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        """Initialize extraction client.

        Args:
            base_url: Service base URL (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
        """
        self.base_url = base_url or settings.extraction_url
        self.timeout = timeout if timeout is not None else settings.extraction_timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def extract(self, text: str) -> ExtractionResult:
        """Submit raw text for extraction.

        Args:
            text: Raw document or spreadsheet row text

        Returns:
            Found, Pending or Unavailable variant
        """
        return await self._request("POST", "/api/v1/extract", json={"text": text})

    async def poll(self, job_id: str) -> ExtractionResult:
        """Fetch the result of a pending extraction job."""
        return await self._request("GET", f"/api/v1/extract/{job_id}")

    async def _request(self, method: str, url: str, **kwargs: Any) -> ExtractionResult:
        client = await self._get_client()

        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()

        except httpx.TimeoutException:
            logger.warning("Extraction request timed out", url=url, timeout=self.timeout)
            return ExtractionUnavailable(reason="timeout")

        except httpx.HTTPStatusError as e:
            logger.error(
                "Extraction service returned error",
                url=url,
                status_code=e.response.status_code,
                response_text=e.response.text[:500],
            )
            return ExtractionUnavailable(reason=f"http {e.response.status_code}")

        except httpx.TransportError as e:
            logger.error("Extraction service unreachable", url=url, error=str(e))
            return ExtractionUnavailable(reason=f"transport: {e.__class__.__name__}")

        return self._parse(response)

    def _parse(self, response: httpx.Response) -> ExtractionResult:
        try:
            payload = response.json()
        except ValueError:
            logger.error("Extraction response is not JSON", status_code=response.status_code)
            return ExtractionUnavailable(reason="invalid payload")
        if not isinstance(payload, dict):
            logger.error("Extraction response is not an object", status_code=response.status_code)
            return ExtractionUnavailable(reason="invalid payload")

        status = payload.get("status", "completed")
        if response.status_code == 202 or status == "pending":
            job_id = str(payload.get("jobId", ""))
            logger.info("Extraction pending", job_id=job_id)
            return ExtractionPending(job_id=job_id)

        try:
            record = ExtractedProduct.model_validate(payload.get("product") or {})
        except ValidationError as e:
            logger.error("Extraction payload invalid", errors=e.error_count())
            return ExtractionUnavailable(reason="invalid payload")

        logger.info(
            "Extraction completed",
            suggested_code=record.suggested_category_code,
            source=record.source.value,
        )
        return ExtractionFound(record=record)


# Singleton instance
_extraction_client: ExtractionClient | None = None


def get_extraction_client() -> ExtractionClient:
    """Get extraction client singleton."""
    global _extraction_client
    if _extraction_client is None:
        _extraction_client = ExtractionClient()
    return _extraction_client
