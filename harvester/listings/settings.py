import os
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import BaseModel, Field

from harvester.listings.client import new_client
from harvester.listings.scraper import FetchOptions
from harvester.listings.sink import ListingSink, NullSink, VectorStoreSink

DEFAULT_BASE_URL = "https://dorisgee.com/mylistings.html"


def _env(name: str, default: str) -> str:
    v = os.getenv(name, "").strip()
    return v or default


class HarvestSettings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    max_pages: int = Field(20, ge=0)
    page_delay_sec: float = Field(1.5, ge=0)
    concurrency: int = Field(5, ge=1, description="Max detail pages fetched at once")
    fetch_attempts: int = Field(3, ge=1)
    fetch_delay_sec: float = Field(1.0, ge=0)
    fetch_timeout_sec: float = Field(10.0, gt=0)
    output_dir: str = "."
    vector_store_id: Optional[str] = None
    proxy: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides) -> "HarvestSettings":
        """Read LISTINGS_* environment variables; explicit overrides win when not None."""
        values = {
            "base_url": _env("LISTINGS_BASE_URL", DEFAULT_BASE_URL),
            "max_pages": _env("LISTINGS_MAX_PAGES", "20"),
            "page_delay_sec": _env("LISTINGS_PAGE_DELAY_SEC", "1.5"),
            "concurrency": _env("LISTINGS_CONCURRENCY", "5"),
            "fetch_attempts": _env("LISTINGS_FETCH_ATTEMPTS", "3"),
            "fetch_delay_sec": _env("LISTINGS_FETCH_DELAY_SEC", "1.0"),
            "fetch_timeout_sec": _env("LISTINGS_FETCH_TIMEOUT_SEC", "10"),
            "output_dir": _env("LISTINGS_OUTPUT_DIR", "."),
            "vector_store_id": os.getenv("LISTINGS_VECTOR_STORE_ID") or None,
            "proxy": os.getenv("LISTINGS_PROXY") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def fetch_options(self) -> FetchOptions:
        return FetchOptions(
            max_attempts=self.fetch_attempts,
            delay=self.fetch_delay_sec,
            timeout=self.fetch_timeout_sec,
        )


@dataclass
class HarvestContext:
    """Everything one run needs, built once and passed down explicitly."""

    settings: HarvestSettings
    client: httpx.AsyncClient
    sink: ListingSink

    @classmethod
    def from_settings(cls, settings: HarvestSettings, sink: Optional[ListingSink] = None) -> "HarvestContext":
        if sink is None:
            sink = VectorStoreSink(settings.vector_store_id) if settings.vector_store_id else NullSink()
        client = new_client(timeout=settings.fetch_timeout_sec, proxy=settings.proxy)
        return cls(settings=settings, client=client, sink=sink)

    async def aclose(self) -> None:
        await self.client.aclose()
