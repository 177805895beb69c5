import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import httpx

from harvester.listings.client import fetch_html
from harvester.listings.details import parse_detail_page
from harvester.listings.filters import build_page_url, is_inactive_status
from harvester.listings.parsing import parse_listing_page
from harvester.py_models.listing import DetailedInfo, EnrichedListing, ListingSummary

log = logging.getLogger("listings")

DEFAULT_MAX_PAGES = 20
DEFAULT_PAGE_DELAY_SEC = 1.5
DEFAULT_CONCURRENCY = 5


class StopReason(str, Enum):
    EMPTY_PAGE = "empty_page"
    INACTIVE_BOUNDARY = "inactive_boundary"
    PAGE_CAP = "page_cap"
    ERROR = "error"


@dataclass
class PageResult:
    listings: List[ListingSummary]
    found_inactive: bool


@dataclass
class CrawlResult:
    listings: List[ListingSummary] = field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: StopReason = StopReason.PAGE_CAP


@dataclass
class FetchOptions:
    max_attempts: int = 3
    delay: float = 1.0
    timeout: float = 10.0


def page_result_from_html(html: str) -> PageResult:
    """Parse a results page and flag whether any card is no longer for sale."""
    listings = parse_listing_page(html)
    if not listings:
        # an empty page means we ran past the last listing
        return PageResult(listings=[], found_inactive=True)
    return PageResult(
        listings=listings,
        found_inactive=any(is_inactive_status(l.status) for l in listings),
    )


async def get_listings_from_page(
    url: str,
    client: httpx.AsyncClient,
    fetch: Optional[FetchOptions] = None,
) -> PageResult:
    fetch = fetch or FetchOptions()
    html = await fetch_html(url, client, fetch.max_attempts, fetch.delay, fetch.timeout)
    return page_result_from_html(html)


async def crawl_listings(
    base_url: str,
    client: httpx.AsyncClient,
    max_pages: int = DEFAULT_MAX_PAGES,
    page_delay: float = DEFAULT_PAGE_DELAY_SEC,
    fetch: Optional[FetchOptions] = None,
) -> CrawlResult:
    """
    Walk ?_pg=1, 2, ... until a page is empty, a page holds an inactive listing
    (that page is still kept whole), a page fails, or max_pages is reached.
    """
    result = CrawlResult()
    page = 1
    while page <= max_pages:
        url = build_page_url(base_url, page)
        log.info("Scraping page %d: %s", page, url)
        try:
            page_result = await get_listings_from_page(url, client, fetch)
        except Exception as e:
            log.error("Error scraping page %d: %s", page, e)
            result.stop_reason = StopReason.ERROR
            break
        result.pages_fetched += 1

        if not page_result.listings:
            log.info("No listings found on page %d. Stopping scrape.", page)
            result.stop_reason = StopReason.EMPTY_PAGE
            break

        result.listings.extend(page_result.listings)

        if page_result.found_inactive:
            log.info("Found inactive listing(s) on page %d. Stopping scrape.", page)
            result.stop_reason = StopReason.INACTIVE_BOUNDARY
            break

        log.info("Completed scraping page %d. Found %d listings.", page, len(page_result.listings))
        page += 1
        if page <= max_pages:
            await asyncio.sleep(page_delay)
    else:
        result.stop_reason = StopReason.PAGE_CAP

    log.info("Total listings found: %d (stop=%s)", len(result.listings), result.stop_reason.value)
    return result


async def scrape_listing_details(
    detail_url: str,
    client: httpx.AsyncClient,
    fetch: Optional[FetchOptions] = None,
) -> Optional[DetailedInfo]:
    fetch = fetch or FetchOptions()
    html = await fetch_html(detail_url, client, fetch.max_attempts, fetch.delay, fetch.timeout)
    return parse_detail_page(html)


async def enrich_listings(
    listings: List[ListingSummary],
    client: httpx.AsyncClient,
    concurrency: int = DEFAULT_CONCURRENCY,
    fetch: Optional[FetchOptions] = None,
) -> List[EnrichedListing]:
    """
    Fetch and parse every listing's detail page, at most `concurrency` at a time.
    A listing whose details cannot be fetched or parsed is dropped; the rest
    keep their input order.
    """
    sem = asyncio.Semaphore(max(1, concurrency))

    async def enrich_one(listing: ListingSummary) -> EnrichedListing:
        info = None
        async with sem:
            try:
                if not listing.detail_url:
                    raise ValueError("listing has no detail URL")
                info = await scrape_listing_details(listing.detail_url, client, fetch)
                if info is None:
                    log.warning("No listing info found at %s", listing.detail_url)
            except Exception as e:
                log.error("Failed to fetch details for %s: %s", listing.detail_url, e)
        return EnrichedListing.from_summary(listing, info)

    results = await asyncio.gather(*(enrich_one(l) for l in listings))
    enriched = [r for r in results if r.detailed_info is not None]
    log.info("Enriched %d/%d listings.", len(enriched), len(listings))
    return enriched
