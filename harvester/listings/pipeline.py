import json
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional

from harvester.listings.scraper import CrawlResult, crawl_listings, enrich_listings
from harvester.listings.settings import HarvestContext
from harvester.py_models.listing import EnrichedListing

log = logging.getLogger("listings")


@dataclass
class RunReport:
    crawl: CrawlResult
    listings: List[EnrichedListing]
    snapshot_path: str
    uploaded: bool

    @property
    def ok(self) -> bool:
        return bool(self.listings) and self.uploaded


def utc_today() -> date:
    """Calendar date in UTC; snapshots are named after it."""
    return datetime.now(timezone.utc).date()


def snapshot_filename(run_date: date) -> str:
    return f"listings{run_date.isoformat()}.json"


def save_snapshot(listings: List[EnrichedListing], out_dir: str, run_date: Optional[date] = None) -> str:
    """Write the dataset as a pretty-printed JSON array and return its path."""
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, snapshot_filename(run_date or utc_today()))
    rows = [l.to_json_dict() for l in listings]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(rows, f, indent=2, ensure_ascii=False)
    log.info("Saved %d listings to %s", len(rows), path)
    return path


async def run_pipeline(ctx: HarvestContext, run_date: Optional[date] = None) -> RunReport:
    """Crawl, enrich, snapshot to disk and hand the file to the sink."""
    s = ctx.settings
    fetch = s.fetch_options()

    crawl = await crawl_listings(
        s.base_url,
        ctx.client,
        max_pages=s.max_pages,
        page_delay=s.page_delay_sec,
        fetch=fetch,
    )
    listings = await enrich_listings(crawl.listings, ctx.client, concurrency=s.concurrency, fetch=fetch)
    path = save_snapshot(listings, s.output_dir, run_date)

    try:
        uploaded = await ctx.sink.upload(path)
    except Exception as e:
        log.error("Sink failed for %s: %s", path, e)
        uploaded = False

    return RunReport(crawl=crawl, listings=listings, snapshot_path=path, uploaded=uploaded)
