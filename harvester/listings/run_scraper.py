import asyncio
import logging

from .pipeline import run_pipeline
from .settings import HarvestContext, HarvestSettings


def parse_args(argv=None):
    import argparse
    p = argparse.ArgumentParser(description="Harvest active listings into a dated JSON snapshot")
    p.add_argument(
        "base_url",
        nargs="?",
        default=None,
        help="Listings index URL (default: $LISTINGS_BASE_URL)",
    )
    p.add_argument("--pages", type=int, default=None, help="Max result pages to crawl")
    p.add_argument("--page-delay", type=float, default=None, help="Seconds to wait between result pages")
    p.add_argument("--concurrency", type=int, default=None, help="Detail pages fetched at once")
    p.add_argument("--retries", type=int, default=None, help="Attempts per request")
    p.add_argument("--output-dir", default=None, help="Where listings<YYYY-MM-DD>.json is written")
    p.add_argument("--vector-store", default=None, help="OpenAI vector store id to upload the snapshot to")
    p.add_argument("--print-details", action="store_true", help="Print each listing row to stdout")
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging for the scraper")
    return p.parse_args(argv)


def _print_listing(l) -> None:
    a = l.address
    addr = " ".join(filter(None, [a.street_number, a.street_name, a.street_type, a.city, a.postal_code]))
    beds = f"{l.compact_details.bedrooms} bd" if l.compact_details.bedrooms is not None else "--"
    baths = f"{l.compact_details.bathrooms} ba" if l.compact_details.bathrooms is not None else "--"
    rooms = len(l.detailed_info.rooms) if l.detailed_info else 0
    print(f"- {addr} | {l.price.formatted or 'N/A'} | {beds} / {baths} | {rooms} rooms | {l.detail_url or ''}")


async def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    settings = HarvestSettings.from_env(
        base_url=args.base_url,
        max_pages=args.pages,
        page_delay_sec=args.page_delay,
        concurrency=args.concurrency,
        fetch_attempts=args.retries,
        output_dir=args.output_dir,
        vector_store_id=args.vector_store,
    )

    print(f"🔍 Harvesting listings from {settings.base_url} ...")
    ctx = HarvestContext.from_settings(settings)
    try:
        report = await run_pipeline(ctx)
    finally:
        await ctx.aclose()

    if args.print_details:
        for l in report.listings:
            _print_listing(l)

    print(
        f"✅ {len(report.listings)} listings from {report.crawl.pages_fetched} page(s) "
        f"(stopped: {report.crawl.stop_reason.value}) → {report.snapshot_path}"
    )
    if not report.uploaded:
        print("⚠️ Upload of the snapshot failed.")
    return 0 if report.ok else 1


def cli() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
