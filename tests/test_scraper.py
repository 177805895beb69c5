import asyncio
from types import SimpleNamespace

import httpx

from harvester.listings.filters import build_page_url, is_inactive_status
from harvester.listings import scraper as scraper_mod
from harvester.listings.parsing import parse_card
from harvester.listings.scraper import (
    FetchOptions,
    StopReason,
    crawl_listings,
    enrich_listings,
)

from bs4 import BeautifulSoup

from fakesite import FakeSite, card_html, detail_html, page_html

BASE = "https://example.com/mylistings.html"
NO_RETRY = FetchOptions(max_attempts=1, delay=0, timeout=5)


def run_crawl(site: FakeSite, max_pages: int = 20, page_delay: float = 0):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(site)) as c:
            return await crawl_listings(BASE, c, max_pages=max_pages, page_delay=page_delay, fetch=NO_RETRY)

    return asyncio.run(go())


def run_enrich(site: FakeSite, listings, concurrency: int = 5):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(site)) as c:
            return await enrich_listings(listings, c, concurrency=concurrency, fetch=NO_RETRY)

    return asyncio.run(go())


def summaries(*ids: str):
    soup = BeautifulSoup(page_html(*(card_html(i) for i in ids)), "lxml")
    return [parse_card(c) for c in soup.select("li.mrp-listing-result")]


def test_build_page_url():
    assert build_page_url(BASE, 3) == BASE + "?_pg=3"
    assert build_page_url(BASE + "?sort=new&_pg=9", 2) == BASE + "?sort=new&_pg=2"
    assert build_page_url(BASE + "?area=North%20Burnaby", 1) == BASE + "?area=North+Burnaby&_pg=1"


def test_inactive_status_tokens():
    assert is_inactive_status("SOLD")
    assert is_inactive_status("Sale Pending")
    assert is_inactive_status("Not Active")
    assert not is_inactive_status("Active")
    assert not is_inactive_status(None)


def test_crawl_keeps_whole_boundary_page_and_stops():
    site = FakeSite(pages={
        1: page_html(card_html("a1"), card_html("a2")),
        2: page_html(card_html("b1"), card_html("b2", "Sold"), card_html("b3")),
        3: page_html(card_html("c1")),
    })
    result = run_crawl(site)
    assert [l.listing_id for l in result.listings] == ["a1", "a2", "b1", "b2", "b3"]
    assert result.stop_reason == StopReason.INACTIVE_BOUNDARY
    assert site.requested_pages == [1, 2]


def test_crawl_stops_on_empty_page():
    site = FakeSite(pages={1: page_html(card_html("a1")), 2: page_html(card_html("b1"))})
    result = run_crawl(site)
    assert [l.listing_id for l in result.listings] == ["a1", "b1"]
    assert result.stop_reason == StopReason.EMPTY_PAGE
    assert site.requested_pages == [1, 2, 3]
    assert result.pages_fetched == 3


def test_crawl_respects_page_cap():
    site = FakeSite(pages={n: page_html(card_html(f"p{n}")) for n in range(1, 50)})
    result = run_crawl(site, max_pages=4)
    assert result.stop_reason == StopReason.PAGE_CAP
    assert site.requested_pages == [1, 2, 3, 4]
    assert len(result.listings) == 4


def test_crawl_error_keeps_partial_results():
    site = FakeSite(pages={
        1: page_html(card_html("a1")),
        2: httpx.ConnectError("connection reset"),
        3: page_html(card_html("c1")),
    })
    result = run_crawl(site)
    assert [l.listing_id for l in result.listings] == ["a1"]
    assert result.stop_reason == StopReason.ERROR
    assert site.requested_pages == [1, 2]


def test_enrichment_drops_only_failed_listing():
    ids = [f"L{i}" for i in range(10)]
    site = FakeSite(details={i: detail_html(i) for i in ids if i != "L4"})
    enriched = run_enrich(site, summaries(*ids))
    assert [l.listing_id for l in enriched] == [i for i in ids if i != "L4"]
    for l in enriched:
        assert l.detailed_info.description == f"Home number {l.listing_id}."
        assert l.detailed_info.taxes.year == 2024
    assert sorted(site.requested_details) == sorted(ids)


def test_enrichment_drops_listing_without_info_container():
    site = FakeSite(details={"x1": detail_html("x1"), "x2": "<html><body>moved</body></html>"})
    enriched = run_enrich(site, summaries("x1", "x2"))
    assert [l.listing_id for l in enriched] == ["x1"]


def test_enrichment_concurrency_is_bounded():
    ids = [f"L{i}" for i in range(12)]
    in_flight = 0
    peak = 0

    async def handler(request):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        listing_id = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, text=detail_html(listing_id))

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
            return await enrich_listings(summaries(*ids), c, concurrency=3, fetch=NO_RETRY)

    enriched = asyncio.run(go())
    assert len(enriched) == 12
    assert peak <= 3


def test_enriched_record_keeps_summary_fields():
    site = FakeSite(details={"z1": detail_html("z1")})
    (l,) = run_enrich(site, summaries("z1"))
    data = l.to_json_dict()
    assert data["id"] == "z1"
    assert data["detailUrl"] == "https://example.com/listing/z1"
    assert data["price"] == {"amount": 500000.0, "formatted": "$500,000"}
    assert data["address"]["postalCode"] == "V6B 1A1"
    assert data["compactDetails"] == {"bedrooms": 2}
    assert data["detailedInfo"]["features"]["yearBuilt"] == 2001
    assert "imageUrl" not in data


def _record_sleeps(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(scraper_mod, "asyncio", SimpleNamespace(sleep=fake_sleep))
    return delays


def test_crawl_waits_between_pages_only(monkeypatch):
    delays = _record_sleeps(monkeypatch)
    site = FakeSite(pages={1: page_html(card_html("a1")), 2: page_html(card_html("b1"))})
    result = run_crawl(site, page_delay=1.5)
    assert result.stop_reason == StopReason.EMPTY_PAGE
    assert site.requested_pages == [1, 2, 3]
    assert delays == [1.5, 1.5]


def test_crawl_does_not_wait_after_last_allowed_page(monkeypatch):
    delays = _record_sleeps(monkeypatch)
    site = FakeSite(pages={n: page_html(card_html(f"p{n}")) for n in range(1, 5)})
    result = run_crawl(site, max_pages=2, page_delay=1.5)
    assert result.stop_reason == StopReason.PAGE_CAP
    assert delays == [1.5]


def test_crawl_does_not_wait_after_boundary_page(monkeypatch):
    delays = _record_sleeps(monkeypatch)
    site = FakeSite(pages={1: page_html(card_html("a1", "Sold"))})
    run_crawl(site, page_delay=1.5)
    assert delays == []
