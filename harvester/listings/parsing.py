# harvester/listings/parsing.py
from bs4 import BeautifulSoup, Tag
import re

from harvester.py_models.listing import Address, Area, CompactDetails, ListingSummary, Price

__all__ = [
    "clean_text",
    "parse_price",
    "parse_address",
    "extract_compact_details",
    "select_cards",
    "parse_card",
    "parse_listing_page",
    "SERVED_CITIES",
]

# Municipalities the listings site serves; anything else leaves Address.city empty.
SERVED_CITIES = ("Burnaby", "Vancouver", "Richmond")

CARD_SELECTOR = "li.mrp-listing-result"

_ws = re.compile(r"\s+")
_postal_re = re.compile(r"^[A-Z]\d[A-Z]\s?\d[A-Z]\d$")

# --- compact detail patterns ----------------------------------------------
_mls_re = re.compile(r"MLS®\s*Num:\s*([A-Z0-9]+)")
_beds_re = re.compile(r"Bedrooms:\s*(\d+)")
_baths_re = re.compile(r"Bathrooms:\s*(\d+)")
_floor_area_re = re.compile(r"Floor Area:\s*([\d,]+)\s*sq\.\s*ft\.")
_sqm_re = re.compile(r"(\d+)\s*m2")


# --- tiny utils -------------------------------------------------------------

def clean_text(s: str | None) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _ws.sub(" ", s or "").strip()


def _text(el) -> str:
    if el is None:
        return ""
    return el.get_text(" ", strip=True)


def parse_price(price_txt: str | None) -> Price:
    """'$1,234,500' -> Price(amount=1234500.0, formatted='$1,234,500')."""
    formatted = (price_txt or "").strip()
    raw = formatted.replace("$", "").replace(",", "")
    try:
        amount = float(raw)
    except ValueError:
        amount = None
    return Price(amount=amount, formatted=formatted)


def _find_postal_code(parts: list[str]) -> tuple[str, int]:
    """Return (postal_code, index of its last token) or ('', -1)."""
    for i, part in enumerate(parts):
        if _postal_re.match(part):
            return part, i
        # Postal codes are usually written as two tokens: 'V5H 1A1'
        if i + 1 < len(parts):
            pair = f"{part} {parts[i + 1]}"
            if _postal_re.match(pair):
                return pair, i + 1
    return "", -1


def parse_address(address: str | None, cities=SERVED_CITIES) -> Address:
    """
    Split a one-line address like '123 Main St Burnaby V5H 1A1 Metrotown' into parts.
    Street number/name/type are the first three tokens as-is. When no postal code
    is present the neighborhood is everything from the second token on.
    """
    parts = clean_text(address).split(" ")
    postal_code, postal_end = _find_postal_code(parts)
    city = next((p for p in parts if p in cities), "")

    def _part(i: int) -> str:
        return parts[i] if i < len(parts) else ""

    # postal_end is -1 when missing, so the remainder starts at index 1
    neighborhood_start = postal_end + 1 if postal_code else 1
    return Address(
        street_number=_part(0),
        street_name=_part(1),
        street_type=_part(2),
        city=city,
        postal_code=postal_code,
        neighborhood=" ".join(parts[neighborhood_start:]),
    )


def extract_compact_details(summary_text: str | None) -> CompactDetails:
    """
    Pull MLS number, bed/bath counts and floor area out of a card's summary blob.
    Each pattern is independent; a miss leaves that field as None.
    """
    t = summary_text or ""
    details: dict = {}

    m = _mls_re.search(t)
    if m:
        details["mls_number"] = m.group(1)

    m = _beds_re.search(t)
    if m:
        details["bedrooms"] = int(m.group(1))

    m = _baths_re.search(t)
    if m:
        details["bathrooms"] = int(m.group(1))

    m = _floor_area_re.search(t)
    if m:
        sqm = _sqm_re.search(t)
        details["floor_area"] = Area(
            sqft=int(m.group(1).replace(",", "")),
            sqm=int(sqm.group(1)) if sqm else 0,
        )

    return CompactDetails(**details)


def _image_url(card: Tag) -> str | None:
    img = card.select_one(".mrp-listing-main-image-container img")
    if img is None:
        return None
    # Lazy-loaded images keep the real URL in data-src
    src = img.get("data-src") or img.get("src")
    return src.strip() if src else None


def select_cards(root) -> list[Tag]:
    """Return the listing cards of a results page in document order."""
    if not isinstance(root, Tag):
        return []
    return root.select(CARD_SELECTOR)


def parse_card(card: Tag) -> ListingSummary:
    """Parse one `li.mrp-listing-result` node into a ListingSummary."""
    price_el = card.select_one(".mrp-listing-price-container")
    addr_el = card.select_one(".mrp-listing-address-info")
    summary_el = card.select_one(".mrp-listing-summary-outer")

    return ListingSummary(
        listing_id=card.get("data-listing-id"),
        detail_url=card.get("data-share-url"),
        price=parse_price(price_el.get_text() if price_el else None),
        status="".join(s.get_text() for s in card.select(".status-line span")).strip(),
        address=parse_address(_text(addr_el)),
        image_url=_image_url(card),
        compact_details=extract_compact_details(clean_text(_text(summary_el))),
    )


def parse_listing_page(html: str) -> list[ListingSummary]:
    """Convenience for a full results page: select and parse every card."""
    soup = BeautifulSoup(html, "lxml")
    return [parse_card(c) for c in select_cards(soup)]
