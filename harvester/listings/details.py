# harvester/listings/details.py
"""
Structured fields from the free-text "listing info" blob of a detail page.

Every extractor takes the whole blob and returns its own field, so a missing
label never hides another one. Nothing here raises on odd input: a pattern
that does not match simply leaves the field empty.
"""
import re
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString

from harvester.listings.parsing import clean_text
from harvester.py_models.listing import (
    Area,
    DetailedInfo,
    Dimensions,
    Features,
    LotInfo,
    Room,
    Taxes,
)

__all__ = ["parse_detailed_info", "parse_detail_page", "INFO_SELECTOR"]

INFO_SELECTOR = ".mrp-listing-info-container"

DESCRIPTION_END_MARKERS = ("Documents & Links:", "General Info:")

# ASCII record separator; source newlines inside text nodes are only layout
_ROW_BREAK = "\x1e"

_year_built_re = re.compile(r"Year built:\s*(\d{4})")
_parking_re = re.compile(r"Parking:([^.\n]+)")
_heating_re = re.compile(r"Heating:([^.\n]+)")
_amenities_re = re.compile(r"Features Included:([^.\n]+)")
_construction_re = re.compile(r"Construction:([^.\n]+)")
_room_section_re = re.compile(r"Room Information:(.+?)(?=Bathrooms:)", re.S)
# <floor> <type, one or two words> <length> × <width>
_room_re = re.compile(r"\b(\w+)\s+(\w+(?:\s+\w+)?)\s+([\d'\"]+)\s*×\s*([\d'\"]+)")
_taxes_re = re.compile(r"Taxes:\s*\$?([\d,]+\.?\d*)\s*/\s*(\d{4})")
_lot_area_re = re.compile(r"Lot Area:\s*([\d,]+)\s*sq\.\s*ft\.")
_sqm_re = re.compile(r"(\d+\.?\d*)\s*m2")


def _comma_list(pattern: re.Pattern, text: str) -> List[str]:
    m = pattern.search(text)
    if not m:
        return []
    return [p.strip() for p in m.group(1).strip().split(",")]


def extract_description(text: str) -> str:
    ends = [i for i in (text.find(m) for m in DESCRIPTION_END_MARKERS) if i >= 0]
    if not ends:
        return ""
    return clean_text(text[: min(ends)])


def extract_year_built(text: str) -> Optional[int]:
    m = _year_built_re.search(text)
    return int(m.group(1)) if m else None


def extract_parking(text: str) -> List[str]:
    return _comma_list(_parking_re, text)


def extract_heating(text: str) -> List[str]:
    return _comma_list(_heating_re, text)


def extract_amenities(text: str) -> List[str]:
    return _comma_list(_amenities_re, text)


def extract_construction(text: str) -> Optional[str]:
    m = _construction_re.search(text)
    return m.group(1).strip() if m else None


def extract_rooms(text: str) -> List[Room]:
    section = _room_section_re.search(text)
    if not section:
        return []
    rooms: List[Room] = []
    for line in section.group(1).split("\n"):
        for m in _room_re.finditer(line):
            rooms.append(Room(
                floor=m.group(1),
                type=m.group(2),
                dimensions=Dimensions(length=m.group(3), width=m.group(4)),
            ))
    return rooms


def extract_taxes(text: str) -> Optional[Taxes]:
    m = _taxes_re.search(text)
    if not m:
        return None
    return Taxes(amount=float(m.group(1).replace(",", "")), year=int(m.group(2)))


def extract_lot_info(text: str) -> LotInfo:
    m = _lot_area_re.search(text)
    if not m:
        return LotInfo()
    # metric size follows the imperial one, e.g. "Lot Area: 4,026 sq. ft. (374.02 m2)"
    sqm = _sqm_re.search(text, m.end())
    return LotInfo(area=Area(
        sqft=int(m.group(1).replace(",", "")),
        sqm=int(float(sqm.group(1))) if sqm else 0,
    ))


def parse_detailed_info(text: str | None) -> Optional[DetailedInfo]:
    """Parse a detail blob; returns None only when there is no text at all."""
    if not text:
        return None
    return DetailedInfo(
        description=extract_description(text),
        features=Features(
            year_built=extract_year_built(text),
            parking=extract_parking(text),
            heating=extract_heating(text),
            amenities=extract_amenities(text),
            construction=extract_construction(text),
        ),
        rooms=extract_rooms(text),
        taxes=extract_taxes(text),
        lot_info=extract_lot_info(text),
    )


def _info_text(container) -> str:
    """Container text with whitespace collapsed and every table row on its own line."""
    for tr in container.find_all("tr"):
        cells = [c.get_text(" ", strip=True) for c in tr.find_all(["td", "th"])]
        tr.replace_with(NavigableString(_ROW_BREAK + " ".join(cells) + _ROW_BREAK))
    lines = (clean_text(part) for part in container.get_text(" ").split(_ROW_BREAK))
    return "\n".join(line for line in lines if line)


def parse_detail_page(html: str) -> Optional[DetailedInfo]:
    soup = BeautifulSoup(html, "lxml")
    container = soup.select_one(INFO_SELECTOR)
    if container is None:
        return None
    return parse_detailed_info(_info_text(container))
