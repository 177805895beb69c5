from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Area(_Model):
    sqft: int
    sqm: int = 0


class Price(_Model):
    amount: Optional[float] = Field(None, description="Numeric price, None when unparseable")
    formatted: str = ""


class Address(_Model):
    street_number: str = ""
    street_name: str = ""
    street_type: str = ""
    city: str = ""
    postal_code: str = ""
    neighborhood: str = ""


class CompactDetails(_Model):
    mls_number: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floor_area: Optional[Area] = None


class ListingSummary(_Model):
    listing_id: Optional[str] = Field(None, alias="id")
    detail_url: Optional[str] = None
    price: Price = Field(default_factory=Price)
    status: str = ""
    address: Address = Field(default_factory=Address)
    image_url: Optional[str] = None
    compact_details: CompactDetails = Field(default_factory=CompactDetails)


class Dimensions(_Model):
    length: str = ""
    width: str = ""


class Room(_Model):
    floor: str
    type: str
    dimensions: Dimensions


class Taxes(_Model):
    amount: float
    year: int


class LotInfo(_Model):
    area: Optional[Area] = None


class Features(_Model):
    year_built: Optional[int] = None
    parking: List[str] = Field(default_factory=list)
    heating: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    construction: Optional[str] = None


class DetailedInfo(_Model):
    description: str = ""
    features: Features = Field(default_factory=Features)
    rooms: List[Room] = Field(default_factory=list)
    taxes: Optional[Taxes] = None
    lot_info: LotInfo = Field(default_factory=LotInfo)


class EnrichedListing(ListingSummary):
    detailed_info: Optional[DetailedInfo] = None

    @classmethod
    def from_summary(cls, summary: ListingSummary, detailed_info: Optional[DetailedInfo]) -> "EnrichedListing":
        return cls(**dict(summary), detailed_info=detailed_info)

    def to_json_dict(self) -> dict:
        """camelCase dict for the snapshot file; None fields are left out."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
