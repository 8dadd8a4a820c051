"""Places catalog models."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PlaceLocation(BaseModel):
    """Geographic location of a place (WGS84)."""

    model_config = ConfigDict(extra="ignore")

    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    address: str | None = None


class Place(BaseModel):
    """A real point of interest from the places catalog.

    Accepts the camelCase / ``category`` spellings used by the places
    provider payloads prefetched on the client.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str
    type: str | None = Field(None, validation_alias=AliasChoices("type", "category"))
    rating: float | None = None
    price_level: int | None = Field(
        None, validation_alias=AliasChoices("price_level", "priceLevel")
    )
    location: PlaceLocation | None = None


PlacesCatalog = dict[str, list[Place]]
