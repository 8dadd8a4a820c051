"""Places catalog index and prompt simplification."""

from dataclasses import dataclass, field

from tripgen.app.models.places import Place, PlacesCatalog

PROMPT_PLACES_PER_CATEGORY = 25


@dataclass
class CatalogIndex:
    """Flat view of a categorized catalog, keyed by place id.

    When the same id appears in several categories the first occurrence wins.
    """

    by_id: dict[str, Place] = field(default_factory=dict)
    places: list[Place] = field(default_factory=list)

    @classmethod
    def from_catalog(cls, catalog: PlacesCatalog | None) -> "CatalogIndex":
        index = cls()
        for places in (catalog or {}).values():
            for place in places:
                if place.id in index.by_id:
                    continue
                index.by_id[place.id] = place
                index.places.append(place)
        return index

    def get(self, place_id: str) -> Place | None:
        return self.by_id.get(place_id)

    def __len__(self) -> int:
        return len(self.places)


def simplify_catalog_for_prompt(
    catalog: PlacesCatalog | None,
    per_category: int = PROMPT_PLACES_PER_CATEGORY,
) -> dict[str, list[dict[str, object]]]:
    """Reduce the catalog to what the model needs to cite places.

    Keeps the first ``per_category`` entries of each category with id, name,
    rating, price level and address only.

    Args:
        catalog: Category name -> places
        per_category: Maximum entries kept per category

    Returns:
        JSON-serializable mapping, empty categories omitted
    """
    simplified: dict[str, list[dict[str, object]]] = {}
    for category, places in (catalog or {}).items():
        if not places:
            continue
        simplified[category] = [
            {
                "id": place.id,
                "name": place.name,
                "rating": place.rating,
                "price_level": place.price_level,
                "address": place.location.address if place.location else None,
            }
            for place in places[:per_category]
        ]
    return simplified
