"""Fuzzy matching of AI-suggested place references against the places catalog.

AI-suggested references fail in a few recurring ways: invented identifiers,
identifiers that are really names ("cafe-del-mar"), and near-miss names.
``match_place`` resolves a reference with these strategies, first hit wins:

1. exact identifier match                       -> ``exact``
2. identifier not in catalog format, as a name  -> ``high``/``low`` (min 0.75)
3. activity/meal text minus leading phrases     -> ``high``/``low`` (min 0.8)
4. the entry's location text                    -> ``high``/``low`` (min 0.8)

Anything else is ``none``. Matching never raises and never invents a place.
"""

import re
import unicodedata
from dataclasses import dataclass
from enum import Enum

from tripgen.app.models.common import MatchConfidence
from tripgen.app.models.places import Place
from tripgen.app.places.catalog import CatalogIndex

ID_AS_NAME_THRESHOLD = 0.75
TEXT_THRESHOLD = 0.8
HIGH_CONFIDENCE_SCORE = 0.9

DEFAULT_CATALOG_ID_PATTERN = r"^ChIJ[A-Za-z0-9_-]{20,}$"

_ARTICLE_RE = re.compile(r"^(el|la|los|las|the|a|an|le|les|il|lo|gli|i) ")
_SEPARATOR_RE = re.compile(r"[-_/]")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")

_LEADING_PHRASES = [
    re.compile(r"^(a )?(guided |walking |food |boat )?tour (of|through|around|in) ", re.IGNORECASE),
    re.compile(r"^(a )?visit (to )?", re.IGNORECASE),
    re.compile(r"^(explore|exploring|discover|discovering) ", re.IGNORECASE),
    re.compile(r"^(walk|stroll|wander|hike) (through|along|around|to|up|in) ", re.IGNORECASE),
    re.compile(r"^(day trip|excursion) to ", re.IGNORECASE),
    re.compile(r"^(breakfast|brunch|lunch|dinner|coffee|drinks|tapas) (at|in) ", re.IGNORECASE),
    re.compile(r"^(sunset|sunrise) (at|over|from) ", re.IGNORECASE),
]


class MatchStrategy(str, Enum):
    """Which strategy produced a link."""

    exact_id = "exact_id"
    id_as_name = "id_as_name"
    activity_name = "activity_name"
    location = "location"
    unmatched = "unmatched"


@dataclass(frozen=True)
class NameMatch:
    """Best catalog candidate for a name, with its continuous score."""

    place: Place
    score: float


@dataclass(frozen=True)
class MatchResult:
    """Outcome of resolving one place reference."""

    place: Place | None
    score: float
    confidence: MatchConfidence
    strategy: MatchStrategy

    @property
    def linked(self) -> bool:
        return self.place is not None


UNMATCHED = MatchResult(
    place=None, score=0.0, confidence=MatchConfidence.none, strategy=MatchStrategy.unmatched
)


def strip_diacritics(text: str) -> str:
    nfd = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in nfd if unicodedata.category(ch) != "Mn")


def normalize_place_name(name: str) -> str:
    """Normalize a place name for comparison.

    Lower-case, diacritics removed, one leading article removed, punctuation
    removed (hyphens, underscores and slashes become spaces), whitespace
    collapsed.
    """
    text = strip_diacritics(name.lower()).strip()
    text = _ARTICLE_RE.sub("", text)
    text = _SEPARATOR_RE.sub(" ", text)
    text = _PUNCTUATION_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Classic Levenshtein distance (insert, delete, substitute; no transpositions)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(
                    min(
                        previous[j - 1] + 1,  # substitution
                        current[j - 1] + 1,  # insertion
                        previous[j] + 1,  # deletion
                    )
                )
        previous = current
    return previous[-1]


def _normalized_similarity(norm_a: str, norm_b: str) -> float:
    if norm_a == norm_b:
        return 1.0
    max_len = max(len(norm_a), len(norm_b))
    if max_len == 0:
        return 1.0
    return 1 - levenshtein_distance(norm_a, norm_b) / max_len


def calculate_similarity(a: str, b: str) -> float:
    """Similarity in [0, 1]: ``1 - distance / max_len`` over normalized names."""
    return _normalized_similarity(normalize_place_name(a), normalize_place_name(b))


def looks_like_catalog_id(value: str, pattern: str = DEFAULT_CATALOG_ID_PATTERN) -> bool:
    """Whether ``value`` has the shape of a real catalog key."""
    if not value:
        return False
    return re.match(pattern, value) is not None


def find_place_by_name(
    search_name: str,
    places: list[Place],
    threshold: float = ID_AS_NAME_THRESHOLD,
) -> NameMatch | None:
    """Find the best matching place by name.

    Exact normalized equality returns immediately with score 1.0. Containment
    of one normalized name in the other scores 0.85-0.95 by length ratio.
    Anything else must reach ``threshold`` on edit-distance similarity.
    """
    normalized_search = normalize_place_name(search_name) if search_name else ""
    if not normalized_search or not places:
        return None

    best: NameMatch | None = None

    for place in places:
        normalized_place = normalize_place_name(place.name)
        if not normalized_place:
            continue

        if normalized_place == normalized_search:
            return NameMatch(place=place, score=1.0)

        if normalized_place in normalized_search or normalized_search in normalized_place:
            shorter = min(len(normalized_place), len(normalized_search))
            longer = max(len(normalized_place), len(normalized_search))
            score = 0.85 + (shorter / longer) * 0.1
            if best is None or score > best.score:
                best = NameMatch(place=place, score=score)
            continue

        score = _normalized_similarity(normalized_search, normalized_place)
        if score >= threshold and (best is None or score > best.score):
            best = NameMatch(place=place, score=score)

    return best


def extract_place_name_from_activity(activity: str) -> str:
    """Strip leading phrases such as "Visit to" or "Lunch at" from activity text."""
    cleaned = activity.strip()
    for prefix in _LEADING_PHRASES:
        cleaned = prefix.sub("", cleaned)
    return cleaned.strip()


def confidence_for_score(score: float) -> MatchConfidence:
    """Collapse a fuzzy score to its storage tier."""
    return MatchConfidence.high if score >= HIGH_CONFIDENCE_SCORE else MatchConfidence.low


def _fuzzy(match: NameMatch | None, strategy: MatchStrategy) -> MatchResult | None:
    if match is None:
        return None
    return MatchResult(
        place=match.place,
        score=match.score,
        confidence=confidence_for_score(match.score),
        strategy=strategy,
    )


def match_place(
    suggested_id: str | None,
    text: str,
    index: CatalogIndex,
    *,
    location: str | None = None,
    id_pattern: str = DEFAULT_CATALOG_ID_PATTERN,
) -> MatchResult:
    """Resolve one AI place reference against the catalog."""
    if not index:
        return UNMATCHED

    if suggested_id:
        exact = index.get(suggested_id)
        if exact is not None:
            return MatchResult(
                place=exact,
                score=1.0,
                confidence=MatchConfidence.exact,
                strategy=MatchStrategy.exact_id,
            )

        if not looks_like_catalog_id(suggested_id, id_pattern):
            by_id_name = _fuzzy(
                find_place_by_name(suggested_id, index.places, ID_AS_NAME_THRESHOLD),
                MatchStrategy.id_as_name,
            )
            if by_id_name is not None:
                return by_id_name

    if text:
        by_text = _fuzzy(
            find_place_by_name(
                extract_place_name_from_activity(text), index.places, TEXT_THRESHOLD
            ),
            MatchStrategy.activity_name,
        )
        if by_text is not None:
            return by_text

    if location:
        by_location = _fuzzy(
            find_place_by_name(location, index.places, TEXT_THRESHOLD),
            MatchStrategy.location,
        )
        if by_location is not None:
            return by_location

    return UNMATCHED
