"""Ranked search across countries, states and cities.

Matching is case-sensitive on the exact query text. Each candidate scores by
how its name matches: equal, prefix, or substring. ISO2 and dialing-code hits
are added on top.
"""

from __future__ import annotations

from dataclasses import dataclass

from .indexes import GeoIndexes, normalize_phone_code
from .models import City, Country, State

ISO2_SCORE = 100
COUNTRY_SCORES = (90, 80, 70)
STATE_SCORES = (60, 50, 0)
CITY_NAME_SCORES = (45, 40, 30)
CITY_ALIAS_SCORES = (45, 40, 0)
PHONE_SCORE = 20

KIND_COUNTRY = "country"
KIND_STATE = "state"
KIND_CITY = "city"


@dataclass(frozen=True, slots=True)
class SearchHit:
    score: int
    kind: str
    country: Country
    state: State | None = None
    city: City | None = None

    @property
    def name(self) -> str:
        if self.city is not None:
            return self.city.name
        if self.state is not None:
            return self.state.name
        return self.country.name


def match_score(text: str, query: str, scores: tuple[int, int, int]) -> int | None:
    """Score ``text`` against ``query`` as (equal, prefix, substring); 0 disables a tier."""
    exact, prefix, substring = scores
    if text == query:
        score = exact
    elif text.startswith(query):
        score = prefix
    elif query in text:
        score = substring
    else:
        return None
    return score or None


def smart_search(countries: tuple[Country, ...], indexes: GeoIndexes, query: str) -> tuple[SearchHit, ...]:
    query = query.strip()
    if not query:
        return ()

    hits: list[SearchHit] = []
    for country in countries:
        if country.iso2 == query:
            hits.append(SearchHit(ISO2_SCORE, KIND_COUNTRY, country))
        score = match_score(country.name, query, COUNTRY_SCORES)
        if score:
            hits.append(SearchHit(score, KIND_COUNTRY, country))

    for state in indexes.states:
        score = match_score(state.name, query, STATE_SCORES)
        if score:
            hits.append(SearchHit(score, KIND_STATE, countries[state.country_id], state))

    for location in indexes.locations:
        city = location.city
        scores = [match_score(city.name, query, CITY_NAME_SCORES)]
        scores.extend(match_score(alias, query, CITY_ALIAS_SCORES) for alias in city.aliases)
        score = max((score for score in scores if score), default=None)
        if score:
            hits.append(SearchHit(score, KIND_CITY, location.country, location.state, city))

    for country in indexes.by_phone_code.get(normalize_phone_code(query), ()):
        hits.append(SearchHit(PHONE_SCORE, KIND_COUNTRY, country))

    hits.sort(key=lambda hit: hit.score, reverse=True)
    return tuple(hits)
