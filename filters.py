"""
Library filter state and its URL query-parameter form.

The URL is canonical when a view mounts (`decode`), the in-memory state is
canonical while the user interacts, and every change is written back with
`encode`.

>>> decode({"search": "gita", "category": "ITIHASA"})
FilterState(query='gita', category='Itihasa')
>>> encode(FilterState(query="", category="Vedas"))
{'category': 'vedas'}
>>> decode({"category": "novels"}).category
'All'
"""

from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode

ALL = "All"
CATEGORIES = ("Vedas", "Puranas", "Itihasa", "Darshana", "Smriti", "Shastra")

SEARCH_PARAM = "search"
CATEGORY_PARAM = "category"

_BY_SLUG = {c.lower(): c for c in CATEGORIES}


def normalize_category(value: Optional[str]) -> str:
    """Map any spelling of a known category to its canonical name; anything else is All."""
    if not value:
        return ALL
    return _BY_SLUG.get(value.strip().lower(), ALL)


@dataclass(frozen=True)
class FilterState:
    query: str = ""
    category: str = ALL

    def __post_init__(self):
        if self.category != ALL and self.category not in CATEGORIES:
            raise ValueError("unknown category: %r" % (self.category,))

    @property
    def is_filtered(self) -> bool:
        return bool(self.query) or self.category != ALL

    def with_query(self, query: str) -> "FilterState":
        return replace(self, query=query)

    def with_category(self, category: str) -> "FilterState":
        return replace(self, category=normalize_category(category))

    def cleared(self) -> "FilterState":
        return FilterState()


def _as_mapping(params: Union[str, Mapping[str, str], None]) -> Mapping[str, str]:
    if params is None:
        return {}
    if isinstance(params, str):
        return dict(parse_qsl(params.lstrip("?"), keep_blank_values=True))
    return params


def decode(params: Union[str, Mapping[str, str], None]) -> FilterState:
    params = _as_mapping(params)
    return FilterState(
        query=params.get(SEARCH_PARAM) or "",
        category=normalize_category(params.get(CATEGORY_PARAM)),
    )


def encode(state: FilterState, params: Union[str, Mapping[str, str], None] = None) -> Dict[str, str]:
    """Write `state` over `params`, keeping unrelated parameters untouched."""
    out = dict(_as_mapping(params))
    if state.query:
        out[SEARCH_PARAM] = state.query
    else:
        out.pop(SEARCH_PARAM, None)
    if state.category != ALL:
        out[CATEGORY_PARAM] = state.category.lower()
    else:
        out.pop(CATEGORY_PARAM, None)
    return out


def to_query_string(state: FilterState, params: Union[str, Mapping[str, str], None] = None) -> str:
    return urlencode(encode(state, params))
