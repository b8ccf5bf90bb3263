"""Request and response shapes of the search HTTP API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


def _field(data: Mapping[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    return next(
        (v for k, v in data.items() if isinstance(k, str) and k.casefold() == name),
        None,
    )


def _typed(value: Any, name: str, kind: type) -> Any:
    if value is None:
        return kind()
    if isinstance(value, bool) or not isinstance(value, (int, float) if kind is float else kind):
        raise ValueError(f"{name} has the wrong type")
    return kind(value)


@dataclass
class SearchFilters:
    """Price range applied to a search."""

    price_bottom: float = 0.0
    price_top: float = 0.0


@dataclass
class SearchRequest:
    """A client's search: the text to look for and its filters."""

    search_for: str = ""
    filters: SearchFilters = field(default_factory=SearchFilters)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SearchRequest":
        """Build a request from decoded JSON; missing fields take zero values.

        Field names match case-insensitively. Raises ``ValueError`` when a value
        has the wrong type.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("search request must be a JSON object")
        filters = _field(data, "filters")
        if filters is None:
            filters = {}
        if not isinstance(filters, Mapping):
            raise ValueError("filters must be a JSON object")
        return cls(
            search_for=_typed(_field(data, "search_for"), "search_for", str),
            filters=SearchFilters(
                price_bottom=_typed(_field(filters, "price_bottom"), "price_bottom", float),
                price_top=_typed(_field(filters, "price_top"), "price_top", float),
            ),
        )


def _plain(value: Any) -> Any:
    if callable(getattr(value, "to_dict", None)):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


@dataclass
class SearchResponse:
    """The body returned for a search."""

    message: str = ""
    result: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the response as JSON-ready data."""
        return {"message": self.message, "result": _plain(self.result)}


def unimplemented_response() -> SearchResponse:
    """Response sent by a handler that has no implementation."""
    return SearchResponse(result="method unimplemented")