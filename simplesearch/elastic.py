"""Product search against an Elasticsearch index."""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

import requests

from .api import SearchRequest
from .config import Config
from .jsonutil import json_decode, json_encode

DEFAULT_ADDRESS = "http://localhost:9200"

_OP = "service.ElasticSearch."
_INDEX = "products"
_FIELD_NAME = "name^3"
_FIELD_PRICE = "price"
_FIELD_STOCK = "stock"

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class SearchError(Exception):
    """Base class for search failures."""

    default_message = "search error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class NoHitsError(SearchError):
    """The search matched no products."""

    default_message = "no hits"


class EncodingError(SearchError):
    """The query could not be encoded."""

    default_message = "json encoding error"


class DecodingError(SearchError):
    """The response or a document in it could not be decoded."""

    default_message = "json decoding error"


class ConversionError(SearchError):
    """The response does not have the expected shape."""

    default_message = "interface conversion error"


def _field(data: Mapping[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    folded = name.casefold()
    for key, value in data.items():
        if isinstance(key, str) and key.casefold() == folded:
            return value
    return None


def _string(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodingError(f"{name} must be a string")
    return value


def _float(value: Any, name: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodingError(f"{name} must be a number")
    return float(value)


def _int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodingError(f"{name} must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise DecodingError(f"{name} must be an integer")
        value = int(value)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise DecodingError(f"{name} is out of range")
    return value


def _parse_time(value: Any) -> datetime:
    if value is None:
        return _ZERO_TIME
    if not isinstance(value, str):
        raise DecodingError("created_at must be a string")
    match = _RFC3339.fullmatch(value)
    if match is None:
        raise DecodingError(f"created_at is not an RFC 3339 time: {value!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    if zone == "Z":
        tz = timezone.utc
    else:
        hours, minutes = int(zone[1:3]), int(zone[4:6])
        if hours >= 24 or minutes >= 60:
            raise DecodingError(f"created_at has a bad offset: {value!r}")
        offset = timedelta(hours=hours, minutes=minutes)
        tz = timezone.utc if not offset else timezone(-offset if zone[0] == "-" else offset)
    micros = int((fraction or "").ljust(6, "0")[:6])
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tz
        )
    except ValueError as exc:
        raise DecodingError(f"created_at is out of range: {value!r}") from exc


def _format_time(moment: datetime) -> str:
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    minutes = abs(minutes)
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass
class Product:
    """A product document from the index."""

    name: str = ""
    description: str = ""
    price: float = 0.0
    category: str = ""
    stock: int = 0
    created_at: datetime = _ZERO_TIME

    @classmethod
    def from_source(cls, source: Mapping[str, Any]) -> "Product":
        """Build a product from a hit's ``_source``; raises ``DecodingError``."""
        return cls(
            name=_string(_field(source, "name"), "name"),
            description=_string(_field(source, "description"), "description"),
            price=_float(_field(source, "price"), "price"),
            category=_string(_field(source, "category"), "category"),
            stock=_int(_field(source, "stock"), "stock"),
            created_at=_parse_time(_field(source, "created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the product as JSON-ready data."""
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": self.category,
            "stock": self.stock,
            "created_at": _format_time(self.created_at),
        }


def build_query(request: SearchRequest) -> Dict[str, Any]:
    """Build the query for in-stock products matching ``request``."""
    return {
        "query": {
            "bool": {
                "must": [
                    {
                        "multi_match": {
                            "query": request.search_for,
                            "fields": [_FIELD_NAME],
                        }
                    }
                ],
                "must_not": [{"match": {_FIELD_STOCK: 0}}],
                "filter": [
                    {
                        "range": {
                            _FIELD_PRICE: {
                                "gte": request.filters.price_bottom,
                                "lte": request.filters.price_top,
                            }
                        }
                    }
                ],
            }
        }
    }


def extract_products(response: Any) -> List[Product]:
    """Turn a decoded search response into products, in hit order."""
    outer = response.get("hits") if isinstance(response, Mapping) else None
    hits = outer.get("hits") if isinstance(outer, Mapping) else None
    if not isinstance(hits, list):
        raise ConversionError()

    products = []
    for hit in hits:
        source = hit.get("_source") if isinstance(hit, Mapping) else None
        if not isinstance(source, Mapping):
            raise ConversionError()
        products.append(Product.from_source(source))
    return products


class ElasticSearchService:
    """Runs product searches against the configured cluster."""

    def __init__(
        self,
        config: Config,
        log: Optional[logging.Logger] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        settings = config.elasticsearch
        self.config = config
        self.log = log or logging.getLogger(__name__)
        self.address = (settings.address or DEFAULT_ADDRESS).rstrip("/")
        self.session = session or requests.Session()
        self.session.auth = (settings.username, settings.password)
        self.session.verify = not settings.transport.tls.insecure
        self._timeout = (settings.transport.tls_timeout or None, None)

    def _error(self, message: str, fu: str, exc: BaseException) -> None:
        self.log.error(message, extra={"op": _OP + fu, "error": str(exc)})

    def make_search(self, request: SearchRequest) -> List[Product]:
        """Search the products index; raises ``NoHitsError`` when nothing matches."""
        fu = "Search()"
        try:
            body = json_encode(build_query(request))
        except (TypeError, ValueError) as exc:
            self._error("can't encode", fu, exc)
            raise EncodingError() from exc

        try:
            response = self.session.post(
                f"{self.address}/{_INDEX}/_search",
                params={"pretty": "true"},
                data=body,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            self._error("can't make a request to elasticsearch", fu, exc)
            raise

        with response:
            try:
                decoded = json_decode(io.BytesIO(response.content))
            except ValueError as exc:
                self._error("can't decode", fu, exc)
                raise DecodingError() from exc

        try:
            products = extract_products(decoded)
        except SearchError as exc:
            self._error("can't extract hits", "productHitsExtractor()", exc)
            raise

        if not products:
            raise NoHitsError()
        return products