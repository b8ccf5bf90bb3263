"""Search service that delegates to a search engine backend."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from .api import SearchRequest
from .config import Config
from .elastic import ElasticSearchService, Product


class _Searcher(Protocol):
    def make_search(self, request: SearchRequest) -> List[Product]:
        ...


class SimpleSearchService:
    """Runs product searches through a search engine backend."""

    def __init__(self, searcher: _Searcher, log: Optional[logging.Logger] = None) -> None:
        self.searcher = searcher
        self.log = log or logging.getLogger(__name__)

    @classmethod
    def from_config(
        cls, config: Config, log: Optional[logging.Logger] = None
    ) -> "SimpleSearchService":
        """Create a service backed by the configured Elasticsearch cluster."""
        return cls(ElasticSearchService(config, log), log)

    def make_search(self, request: SearchRequest) -> List[Product]:
        """Search for products; errors from the backend propagate unchanged."""
        return self.searcher.make_search(request)