"""HTTP product search service backed by Elasticsearch."""

__version__ = "0.1.0"