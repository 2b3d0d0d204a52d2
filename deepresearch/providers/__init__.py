"""Document providers with a protocol-based adapter pattern.

Usage:
    from deepresearch.providers import HttpRagProvider, HttpDocsProvider

    providers = [
        HttpRagProvider("kokkai-db", "http://localhost:8001/search"),
        HttpDocsProvider(),  # fetches ProviderQuery.seed_urls
    ]
"""

from .models import DocumentSource, DocumentResult, ProviderQuery, evidence_key
from .protocols import SearchProvider
from .http_rag import HttpRagProvider
from .http_docs import HttpDocsProvider

__all__ = [
    # Models
    "DocumentSource",
    "DocumentResult",
    "ProviderQuery",
    "evidence_key",
    # Protocols (for implementing custom providers)
    "SearchProvider",
    # Adapters
    "HttpRagProvider",
    "HttpDocsProvider",
]
