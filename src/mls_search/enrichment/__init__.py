"""
Listing enrichment utilities.
"""
from src.mls_search.enrichment.detail_cache import DetailEnrichmentCache

__all__ = ["DetailEnrichmentCache"]
