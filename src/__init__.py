"""
MLS Listing Search - Core Package

This package contains the core functionality for the MLS listing search service,
including location resolution, listing queries, and media enrichment.
"""

__version__ = "0.1.0"
