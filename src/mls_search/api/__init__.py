"""
FastAPI REST API for MLS Listing Search

Provides REST endpoints for:
- Listing search with location resolution and media enrichment
- Location match previews
- Health checks
"""
