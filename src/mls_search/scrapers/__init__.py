"""
External data provider clients.
"""
from src.mls_search.scrapers.spark_client import SparkApiClient

__all__ = [
    "SparkApiClient",
]
