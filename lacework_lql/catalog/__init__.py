"""Data source catalog and field resolution."""

from .explorer import CatalogStore, DataSourceCatalog
from .resolver import FieldResolver
from .schemas import (
    DataSourceDescriptor,
    DiscoveryFilter,
    FieldDescriptor,
    FieldMatch,
    FieldType,
)

__all__ = [
    "DataSourceCatalog",
    "CatalogStore",
    "FieldResolver",
    "DataSourceDescriptor",
    "FieldDescriptor",
    "FieldMatch",
    "FieldType",
    "DiscoveryFilter",
]
