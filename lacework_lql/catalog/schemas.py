"""Data source and field descriptors."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class FieldType(str, Enum):
    """Value shapes recognized by field discovery."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    IP_ADDRESS = "ip-address"
    ARN = "identifier-reference"
    OBJECT = "object"
    NULL = "null"
    UNKNOWN = "unknown"


class FieldDescriptor(BaseModel):
    """A single column of a data source."""

    name: str
    type: FieldType = FieldType.UNKNOWN
    description: Optional[str] = None
    sample_values: list[str] = Field(
        default_factory=list,
        description="Up to 3 distinct, truncated sample values",
    )
    nullable: bool = False


class DataSourceDescriptor(BaseModel):
    """A queryable, schema-bearing data source."""

    name: str = Field(..., description="Unique data source name")
    category: str = Field(
        default="General",
        description="AWS, Azure, GCP, Containers, Kubernetes, Network, "
        "Activity, Compliance or General",
    )
    description: str = ""
    fields: Optional[list[FieldDescriptor]] = Field(
        default=None, description="Populated once the source has been described"
    )
    sample_rows: Optional[list[dict[str, Any]]] = None

    @field_validator("fields")
    @classmethod
    def _unique_sorted_fields(
        cls, value: Optional[list[FieldDescriptor]]
    ) -> Optional[list[FieldDescriptor]]:
        if value is None:
            return value
        by_name: dict[str, FieldDescriptor] = {}
        for f in value:
            by_name.setdefault(f.name, f)
        return [by_name[name] for name in sorted(by_name)]


class DiscoveryFilter(BaseModel):
    """Filters applied to discovered data sources."""

    pattern: Optional[str] = Field(
        default=None, description="Substring of the data source name"
    )
    category: Optional[str] = Field(
        default=None, description="Substring of the category"
    )
    provider: Optional[str] = Field(
        default=None, description="Cloud provider in the name or category"
    )
    limit: Optional[int] = Field(default=None, ge=1)

    def matches(self, source: DataSourceDescriptor) -> bool:
        name = source.name.lower()
        category = source.category.lower()

        if self.pattern and self.pattern.lower() not in name:
            return False
        if self.category and self.category.lower() not in category:
            return False
        if self.provider:
            provider = self.provider.lower()
            if provider not in name and provider not in category:
                return False
        return True


class FieldMatch(BaseModel):
    """Fields of one data source that matched a field search."""

    source: str
    fields: list[FieldDescriptor]
