"""Query template schemas.

QueryTemplates are named, reusable LQL queries with metadata. Templates
are stored one per YAML file under <templates_dir>/<category>/.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class QueryTemplate(BaseModel):
    """A named, reusable LQL query."""

    name: str = Field(..., description="Unique kebab-case identifier")
    description: str = Field(default="", description="What the query finds")
    category: str = Field(
        ...,
        description="aws, compliance, containers, threats, inventory or custom",
    )
    query: str = Field(..., description="LQL query text")
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="Filter values the query encodes"
    )
    tags: list[str] = Field(default_factory=list)
    author: Optional[str] = None
    created: Optional[str] = Field(
        default=None, description="ISO-8601 creation time"
    )
    version: str = Field(default="1.0.0")


class QueryTemplateSummary(BaseModel):
    """Lightweight template listing entry."""

    name: str
    description: str
    category: str
    tags: list[str] = Field(default_factory=list)
