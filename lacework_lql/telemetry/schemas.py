"""Collaborator contracts consumed by the catalog, translator and registry."""

from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class QueryMetadata(BaseModel):
    """Execution metadata reported alongside result rows."""

    execution_time_ms: int = 0
    row_count: int = 0
    query: str = ""


class QueryResult(BaseModel):
    """Rows returned by a query execution."""

    data: list[dict[str, Any]] = Field(default_factory=list)
    metadata: QueryMetadata = Field(default_factory=QueryMetadata)


@runtime_checkable
class QueryExecutor(Protocol):
    """Executes a query string over an optional time range.

    Raises QueryExecutionError when the platform is unauthenticated,
    unreachable, or rejects the query. Implementations do not retry.
    """

    async def execute(
        self,
        query: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> QueryResult: ...


@runtime_checkable
class DataSourceLister(Protocol):
    """Lists data source names. Best effort: returns [] on failure."""

    async def list_data_source_names(self) -> list[str]: ...


@runtime_checkable
class TemplateSink(Protocol):
    """Durable storage for capability-worthy queries.

    Derives a template from a translation, persists it, and lists what
    has been stored so far.
    """

    def template_from_translation(self, result: Any, natural_language: str) -> Any: ...

    def save_template(self, template: Any) -> bool: ...

    def list_summaries(self, category: Optional[str] = None) -> list[Any]: ...
