"""Collaborators that talk to the telemetry platform.

The core only depends on the QueryExecutor / DataSourceLister protocols;
LaceworkClient is the HTTP implementation of both.
"""

from .client import LaceworkClient
from .errors import NotConfiguredError, QueryExecutionError, TelemetryError
from .schemas import (
    DataSourceLister,
    QueryExecutor,
    QueryMetadata,
    QueryResult,
    TemplateSink,
)

__all__ = [
    "LaceworkClient",
    "TelemetryError",
    "QueryExecutionError",
    "NotConfiguredError",
    "QueryExecutor",
    "DataSourceLister",
    "TemplateSink",
    "QueryResult",
    "QueryMetadata",
]
