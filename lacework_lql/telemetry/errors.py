"""Errors raised by telemetry collaborators."""

from typing import Optional


class TelemetryError(Exception):
    """Base class for collaborator failures."""


class QueryExecutionError(TelemetryError):
    """The platform rejected the query or could not be reached."""

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message)
        self.query = query


class NotConfiguredError(QueryExecutionError):
    """No API URL or token is configured, so nothing can be executed."""
