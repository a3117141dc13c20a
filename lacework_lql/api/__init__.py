"""HTTP API for the query engine."""
