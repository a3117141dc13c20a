"""Lacework LQL - natural language query synthesis for cloud security telemetry.

- Data source catalog with TTL-cached discovery and field schemas
- Rule-based translation of free text into LQL queries
- Dynamic tools promoted from successful translations
"""

__version__ = "0.1.0"
