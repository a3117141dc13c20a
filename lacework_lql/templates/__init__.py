"""Reusable LQL query templates."""

from .registry import TemplateRegistry
from .schemas import QueryTemplate, QueryTemplateSummary

__all__ = [
    "TemplateRegistry",
    "QueryTemplate",
    "QueryTemplateSummary",
]
