"""Dynamic query tools and the caller-facing tool service."""

from .inference import infer_natural_language
from .registry import CapabilityStore, DynamicCapabilityRegistry, capability_name
from .schemas import (
    ArgumentRule,
    CapabilitySummary,
    DynamicCapability,
    ToolContent,
    ToolResult,
    UsageRecord,
)
from .service import ToolService

__all__ = [
    "DynamicCapabilityRegistry",
    "CapabilityStore",
    "ToolService",
    "capability_name",
    "infer_natural_language",
    "ArgumentRule",
    "CapabilitySummary",
    "DynamicCapability",
    "ToolContent",
    "ToolResult",
    "UsageRecord",
]
