"""Dynamic capability models and the caller-facing tool result shape."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from lacework_lql.clock import to_iso
from lacework_lql.translator.schemas import TranslationResult


class ArgumentRule(BaseModel):
    """How one runtime argument becomes an extra query condition.

    The field is resolved when the capability is invoked, so the rule
    only records which translation parameter the argument stands for.
    """

    argument: str = Field(..., description="Property name in the input schema")
    parameter: str = Field(..., description="Translation parameter key it maps to")


class DynamicCapability(BaseModel):
    """A named, invokable query promoted from a successful translation."""

    name: str = Field(..., description="Unique key across the registry")
    description: str
    input_schema: dict[str, Any] = Field(
        ..., description="JSON-Schema object describing accepted arguments"
    )
    natural_language: str = Field(
        default="", description="Request text the capability was built from"
    )
    query_pattern: Optional[TranslationResult] = None
    argument_rules: list[ArgumentRule] = Field(default_factory=list)
    created: datetime
    last_used: Optional[datetime] = None
    usage_count: int = Field(default=0, ge=0)

    @property
    def last_activity(self) -> datetime:
        return self.last_used or self.created

    @field_serializer("created", "last_used")
    def _iso(self, value: Optional[datetime]) -> Optional[str]:
        return to_iso(value) if value is not None else None


class CapabilitySummary(BaseModel):
    """Listing entry: name, description and input schema only."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: dict[str, Any] = Field(..., alias="inputSchema")


class UsageRecord(BaseModel):
    name: str
    usage_count: int
    last_used: Optional[datetime] = None

    @field_serializer("last_used")
    def _iso(self, value: Optional[datetime]) -> Optional[str]:
        return to_iso(value) if value is not None else None


class ToolContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    """Outcome of a tool invocation; failures are tagged, never raised."""

    content: list[ToolContent] = Field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=[ToolContent(text=text)])

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(content=[ToolContent(text=message)], is_error=True)

    @property
    def message(self) -> str:
        return "\n".join(c.text for c in self.content)
