"""Translation results and the rule-table entries that drive translation."""

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from lacework_lql.clock import to_iso
from lacework_lql.translator.plan import Condition, QueryPlan


class TimeRange(BaseModel):
    """A closed time window; start never exceeds end."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _ordered(self) -> "TimeRange":
        if self.start > self.end:
            raise ValueError("time range start must not be after end")
        return self

    @field_serializer("start", "end")
    def _iso(self, value: datetime) -> str:
        return to_iso(value)


class TranslationResult(BaseModel):
    """A structured query synthesized from free text."""

    model_config = ConfigDict(frozen=True)

    query: str = Field(..., description="Rendered LQL")
    category: str = "general"
    suggested_name: str
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="Ordered filter key -> value map"
    )
    time_range: Optional[TimeRange] = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    data_source: Optional[str] = Field(default=None, description="Selected data source")
    plan: Optional[QueryPlan] = Field(
        default=None,
        description="Structured form of query; absent for meta queries",
    )


# ── Rule table entries ───────────────────────────────────


class SourceMapping(BaseModel):
    """Keyword-to-source mapping; any keyword hit selects the source."""

    model_config = ConfigDict(frozen=True)

    key: str
    keywords: tuple[str, ...]
    source: str
    default_fields: tuple[str, ...] = ()
    description: str = ""

    def matches(self, text: str) -> bool:
        return any(
            re.search(rf"\b{re.escape(keyword)}", text) for keyword in self.keywords
        )


class PatternRule(BaseModel):
    """A regex classifying a request into a category with baseline parameters."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    category: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    suggested_name: str

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text, re.IGNORECASE) is not None


class KeywordRule(BaseModel):
    """Fires when every group has at least one keyword present in the text.

    Keywords are plain substrings of the lowercased text.
    """

    model_config = ConfigDict(frozen=True)

    groups: tuple[tuple[str, ...], ...]

    def matches(self, text: str) -> bool:
        return all(any(k in text for k in group) for group in self.groups)


class FilterRule(KeywordRule):
    """Sets parameters[key] = value when it fires."""

    key: str
    value: Any


class DefaultSourceRule(KeywordRule):
    """Coarse topic keywords selecting a source when nothing else did."""

    source: str


class HeuristicCondition(KeywordRule):
    """Extra condition implied by the request text on matching sources."""

    source_contains: str
    condition: Condition


class TimePhrase(BaseModel):
    """A relative time phrase and the trailing window it denotes."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    hours: int

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text, re.IGNORECASE) is not None
