"""Structured query plans and their LQL rendering.

A QueryPlan is the structured form of a query (source, conditions,
projection). Translations and dynamic tools keep the plan alongside the
rendered text so runtime arguments can be added as conditions and the
query re-rendered, instead of patching query text.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ConditionValue = Union[str, int, float, bool, list[str], None]

COMPARISON_OPERATORS = (">=", "<=")


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value).strip()
    try:
        float(text)
        return text
    except ValueError:
        return _quote(text)


class Condition(BaseModel):
    """One comparison in a filter block."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: str = Field(
        default="=",
        description="=, >=, <=, in, like, is null, is not null",
    )
    value: ConditionValue = None
    negate: bool = False

    def render(self, alias: str = "r") -> str:
        column = f"{alias}.{self.field}" if alias else self.field

        if self.operator in ("is null", "is not null"):
            text = f"{column} {self.operator}"
        elif self.operator == "in":
            values = self.value if isinstance(self.value, list) else [self.value]
            text = f"{column} in ({', '.join(_quote(str(v)) for v in values)})"
        elif self.operator == "like":
            text = f"{column} like {_quote(str(self.value))}"
        elif self.operator in COMPARISON_OPERATORS:
            text = f"{column} {self.operator} {_literal(self.value)}"
        elif isinstance(self.value, (bool, int, float)):
            text = f"{column} = {_literal(self.value)}"
        else:
            text = f"{column} = {_quote(str(self.value))}"

        return f"not {text}" if self.negate else text


def build_condition(field: str, value: Any, negate: bool = False) -> Optional[Condition]:
    """Render a filter value into a condition on field.

    - leading >= / <= : inequality
    - booleans, "true" / "false" : boolean equality
    - lists and comma-joined strings : in-list
    - "*" wildcards : like
    - anything else : equality
    Returns None for empty values.
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return Condition(field=field, value=value, negate=negate)

    if isinstance(value, (int, float)):
        return Condition(field=field, value=value, negate=negate)

    if isinstance(value, (list, tuple, set)):
        items = [str(v).strip() for v in value if str(v).strip()]
        if not items:
            return None
        if len(items) == 1:
            return Condition(field=field, value=items[0], negate=negate)
        return Condition(field=field, operator="in", value=items, negate=negate)

    text = str(value).strip()
    if not text:
        return None

    operator = text[:2]
    if operator in COMPARISON_OPERATORS:
        return Condition(
            field=field, operator=operator, value=text[2:].strip(), negate=negate
        )

    if text.lower() in ("true", "false"):
        return Condition(field=field, value=text.lower() == "true", negate=negate)

    if "," in text:
        items = [v.strip() for v in text.split(",") if v.strip()]
        return Condition(field=field, operator="in", value=items, negate=negate)

    if "*" in text:
        return Condition(
            field=field, operator="like", value=text.replace("*", "%"), negate=negate
        )

    return Condition(field=field, value=text, negate=negate)


class QueryPlan(BaseModel):
    """Structured LQL query: source block, filter block, return block."""

    model_config = ConfigDict(frozen=True)

    source: str
    alias: str = "r"
    conditions: list[Condition] = Field(default_factory=list)
    return_fields: list[str] = Field(default_factory=lambda: ["*"])

    def constrains(self, field: str) -> bool:
        """Whether any condition already filters on field."""
        target = field.upper()
        return any(c.field.upper() == target for c in self.conditions)

    def with_conditions(self, extra: list[Condition]) -> "QueryPlan":
        return self.model_copy(update={"conditions": [*self.conditions, *extra]})

    def render(self) -> str:
        lines = ["{", "  source {", f"    {self.source} {self.alias}", "  }"]

        if self.conditions:
            rendered = [c.render(self.alias) for c in self.conditions]
            lines.append("  filter {")
            lines.append("    " + "\n    and ".join(rendered))
            lines.append("  }")

        projection = [
            field if field == "*" else f"{self.alias}.{field}"
            for field in (self.return_fields or ["*"])
        ]
        lines.append("  return distinct {")
        lines.append("    " + ",\n    ".join(projection))
        lines.append("  }")
        lines.append("}")
        return "\n".join(lines)
