"""Natural-language to LQL translation."""

from .generator import IntentTranslator
from .plan import Condition, QueryPlan, build_condition
from .query_builder import QueryBuilder
from .schemas import TimeRange, TranslationResult

__all__ = [
    "IntentTranslator",
    "QueryBuilder",
    "QueryPlan",
    "Condition",
    "build_condition",
    "TimeRange",
    "TranslationResult",
]
