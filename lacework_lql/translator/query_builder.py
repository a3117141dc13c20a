"""Targeted and drill-down query construction.

Unlike IntentTranslator, the builder works from explicit structure
(source, filters, fields) and explores the source first so filter keys
resolve against real field names. Invalid requests raise ValueError.
"""

import logging
from typing import Any, Optional

from lacework_lql.catalog.explorer import DataSourceCatalog
from lacework_lql.catalog.resolver import FieldResolver
from lacework_lql.text import significant_words, slugify
from lacework_lql.translator.generator import build_conditions, select_return_fields
from lacework_lql.translator.plan import QueryPlan
from lacework_lql.translator.schemas import TimeRange, TranslationResult

logger = logging.getLogger(__name__)

DRILL_DOWN_TARGETS = ("datasources", "fields", "values")

# (keywords in the intent, category). First match wins, else the source category.
INTENT_CATEGORIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("security", "vuln"), "security"),
    (("compliance", "policy"), "compliance"),
    (("performance", "resource"), "performance"),
    (("discover", "explore"), "discovery"),
)


def categorize_intent(intent: str, source_category: str) -> str:
    text = intent.lower()
    for keywords, category in INTENT_CATEGORIES:
        if any(k in text for k in keywords):
            return category
    return source_category.lower()


def targeted_query_name(intent: str, source: str) -> str:
    short = source.lower()
    for prefix in ("lw_cfg_", "lw_"):
        if short.startswith(prefix):
            short = short[len(prefix):]
            break
    short = short.replace("_", "-")
    words = significant_words(intent, limit=3)
    return "-".join(["query", short, *words])


class QueryBuilder:
    """Builds queries from explicit structure rather than free text."""

    def __init__(self, catalog: DataSourceCatalog, resolver: Optional[FieldResolver] = None):
        self.catalog = catalog
        self.resolver = resolver or FieldResolver(catalog)

    async def build_targeted_query(
        self,
        intent: str,
        data_source: Optional[str] = None,
        filters: Optional[dict[str, Any]] = None,
        fields: Optional[list[str]] = None,
        time_range: Optional[TimeRange] = None,
    ) -> TranslationResult:
        """Build a query against a named or inferred data source.

        Raises ValueError when no source is given and none matches the
        intent, or when the source cannot be described.
        """
        source = data_source
        if not source:
            hits = await self.catalog.search(intent)
            if hits:
                source = hits[0].name
                logger.info(f"Auto-selected data source: {source}")

        if not source:
            raise ValueError("Unable to determine appropriate data source for query")

        descriptor = await self.catalog.describe(source)
        if descriptor is None:
            raise ValueError(f"Unable to explore data source: {source}")

        filters = filters or {}
        plan = QueryPlan(
            source=source,
            conditions=build_conditions(filters, source, self.resolver),
            return_fields=select_return_fields(
                source, descriptor.fields or [], requested=fields
            ),
        )

        return TranslationResult(
            query=plan.render(),
            category=categorize_intent(intent, descriptor.category),
            suggested_name=targeted_query_name(intent, source),
            parameters=dict(filters),
            time_range=time_range,
            confidence=0.9,
            data_source=source,
            plan=plan,
        )

    async def build_drill_down_query(
        self,
        target: str,
        pattern: Optional[str] = None,
        source: Optional[str] = None,
        field: Optional[str] = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> TranslationResult:
        """Build an exploration query.

        - datasources: a meta query answered by the catalog, not executed
        - fields: a sample projection over source (requires source)
        - values: distinct values of source.field (requires both)
        """
        logger.debug(f"Building drill-down query for {target}")

        if target == "datasources":
            query = "\n".join([
                "-- Data source discovery",
                f"-- Pattern: {pattern or 'all'}",
                "-- Answered by the catalog, not executed as LQL",
            ])
            return TranslationResult(
                query=query,
                category="discovery",
                suggested_name="list-data-sources",
                parameters={"pattern": pattern} if pattern else {},
                confidence=1.0,
            )

        if target == "fields":
            if not source:
                raise ValueError("Data source required for field discovery")
            plan = QueryPlan(source=source, return_fields=["RESOURCE_REGION"])
            parameters: dict[str, Any] = {"source": source}
            if pattern:
                parameters["field_pattern"] = pattern
            return TranslationResult(
                query=plan.render(),
                category="discovery",
                suggested_name=f"explore-{slugify(source)}",
                parameters=parameters,
                confidence=0.95,
                data_source=source,
                plan=plan,
            )

        if target == "values":
            if not source or not field:
                raise ValueError("Both data source and field required for value exploration")
            plan = QueryPlan(source=source, return_fields=[field])
            return TranslationResult(
                query=plan.render(),
                category="discovery",
                suggested_name=f"values-{field.lower()}",
                parameters={"source": source, "field": field, **(filters or {})},
                confidence=0.95,
                data_source=source,
                plan=plan,
            )

        raise ValueError(f"Unknown drill-down target: {target}")
