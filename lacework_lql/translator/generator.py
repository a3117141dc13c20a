"""Rule-based translation of free text into LQL.

Single pass per request:
1. identify the data source (mappings, catalog search, default ladder)
2. classify the request against the pattern table
3. extract filters from keywords
4. build the query plan (resolved conditions, heuristics, projection)
5. pick the time window
6. score confidence

Every step degrades to a default; translate() never raises.
"""

import logging
from datetime import timedelta
from typing import Any, Optional

from lacework_lql.catalog.explorer import DataSourceCatalog
from lacework_lql.catalog.resolver import FieldResolver
from lacework_lql.catalog.schemas import FieldDescriptor
from lacework_lql.clock import Clock, utc_now
from lacework_lql.text import significant_words
from lacework_lql.translator import rules
from lacework_lql.translator.plan import Condition, QueryPlan, build_condition
from lacework_lql.translator.schemas import (
    PatternRule,
    SourceMapping,
    TimeRange,
    TranslationResult,
)

logger = logging.getLogger(__name__)

NEGATED_SUFFIX = "_not"


def select_return_fields(
    source: str,
    fields: list[FieldDescriptor],
    mapping: Optional[SourceMapping] = None,
    requested: Optional[list[str]] = None,
) -> list[str]:
    """Projection for a source.

    Explicit fields win, then the top-ranked known fields, then the
    mapping's or the source's default list, then everything.
    """
    if requested:
        return list(requested)

    if fields:
        ranked = sorted(fields, key=lambda f: (-rules.field_priority(f.name), f.name))
        return [f.name for f in ranked[: rules.MAX_PROJECTED_FIELDS]]

    if mapping and mapping.default_fields:
        return list(mapping.default_fields)

    defaults = rules.SOURCE_DEFAULT_FIELDS.get(source)
    return list(defaults) if defaults else ["*"]


def build_conditions(
    parameters: dict[str, Any], source: str, resolver: FieldResolver
) -> list[Condition]:
    """Resolve each parameter key to a field and render its condition.

    Keys ending in "_not" produce negated comparisons. When two keys
    resolve to the same field the first one is kept.
    """
    conditions: list[Condition] = []
    seen: set[str] = set()

    for key, value in parameters.items():
        negate = key.endswith(NEGATED_SUFFIX)
        lookup_key = key[: -len(NEGATED_SUFFIX)] if negate else key

        field = resolver.resolve(lookup_key, source)
        if field.upper() in seen:
            logger.debug(f"Skipping {key}: {field} already constrained")
            continue

        condition = build_condition(field, value, negate=negate)
        if condition is None:
            continue

        seen.add(field.upper())
        conditions.append(condition)

    return conditions


def suggest_name(text: str) -> str:
    words = significant_words(text, limit=4)
    if not words:
        return f"{rules.NAME_PREFIX}-query"
    return f"{rules.NAME_PREFIX}-" + "-".join(words)


def score_confidence(source_identified: bool, pattern_matched: bool, filters_extracted: bool) -> float:
    """Coarse heuristic; more signals never lower the score."""
    confidence = 0.5
    if source_identified:
        confidence += 0.2
    if pattern_matched:
        confidence += 0.2
    if filters_extracted:
        confidence += 0.1
    return min(round(confidence, 2), 1.0)


class IntentTranslator:
    """Turns natural-language security questions into LQL queries."""

    def __init__(
        self,
        catalog: DataSourceCatalog,
        resolver: Optional[FieldResolver] = None,
        default_time_range_hours: int = 24,
        clock: Clock = utc_now,
        explore_fields: bool = False,
    ):
        if default_time_range_hours < 1:
            raise ValueError("default_time_range_hours must be at least 1")
        self.catalog = catalog
        self.resolver = resolver or FieldResolver(catalog)
        self.default_time_range_hours = default_time_range_hours
        self._clock = clock
        self.explore_fields = explore_fields

    async def translate(self, text: str) -> TranslationResult:
        """Translate free text into a TranslationResult. Never raises."""
        lowered = (text or "").lower()

        mapping = self.match_source_mapping(lowered)
        source: Optional[str] = mapping.source if mapping else None
        source_identified = mapping is not None

        if source is None:
            source = await self._search_source(text or "")
            source_identified = source is not None

        if source is None:
            source = self.infer_default_source(lowered)

        pattern = self.match_pattern(lowered)
        filters = self.extract_filters(lowered)

        parameters: dict[str, Any] = {}
        if pattern:
            parameters.update(pattern.parameters)
        parameters.update(filters)

        if self.explore_fields:
            await self._explore(source)

        plan = self.build_plan(source, parameters, lowered, mapping)
        time_range = self.extract_time_range(lowered)

        confidence = score_confidence(source_identified, pattern is not None, bool(filters))

        result = TranslationResult(
            query=plan.render(),
            category=pattern.category if pattern else rules.DEFAULT_CATEGORY,
            suggested_name=pattern.suggested_name if pattern else suggest_name(text or ""),
            parameters=parameters,
            time_range=time_range,
            confidence=confidence,
            data_source=source,
            plan=plan,
        )
        logger.debug(
            f"Translated {text!r} -> {source} "
            f"(category={result.category}, confidence={confidence})"
        )
        return result

    # ── Pipeline steps ───────────────────────────────────

    @staticmethod
    def match_source_mapping(text: str) -> Optional[SourceMapping]:
        for mapping in rules.SOURCE_MAPPINGS:
            if mapping.matches(text):
                logger.debug(f"Source mapping {mapping.key} matched")
                return mapping
        return None

    async def _search_source(self, text: str) -> Optional[str]:
        try:
            hits = await self.catalog.search(text)
        except Exception as e:
            logger.warning(f"Catalog search failed during translation: {e}")
            return None
        return hits[0].name if hits else None

    @staticmethod
    def infer_default_source(text: str) -> str:
        for rule in rules.DEFAULT_SOURCE_RULES:
            if rule.matches(text):
                return rule.source
        return rules.DEFAULT_SOURCE

    @staticmethod
    def match_pattern(text: str) -> Optional[PatternRule]:
        for rule in rules.QUERY_PATTERNS:
            if rule.matches(text):
                logger.debug(f"Pattern {rule.suggested_name} matched")
                return rule
        return None

    @staticmethod
    def extract_filters(text: str) -> dict[str, Any]:
        # Later rules overwrite earlier ones with the same key
        filters: dict[str, Any] = {}
        for rule in rules.FILTER_RULES:
            if rule.matches(text):
                filters[rule.key] = rule.value
        return filters

    def extract_time_range(self, text: str) -> TimeRange:
        end = self._clock()
        hours = self.default_time_range_hours
        for phrase in rules.TIME_PHRASES:
            if phrase.matches(text):
                hours = phrase.hours
                break
        return TimeRange(start=end - timedelta(hours=hours), end=end)

    def build_plan(
        self,
        source: str,
        parameters: dict[str, Any],
        text: str,
        mapping: Optional[SourceMapping] = None,
    ) -> QueryPlan:
        plan = QueryPlan(
            source=source,
            conditions=build_conditions(parameters, source, self.resolver),
            return_fields=select_return_fields(
                source, self.catalog.cached_fields(source), mapping
            ),
        )

        extra = [
            h.condition
            for h in rules.HEURISTIC_CONDITIONS
            if h.source_contains in source
            and h.matches(text)
            and not plan.constrains(h.condition.field)
        ]
        return plan.with_conditions(extra) if extra else plan

    async def _explore(self, source: str) -> None:
        try:
            await self.catalog.describe(source)
        except Exception as e:
            logger.warning(f"Could not describe {source} during translation: {e}")
