"""Registry of dynamically generated query tools.

Successful translations are promoted into named capabilities with an
input schema. Each capability keeps its originating TranslationResult and
a list of ArgumentRules instead of a bound callable, so the whole
registry can be exported and re-imported as plain data.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from lacework_lql.clock import Clock, parse_iso, utc_now
from lacework_lql.telemetry.errors import QueryExecutionError
from lacework_lql.telemetry.schemas import QueryExecutor
from lacework_lql.text import significant_words
from lacework_lql.tools.inference import infer_natural_language
from lacework_lql.tools.schemas import (
    ArgumentRule,
    CapabilitySummary,
    DynamicCapability,
    ToolResult,
    UsageRecord,
)
from lacework_lql.translator.generator import IntentTranslator
from lacework_lql.translator.plan import build_condition
from lacework_lql.translator.schemas import TimeRange, TranslationResult

logger = logging.getLogger(__name__)

DEFAULT_PRUNE_MAX_AGE = 7 * 24 * 60 * 60  # seconds

CATEGORY_PREFIXES: dict[str, str] = {
    "aws-security": "get-aws",
    "container-security": "get-container",
    "compliance": "get-compliance",
    "threat-detection": "find-threat",
    "risk-assessment": "get-risk",
    "vulnerabilities": "get-vuln",
}
DEFAULT_PREFIX = "get"

# Properties every capability accepts
TIME_PROPERTIES: dict[str, dict[str, Any]] = {
    "startTime": {
        "type": "string",
        "description": "Start time for the query (ISO 8601 format, optional)",
    },
    "endTime": {
        "type": "string",
        "description": "End time for the query (ISO 8601 format, optional)",
    },
}

# parameter key -> (argument name, schema fragment)
KNOWN_PARAMETERS: dict[str, tuple[str, dict[str, Any]]] = {
    "severity": (
        "severity",
        {
            "type": "string",
            "enum": ["low", "medium", "high", "critical"],
            "description": "Filter by severity level",
        },
    ),
    "cloud_provider": (
        "cloudProvider",
        {
            "type": "string",
            "enum": ["aws", "gcp", "azure"],
            "description": "Filter by cloud provider",
        },
    ),
    "region": (
        "region",
        {"type": "string", "description": "Filter by cloud region"},
    ),
    "status": (
        "status",
        {
            "type": "string",
            "enum": ["active", "inactive", "fail", "pass"],
            "description": "Filter by status",
        },
    ),
    "resource_type": (
        "resourceType",
        {"type": "string", "description": "Filter by resource type"},
    ),
}


def capability_name(text: str, category: str) -> str:
    """Deterministic tool name from a category and request text."""
    prefix = CATEGORY_PREFIXES.get(category, DEFAULT_PREFIX)
    words = significant_words(text, limit=3)
    return f"{prefix}-{'-'.join(words) if words else 'query'}"


def build_input_schema(parameters: dict[str, Any]) -> tuple[dict[str, Any], list[ArgumentRule]]:
    """Input schema and argument rules for a translation's parameters."""
    properties: dict[str, Any] = dict(TIME_PROPERTIES)
    argument_rules: list[ArgumentRule] = []

    for key in parameters:
        argument, fragment = KNOWN_PARAMETERS.get(
            key, (key, {"type": "string", "description": f"Filter by {key}"})
        )
        properties[argument] = dict(fragment)
        argument_rules.append(ArgumentRule(argument=argument, parameter=key))

    schema = {"type": "object", "properties": properties, "required": []}
    return schema, argument_rules


def resolve_time_window(
    args: dict[str, Any], time_range: Optional[TimeRange] = None
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Execution window from startTime/endTime arguments.

    Each bound falls back to time_range when its argument is absent.
    Raises ValueError for an unparseable or inverted window.
    """
    start = args.get("startTime")
    end = args.get("endTime")
    start_time = parse_iso(str(start)) if start else (time_range.start if time_range else None)
    end_time = parse_iso(str(end)) if end else (time_range.end if time_range else None)

    if start_time and end_time and start_time > end_time:
        raise ValueError("startTime must not be after endTime")
    return start_time, end_time


class CapabilityStore:
    """Capability map owned by one registry; replaced wholesale on write."""

    def __init__(self) -> None:
        self.capabilities: dict[str, DynamicCapability] = {}

    def get(self, name: str) -> Optional[DynamicCapability]:
        return self.capabilities.get(name)

    def put(self, capability: DynamicCapability) -> None:
        updated = dict(self.capabilities)
        updated[capability.name] = capability
        self.capabilities = updated

    def put_many(self, capabilities: list[DynamicCapability]) -> None:
        updated = dict(self.capabilities)
        for capability in capabilities:
            updated[capability.name] = capability
        self.capabilities = updated

    def remove(self, names: list[str]) -> None:
        self.capabilities = {
            name: c for name, c in self.capabilities.items() if name not in names
        }

    def clear(self) -> None:
        self.capabilities = {}


class DynamicCapabilityRegistry:
    """Creates, invokes and maintains dynamic capabilities."""

    def __init__(
        self,
        translator: IntentTranslator,
        executor: QueryExecutor,
        store: Optional[CapabilityStore] = None,
        clock: Clock = utc_now,
        enable_auto_generation: bool = True,
    ):
        self.translator = translator
        self.executor = executor
        self.store = store or CapabilityStore()
        self._clock = clock
        self.enable_auto_generation = enable_auto_generation
        self._lock = asyncio.Lock()

    # ── Lookup ───────────────────────────────────────────

    def get(self, name: str) -> Optional[DynamicCapability]:
        return self.store.get(name)

    def has(self, name: str) -> bool:
        return self.store.get(name) is not None

    def list_summaries(self) -> list[CapabilitySummary]:
        return [
            CapabilitySummary(name=c.name, description=c.description, input_schema=c.input_schema)
            for c in self.store.capabilities.values()
        ]

    def usage_report(self) -> list[UsageRecord]:
        return [
            UsageRecord(name=c.name, usage_count=c.usage_count, last_used=c.last_used)
            for c in self.store.capabilities.values()
        ]

    # ── Registration ─────────────────────────────────────

    async def register_from_translation(
        self, result: TranslationResult, original_text: str
    ) -> DynamicCapability:
        """Promote a translation that produced results into a capability.

        The originating request counts as the first use. Registering the
        same (category, text) again bumps usage on the existing capability.
        """
        name = capability_name(original_text, result.category)

        async with self._lock:
            existing = self.store.get(name)
            if existing is not None:
                logger.info(f"Capability {name} already exists, updating usage stats")
                updated = self._touched(existing)
                self.store.put(updated)
                return updated

            now = self._clock()
            capability = self._create(name, original_text, result).model_copy(
                update={"usage_count": 1, "last_used": now}
            )
            self.store.put(capability)

        logger.info(f"Registered capability {name} for future use")
        return capability

    async def generate_from_unknown_name(
        self, name: str, args: Optional[dict[str, Any]] = None
    ) -> bool:
        """Try to build a capability for an unregistered name.

        Returns True only when a capability named `name` now exists.
        """
        if not self.enable_auto_generation:
            logger.info(f"Auto-generation disabled, not generating {name}")
            return False

        phrase = infer_natural_language(name, args)
        if not phrase:
            logger.warning(f"Could not infer intent for tool: {name}")
            return False

        logger.info(f"Inferred intent for {name}: {phrase!r}")
        result = await self.translator.translate(phrase)
        if not result.query:
            return False

        async with self._lock:
            if self.store.get(name) is None:
                self.store.put(self._create(name, phrase, result))

        logger.info(f"Generated capability {name}")
        return True

    def _create(self, name: str, text: str, result: TranslationResult) -> DynamicCapability:
        schema, argument_rules = build_input_schema(result.parameters)
        return DynamicCapability(
            name=name,
            description=f"Dynamically generated tool: {text}",
            input_schema=schema,
            natural_language=text,
            query_pattern=result,
            argument_rules=argument_rules,
            created=self._clock(),
        )

    def _touched(self, capability: DynamicCapability) -> DynamicCapability:
        return capability.model_copy(
            update={"usage_count": capability.usage_count + 1, "last_used": self._clock()}
        )

    # ── Invocation ───────────────────────────────────────

    async def invoke(self, name: str, args: Optional[dict[str, Any]] = None) -> Optional[ToolResult]:
        """Run a registered capability.

        Returns None when the name is not registered. Execution failures
        come back as an error ToolResult.
        """
        capability = self.store.get(name)
        if capability is None:
            return None

        async with self._lock:
            current = self.store.get(name) or capability
            self.store.put(self._touched(current))

        args = args or {}
        try:
            query = self.apply_arguments(capability, args)
            start, end = self._time_window(capability, args)
            result = await self.executor.execute(query, start, end)
        except (QueryExecutionError, ValueError) as e:
            logger.error(f"Capability {name} failed: {e}")
            return ToolResult.error(f"Dynamic Tool Execution Error: {e}")

        payload = json.dumps(result.model_dump(mode="json"), indent=2)
        return ToolResult.text(
            f'Dynamic Tool Execution: "{capability.natural_language}"\n\n'
            f"Generated LQL: {query}\n\nResults:\n{payload}"
        )

    def apply_arguments(self, capability: DynamicCapability, args: dict[str, Any]) -> str:
        """Render the capability's query with runtime arguments applied.

        An argument only adds a condition when its field is not already
        constrained by the base query.
        """
        pattern = capability.query_pattern
        if pattern is None:
            raise ValueError(f"Capability {capability.name} has no query")
        if pattern.plan is None:
            return pattern.query

        plan = pattern.plan
        extra = []
        for rule in capability.argument_rules:
            value = args.get(rule.argument)
            if value is None or value == "":
                continue
            field = self.translator.resolver.resolve(rule.parameter, plan.source)
            if plan.constrains(field) or any(c.field.upper() == field.upper() for c in extra):
                continue
            condition = build_condition(field, value)
            if condition is not None:
                extra.append(condition)

        return plan.with_conditions(extra).render() if extra else pattern.query

    def _time_window(self, capability: DynamicCapability, args: dict[str, Any]):
        time_range = capability.query_pattern.time_range if capability.query_pattern else None
        return resolve_time_window(args, time_range)

    # ── Maintenance ──────────────────────────────────────

    async def prune(self, max_age_seconds: float = DEFAULT_PRUNE_MAX_AGE) -> int:
        """Remove never-used capabilities idle for longer than max_age_seconds."""
        cutoff = self._clock() - timedelta(seconds=max_age_seconds)

        async with self._lock:
            stale = [
                c.name for c in self.store.capabilities.values()
                if c.usage_count == 0 and c.last_activity < cutoff
            ]
            self.store.remove(stale)

        logger.info(f"Pruned {len(stale)} unused dynamic tools")
        return len(stale)

    def export_all(self) -> list[DynamicCapability]:
        return [c.model_copy(deep=True) for c in self.store.capabilities.values()]

    async def import_all(self, capabilities: list[DynamicCapability]) -> int:
        """Restore capabilities, overwriting existing entries of the same name."""
        async with self._lock:
            self.store.put_many([c.model_copy(deep=True) for c in capabilities])
        logger.info(f"Imported {len(capabilities)} dynamic tools")
        return len(capabilities)

    async def teardown(self) -> None:
        async with self._lock:
            self.store.clear()
