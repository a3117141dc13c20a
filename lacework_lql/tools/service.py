"""Caller-facing tool surface: listing and invocation.

Static tools are dispatched by name; any other name is looked up in the
dynamic registry, then generated on demand from the name when
auto-generation is enabled. call_tool() never raises: every failure is
returned as a ToolResult with is_error set.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Optional

from lacework_lql.catalog.explorer import DataSourceCatalog
from lacework_lql.catalog.schemas import DiscoveryFilter
from lacework_lql.telemetry.schemas import QueryExecutor, QueryResult, TemplateSink
from lacework_lql.tools.registry import (
    TIME_PROPERTIES,
    DynamicCapabilityRegistry,
    resolve_time_window,
)
from lacework_lql.tools.schemas import CapabilitySummary, ToolResult
from lacework_lql.translator.generator import IntentTranslator
from lacework_lql.translator.query_builder import QueryBuilder
from lacework_lql.translator.schemas import TimeRange

logger = logging.getLogger(__name__)

UNKNOWN_TOOL_MESSAGE = "Unknown tool: {name}. Try using 'natural-query' with your request."

STATIC_TOOLS: list[CapabilitySummary] = [
    CapabilitySummary(
        name="natural-query",
        description="Convert natural language to Lacework LQL query and execute it",
        input_schema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Natural language description of what you want to find "
                    '(e.g., "show me AWS EC2 instances with high risk scores")',
                },
                **TIME_PROPERTIES,
                "saveAsTemplate": {
                    "type": "boolean",
                    "description": "Save successful query as a reusable template",
                },
            },
            "required": ["query"],
        },
    ),
    CapabilitySummary(
        name="execute-lql",
        description="Execute a raw LQL query directly",
        input_schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Raw LQL query to execute"},
                **TIME_PROPERTIES,
            },
            "required": ["query"],
        },
    ),
    CapabilitySummary(
        name="list-templates",
        description="List all available LQL templates organized by category",
        input_schema={
            "type": "object",
            "properties": {
                "category": {
                    "type": "string",
                    "description": "Filter templates by category "
                    "(aws, compliance, containers, threats, inventory, custom)",
                },
            },
            "required": [],
        },
    ),
    CapabilitySummary(
        name="explore-data-sources",
        description="Discover and explore available Lacework data sources with filtering",
        input_schema={
            "type": "object",
            "properties": {
                "pattern": {
                    "type": "string",
                    "description": 'Search pattern to filter data sources (e.g., "aws", "container")',
                },
                "category": {
                    "type": "string",
                    "description": "Filter by category (AWS, Azure, GCP, Containers, Kubernetes, etc.)",
                },
                "provider": {
                    "type": "string",
                    "description": "Filter by cloud provider (aws, azure, gcp)",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of results to return",
                },
            },
            "required": [],
        },
    ),
    CapabilitySummary(
        name="describe-data-source",
        description="Get detailed information about a specific data source including available fields",
        input_schema={
            "type": "object",
            "properties": {
                "dataSource": {
                    "type": "string",
                    "description": 'Name of the data source (e.g., "LW_CFG_AWS_EC2_INSTANCES")',
                },
            },
            "required": ["dataSource"],
        },
    ),
    CapabilitySummary(
        name="discover-fields",
        description="Find fields containing specific patterns across data sources",
        input_schema={
            "type": "object",
            "properties": {
                "fieldPattern": {
                    "type": "string",
                    "description": 'Pattern to search for in field names (e.g., "region", "severity")',
                },
                "dataSourcePattern": {
                    "type": "string",
                    "description": "Optional pattern to filter data sources",
                },
            },
            "required": ["fieldPattern"],
        },
    ),
    CapabilitySummary(
        name="build-targeted-query",
        description="Build a targeted LQL query using discovered data sources and fields",
        input_schema={
            "type": "object",
            "properties": {
                "intent": {"type": "string", "description": "Description of what you want to find"},
                "dataSource": {
                    "type": "string",
                    "description": "Specific data source to query (auto-detected if omitted)",
                },
                "filters": {
                    "type": "object",
                    "description": 'Key-value filters (e.g., {"region": "us-east-1", "severity": "high"})',
                },
                "fields": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Specific fields to return (auto-selected if omitted)",
                },
            },
            "required": ["intent"],
        },
    ),
]

StaticHandler = Callable[[dict[str, Any]], Awaitable[ToolResult]]


def _dumps(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def _required(args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{key}' is required")
    return value


class ToolService:
    """Lists and invokes static and dynamic tools."""

    def __init__(
        self,
        catalog: DataSourceCatalog,
        translator: IntentTranslator,
        registry: DynamicCapabilityRegistry,
        executor: QueryExecutor,
        templates: Optional[TemplateSink] = None,
        query_builder: Optional[QueryBuilder] = None,
    ):
        self.catalog = catalog
        self.translator = translator
        self.registry = registry
        self.executor = executor
        self.templates = templates
        self.query_builder = query_builder or QueryBuilder(catalog, translator.resolver)

        # name -> (handler, error prefix)
        self._static: dict[str, tuple[StaticHandler, str]] = {
            "natural-query": (self._natural_query, "Natural Language Query Error"),
            "execute-lql": (self._execute_lql, "LQL Execution Error"),
            "list-templates": (self._list_templates, "Template Listing Error"),
            "explore-data-sources": (self._explore_data_sources, "Data Source Exploration Error"),
            "describe-data-source": (self._describe_data_source, "Data Source Description Error"),
            "discover-fields": (self._discover_fields, "Field Discovery Error"),
            "build-targeted-query": (self._build_targeted_query, "Targeted Query Building Error"),
        }

    def list_tools(self) -> list[CapabilitySummary]:
        """Static tools followed by every registered capability."""
        return [*STATIC_TOOLS, *self.registry.list_summaries()]

    async def call_tool(self, name: str, arguments: Optional[dict[str, Any]] = None) -> ToolResult:
        """Invoke a tool by name. Never raises."""
        args = arguments or {}
        logger.info(f"Tool call: {name}")

        static = self._static.get(name)
        if static is not None:
            handler, prefix = static
            try:
                return await handler(args)
            except Exception as e:
                logger.error(f"Tool call error for {name}: {e}")
                return ToolResult.error(f"{prefix}: {e}")

        try:
            return await self._call_dynamic(name, args)
        except Exception as e:
            logger.error(f"Tool call error for {name}: {e}")
            return ToolResult.error(f"Error: {e}")

    async def _call_dynamic(self, name: str, args: dict[str, Any]) -> ToolResult:
        result = await self.registry.invoke(name, args)
        if result is not None:
            return result

        if await self.registry.generate_from_unknown_name(name, args):
            logger.info(f"Generated dynamic tool: {name}")
            result = await self.registry.invoke(name, args)
            if result is not None:
                return result

        return ToolResult.error(UNKNOWN_TOOL_MESSAGE.format(name=name))

    async def _execute(
        self, query: str, args: dict[str, Any], time_range: Optional[TimeRange] = None
    ) -> QueryResult:
        start_time, end_time = resolve_time_window(args, time_range)
        return await self.executor.execute(query, start_time, end_time)

    # ── Static tools ─────────────────────────────────────

    async def _natural_query(self, args: dict[str, Any]) -> ToolResult:
        text = _required(args, "query")
        translation = await self.translator.translate(text)
        logger.info(f"Generated LQL for {text!r}")

        result = await self._execute(translation.query, args, translation.time_range)

        if result.data:
            if args.get("saveAsTemplate") and self.templates is not None:
                template = self.templates.template_from_translation(translation, text)
                self.templates.save_template(template)
            await self.registry.register_from_translation(translation, text)

        return ToolResult.text(
            f'Natural Language Query: "{text}"\n\n'
            f"Generated LQL: {translation.query}\n\n"
            f"Results:\n{_dumps(result.model_dump(mode='json'))}"
        )

    async def _execute_lql(self, args: dict[str, Any]) -> ToolResult:
        query = _required(args, "query")
        result = await self._execute(query, args)
        return ToolResult.text(
            f"LQL Query: {query}\n\nResults:\n{_dumps(result.model_dump(mode='json'))}"
        )

    async def _list_templates(self, args: dict[str, Any]) -> ToolResult:
        if self.templates is None:
            return ToolResult.text("Available LQL Templates:\n[]")
        summaries = self.templates.list_summaries(args.get("category"))
        return ToolResult.text(
            f"Available LQL Templates:\n{_dumps([s.model_dump() for s in summaries])}"
        )

    async def _explore_data_sources(self, args: dict[str, Any]) -> ToolResult:
        limit = args.get("limit")
        request = DiscoveryFilter(
            pattern=args.get("pattern"),
            category=args.get("category"),
            provider=args.get("provider"),
            limit=int(limit) if limit else None,
        )
        sources = await self.catalog.discover(request)
        summary = "\n".join(f"• {s.name} ({s.category}): {s.description}" for s in sources)
        return ToolResult.text(
            f"Discovered {len(sources)} data sources:\n\n{summary}\n\n"
            f"Detailed information:\n{_dumps([s.model_dump(mode='json') for s in sources])}"
        )

    async def _describe_data_source(self, args: dict[str, Any]) -> ToolResult:
        name = _required(args, "dataSource")
        source = await self.catalog.describe(name)
        if source is None:
            return ToolResult.error(f"Data source '{name}' not found or not accessible.")

        fields = source.fields or []
        field_summary = "\n".join(
            f"• {f.name} ({f.type.value}): {f.description or 'No description'}" for f in fields
        ) or "No field information available"
        return ToolResult.text(
            f"Data Source: {source.name}\nCategory: {source.category}\n"
            f"Description: {source.description}\n\n"
            f"Fields ({len(fields)}):\n{field_summary}\n\n"
            f"Full details:\n{_dumps(source.model_dump(mode='json'))}"
        )

    async def _discover_fields(self, args: dict[str, Any]) -> ToolResult:
        pattern = _required(args, "fieldPattern")
        matches = await self.catalog.find_fields_containing(pattern, args.get("dataSourcePattern"))
        if not matches:
            return ToolResult.text(f"No fields found matching pattern '{pattern}'")

        summary = "\n\n".join(
            f"{m.source}:\n"
            + "\n".join(
                f"  • {f.name} ({f.type.value}): {f.description or 'No description'}"
                for f in m.fields
            )
            for m in matches
        )
        return ToolResult.text(
            f"Found fields matching '{pattern}' across {len(matches)} data sources:\n\n"
            f"{summary}\n\nFull details:\n{_dumps([m.model_dump(mode='json') for m in matches])}"
        )

    async def _build_targeted_query(self, args: dict[str, Any]) -> ToolResult:
        intent = _required(args, "intent")
        built = await self.query_builder.build_targeted_query(
            intent,
            data_source=args.get("dataSource"),
            filters=args.get("filters"),
            fields=args.get("fields"),
        )

        # Execution is opportunistic; the built query is returned either way
        execution = ""
        try:
            result = await self._execute(built.query, {}, built.time_range)
            execution = f"\n\nExecution Results:\n{_dumps(result.model_dump(mode='json'))}"
        except Exception as e:
            logger.warning(f"Targeted query execution failed: {e}")

        details = built.model_dump(mode="json", exclude={"plan"})
        return ToolResult.text(
            f"Targeted Query Built:\nIntent: {intent}\nGenerated LQL:\n{built.query}\n\n"
            f"Query Details:\n{_dumps(details)}{execution}"
        )
