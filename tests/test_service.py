"""
Tests for the tool surface: listing and invocation of static and dynamic tools.

Run: pytest tests/test_service.py -v
"""
import pytest

from lacework_lql.telemetry.schemas import TemplateSink
from lacework_lql.tools.registry import DynamicCapabilityRegistry
from lacework_lql.tools.service import STATIC_TOOLS, UNKNOWN_TOOL_MESSAGE, ToolService

VULN_TEXT = "find critical vulnerabilities in containers"

INVERTED_WINDOW = {"startTime": "2024-05-02T00:00:00Z", "endTime": "2024-05-01T00:00:00Z"}


class RecordingSink:
    """In-memory template store."""

    def __init__(self):
        self.saved = []

    def template_from_translation(self, result, natural_language):
        return {"name": result.suggested_name, "text": natural_language, "query": result.query}

    def save_template(self, template):
        self.saved.append(template)
        return True

    def list_summaries(self, category=None):
        return []


class TestListTools:

    def test_static_tools_first(self, service):
        names = [t.name for t in service.list_tools()]
        assert names == [t.name for t in STATIC_TOOLS]
        assert "natural-query" in names

    @pytest.mark.asyncio
    async def test_dynamic_tools_appended(self, service):
        await service.call_tool("natural-query", {"query": VULN_TEXT})
        names = [t.name for t in service.list_tools()]
        assert names[-1] == "get-critical-vulnerabilities-containers"

    def test_summary_serializes_input_schema_alias(self, service):
        dumped = service.list_tools()[0].model_dump(by_alias=True)
        assert "inputSchema" in dumped


class TestNaturalQuery:

    @pytest.mark.asyncio
    async def test_results_register_capability(self, service, registry):
        outcome = await service.call_tool("natural-query", {"query": VULN_TEXT})
        assert not outcome.is_error
        assert outcome.message.startswith(f'Natural Language Query: "{VULN_TEXT}"')
        assert "CVE-2024-0002" in outcome.message
        assert registry.has("get-critical-vulnerabilities-containers")

    @pytest.mark.asyncio
    async def test_no_rows_no_capability(self, service, registry):
        outcome = await service.call_tool("natural-query", {"query": "list s3 buckets"})
        assert not outcome.is_error
        assert registry.list_summaries() == []

    @pytest.mark.asyncio
    async def test_save_as_template(self, service, templates):
        await service.call_tool("natural-query", {"query": VULN_TEXT, "saveAsTemplate": True})
        saved = templates.templates_dir / "containers" / "lacework-critical-vulnerabilities-containers.yaml"
        assert saved.exists()

    @pytest.mark.asyncio
    async def test_missing_query(self, service):
        outcome = await service.call_tool("natural-query", {})
        assert outcome.is_error
        assert outcome.message == "Natural Language Query Error: 'query' is required"

    @pytest.mark.asyncio
    async def test_execution_failure_is_tagged(self, service, executor):
        executor.fail = True
        outcome = await service.call_tool("natural-query", {"query": VULN_TEXT})
        assert outcome.is_error
        assert outcome.message.startswith("Natural Language Query Error:")

    @pytest.mark.asyncio
    async def test_inverted_window_rejected(self, service, executor):
        outcome = await service.call_tool("natural-query", {"query": VULN_TEXT, **INVERTED_WINDOW})
        assert outcome.is_error
        assert outcome.message == (
            "Natural Language Query Error: startTime must not be after endTime"
        )
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_save_goes_to_any_template_sink(self, catalog, translator, registry, executor):
        sink = RecordingSink()
        assert isinstance(sink, TemplateSink)
        service = ToolService(catalog, translator, registry, executor, templates=sink)

        await service.call_tool("natural-query", {"query": VULN_TEXT, "saveAsTemplate": True})
        assert [t["text"] for t in sink.saved] == [VULN_TEXT]

        outcome = await service.call_tool("list-templates", {})
        assert outcome.message == "Available LQL Templates:\n[]"


class TestStaticTools:

    @pytest.mark.asyncio
    async def test_execute_lql(self, service, executor):
        outcome = await service.call_tool(
            "execute-lql",
            {"query": "{ source { ContainerVulnDetails r } return { r.CVE_ID } }",
             "startTime": "2024-05-01T00:00:00Z"},
        )
        assert not outcome.is_error
        _, start, end = executor.calls[-1]
        assert start.isoformat() == "2024-05-01T00:00:00+00:00"
        assert end is None

    @pytest.mark.asyncio
    async def test_execute_lql_failure(self, service, executor):
        executor.fail = True
        outcome = await service.call_tool("execute-lql", {"query": "{}"})
        assert outcome.is_error
        assert outcome.message == "LQL Execution Error: Lacework CLI not authenticated"

    @pytest.mark.asyncio
    async def test_execute_lql_inverted_window(self, service, executor):
        outcome = await service.call_tool("execute-lql", {"query": "{}", **INVERTED_WINDOW})
        assert outcome.is_error
        assert outcome.message == "LQL Execution Error: startTime must not be after endTime"
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_list_templates_by_category(self, service):
        outcome = await service.call_tool("list-templates", {"category": "containers"})
        assert "lacework-container-critical-vulns" in outcome.message
        assert "lacework-aws-unencrypted-volumes" not in outcome.message

    @pytest.mark.asyncio
    async def test_explore_data_sources(self, service):
        outcome = await service.call_tool("explore-data-sources", {"provider": "aws", "limit": 1})
        assert outcome.message.startswith("Discovered 1 data sources:")

    @pytest.mark.asyncio
    async def test_describe_data_source(self, service):
        outcome = await service.call_tool("describe-data-source", {"dataSource": "ContainerVulnDetails"})
        assert outcome.message.startswith("Data Source: ContainerVulnDetails\nCategory: Containers")
        assert "CVE_SCORE (float)" in outcome.message

    @pytest.mark.asyncio
    async def test_describe_unknown(self, service):
        outcome = await service.call_tool("describe-data-source", {"dataSource": "Nope"})
        assert outcome.is_error
        assert outcome.message == "Data source 'Nope' not found or not accessible."

    @pytest.mark.asyncio
    async def test_discover_fields(self, service):
        outcome = await service.call_tool("discover-fields", {"fieldPattern": "severity"})
        assert "ContainerVulnDetails:" in outcome.message

    @pytest.mark.asyncio
    async def test_discover_fields_no_match(self, service):
        outcome = await service.call_tool("discover-fields", {"fieldPattern": "zzzz"})
        assert outcome.message == "No fields found matching pattern 'zzzz'"

    @pytest.mark.asyncio
    async def test_build_targeted_query_survives_execution_failure(self, service, executor):
        executor.fail = True
        outcome = await service.call_tool(
            "build-targeted-query",
            {"intent": "critical cves", "dataSource": "ComplianceEvaluationDetails",
             "filters": {"severity": "critical"}},
        )
        assert not outcome.is_error
        assert "Targeted Query Built" in outcome.message
        assert "r.SEVERITY = 'critical'" in outcome.message
        assert "Execution Results" not in outcome.message

    @pytest.mark.asyncio
    async def test_build_targeted_query_without_source(self, service):
        outcome = await service.call_tool("build-targeted-query", {"intent": "zzz"})
        assert outcome.is_error
        assert outcome.message.startswith("Targeted Query Building Error:")


class TestDynamicDispatch:

    @pytest.mark.asyncio
    async def test_unknown_name_generates_and_runs(self, service, registry):
        outcome = await service.call_tool("get-aws-s3-buckets")
        assert not outcome.is_error
        assert outcome.message.startswith('Dynamic Tool Execution: "show me AWS s3 buckets"')
        assert registry.get("get-aws-s3-buckets").usage_count == 1

    @pytest.mark.asyncio
    async def test_unknown_name_without_generation(self, catalog, translator, executor, clock):
        registry = DynamicCapabilityRegistry(
            translator, executor, clock=clock, enable_auto_generation=False
        )
        service = ToolService(catalog, translator, registry, executor)
        outcome = await service.call_tool("frobnicate")
        assert outcome.is_error
        assert outcome.message == UNKNOWN_TOOL_MESSAGE.format(name="frobnicate")

    @pytest.mark.asyncio
    async def test_registered_tool_reinvoked(self, service, registry):
        await service.call_tool("natural-query", {"query": VULN_TEXT})
        outcome = await service.call_tool("get-critical-vulnerabilities-containers", {"severity": "high"})
        assert not outcome.is_error
        assert registry.get("get-critical-vulnerabilities-containers").usage_count == 2
