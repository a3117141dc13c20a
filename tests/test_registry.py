"""
Tests for the dynamic capability registry and reverse name inference.

Run: pytest tests/test_registry.py -v
"""
import json

import pytest

from lacework_lql.tools.inference import infer_natural_language
from lacework_lql.tools.registry import (
    DynamicCapabilityRegistry,
    build_input_schema,
    capability_name,
)
from lacework_lql.tools.schemas import ArgumentRule, DynamicCapability
from lacework_lql.translator.plan import QueryPlan
from lacework_lql.translator.schemas import TranslationResult

from conftest import FIXED_NOW

VULN_TEXT = "find critical vulnerabilities in containers"
RISK_TEXT = "show me AWS EC2 instances with high risk scores"


def _bare_capability(name="vuln-by-severity"):
    plan = QueryPlan(source="ContainerVulnDetails", return_fields=["CVE_ID", "SEVERITY"])
    return DynamicCapability(
        name=name,
        description="Vulnerabilities by severity",
        input_schema={"type": "object", "properties": {}, "required": []},
        natural_language="vulnerabilities by severity",
        query_pattern=TranslationResult(
            query=plan.render(), suggested_name=name, data_source=plan.source, plan=plan
        ),
        argument_rules=[ArgumentRule(argument="severity", parameter="severity")],
        created=FIXED_NOW,
    )


# =============================================================================
# NAMING AND SCHEMA
# =============================================================================

class TestNaming:

    @pytest.mark.parametrize("category,prefix", [
        ("aws-security", "get-aws-"),
        ("container-security", "get-container-"),
        ("compliance", "get-compliance-"),
        ("threat-detection", "find-threat-"),
        ("risk-assessment", "get-risk-"),
        ("vulnerabilities", "get-vuln-"),
        ("general", "get-"),
    ])
    def test_category_prefix(self, category, prefix):
        assert capability_name("open ports everywhere", category).startswith(prefix)

    def test_first_three_significant_words(self):
        assert capability_name(RISK_TEXT, "risk-assessment") == "get-risk-aws-ec2-instances"

    def test_no_significant_words(self):
        assert capability_name("show me all", "general") == "get-query"


class TestInputSchema:

    def test_known_and_unknown_parameters(self):
        schema, rules = build_input_schema({"severity": "high", "cloud_provider": "aws", "anomaly": True})
        props = schema["properties"]
        assert props["severity"]["enum"] == ["low", "medium", "high", "critical"]
        assert props["cloudProvider"]["enum"] == ["aws", "gcp", "azure"]
        assert props["anomaly"]["type"] == "string"
        assert {"startTime", "endTime"} <= set(props)
        assert schema["required"] == []
        assert [(r.argument, r.parameter) for r in rules] == [
            ("severity", "severity"),
            ("cloudProvider", "cloud_provider"),
            ("anomaly", "anomaly"),
        ]

    def test_time_properties_only(self):
        schema, rules = build_input_schema({})
        assert set(schema["properties"]) == {"startTime", "endTime"}
        assert rules == []


# =============================================================================
# REGISTRATION
# =============================================================================

class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_is_deterministic(self, registry, translator):
        result = await translator.translate(VULN_TEXT)
        await registry.register_from_translation(result, VULN_TEXT)
        await registry.register_from_translation(result, VULN_TEXT)

        summaries = registry.list_summaries()
        assert len(summaries) == 1
        capability = registry.get(summaries[0].name)
        assert capability.usage_count == 2
        assert capability.last_used == FIXED_NOW

    @pytest.mark.asyncio
    async def test_registered_capability_shape(self, registry, translator):
        result = await translator.translate(RISK_TEXT)
        capability = await registry.register_from_translation(result, RISK_TEXT)

        assert capability.name == "get-risk-aws-ec2-instances"
        assert capability.description == f"Dynamically generated tool: {RISK_TEXT}"
        assert "cloudProvider" in capability.input_schema["properties"]
        assert capability.query_pattern.query == result.query
        assert registry.has(capability.name)

    @pytest.mark.asyncio
    async def test_usage_report(self, registry, translator):
        result = await translator.translate(VULN_TEXT)
        capability = await registry.register_from_translation(result, VULN_TEXT)
        report = registry.usage_report()
        assert [(r.name, r.usage_count) for r in report] == [(capability.name, 1)]


# =============================================================================
# INVOCATION
# =============================================================================

class TestInvoke:

    @pytest.mark.asyncio
    async def test_unregistered_returns_none(self, registry):
        assert await registry.invoke("nope") is None

    @pytest.mark.asyncio
    async def test_success_payload_and_usage(self, registry, translator, executor):
        result = await translator.translate(VULN_TEXT)
        capability = await registry.register_from_translation(result, VULN_TEXT)

        outcome = await registry.invoke(capability.name)
        assert not outcome.is_error
        assert outcome.message.startswith(f'Dynamic Tool Execution: "{VULN_TEXT}"')
        assert "CVE-2024-0001" in outcome.message
        assert registry.get(capability.name).usage_count == 2

        query, start, end = executor.calls[-1]
        assert query == result.query
        assert (start, end) == (result.time_range.start, result.time_range.end)

    @pytest.mark.asyncio
    async def test_argument_adds_condition_for_unconstrained_field(self, registry, executor):
        await registry.import_all([_bare_capability()])
        await registry.invoke("vuln-by-severity", {"severity": "high"})
        assert "r.SEVERITY = 'high'" in executor.calls[-1][0]

    @pytest.mark.asyncio
    async def test_argument_ignored_for_constrained_field(self, registry, translator, executor):
        result = await translator.translate(VULN_TEXT)
        capability = await registry.register_from_translation(result, VULN_TEXT)

        await registry.invoke(capability.name, {"severity": "low"})
        query = executor.calls[-1][0]
        assert "r.SEVERITY = 'critical'" in query
        assert "'low'" not in query

    @pytest.mark.asyncio
    async def test_time_arguments_override_window(self, registry, executor):
        await registry.import_all([_bare_capability()])
        await registry.invoke(
            "vuln-by-severity",
            {"startTime": "2024-05-01T00:00:00Z", "endTime": "2024-05-02T00:00:00Z"},
        )
        _, start, end = executor.calls[-1]
        assert start.isoformat() == "2024-05-01T00:00:00+00:00"
        assert end.isoformat() == "2024-05-02T00:00:00+00:00"

    @pytest.mark.asyncio
    async def test_inverted_window_is_error(self, registry):
        await registry.import_all([_bare_capability()])
        outcome = await registry.invoke(
            "vuln-by-severity",
            {"startTime": "2024-05-02T00:00:00Z", "endTime": "2024-05-01T00:00:00Z"},
        )
        assert outcome.is_error

    @pytest.mark.asyncio
    async def test_execution_failure_is_tagged(self, registry, translator, executor):
        result = await translator.translate(VULN_TEXT)
        capability = await registry.register_from_translation(result, VULN_TEXT)
        executor.fail = True

        outcome = await registry.invoke(capability.name)
        assert outcome.is_error
        assert outcome.message.startswith("Dynamic Tool Execution Error:")
        assert "not authenticated" in outcome.message


# =============================================================================
# GENERATION FROM UNKNOWN NAMES
# =============================================================================

class TestGeneration:

    @pytest.mark.asyncio
    async def test_generate_under_requested_name(self, registry):
        assert await registry.generate_from_unknown_name("get-aws-s3-buckets")
        capability = registry.get("get-aws-s3-buckets")
        assert capability.natural_language == "show me AWS s3 buckets"
        assert capability.usage_count == 0
        assert capability.query_pattern.data_source == "CloudTrailRawEvents"

    @pytest.mark.asyncio
    async def test_disabled(self, translator, executor, clock):
        registry = DynamicCapabilityRegistry(
            translator, executor, clock=clock, enable_auto_generation=False
        )
        assert not await registry.generate_from_unknown_name("get-aws-s3-buckets")
        assert not registry.has("get-aws-s3-buckets")

    @pytest.mark.parametrize("name,phrase", [
        ("get-aws-s3-buckets", "show me AWS s3 buckets"),
        ("get_aws_ec2_with_public_ip", "show me AWS ec2 with public ip"),
        ("list-aws-iam-users", "list all AWS iam users"),
        ("get-critical-container-vulnerabilities", "show me critical container vulnerabilit"),
        ("list-compliance-failures", "list all compliance fail"),
        ("get-container-images", "show me container images"),
        ("list-k8s-pods", "list kubernetes pods"),
        ("find-open-ports", "find open ports"),
        ("show-open-ports", "show me open ports"),
    ])
    def test_infer_natural_language(self, name, phrase):
        assert infer_natural_language(name) == phrase

    def test_query_argument_fallback(self):
        assert infer_natural_language("mystery", {"query": "failed logins"}) == "failed logins"

    def test_empty_name(self):
        assert infer_natural_language("") is None


# =============================================================================
# MAINTENANCE
# =============================================================================

class TestMaintenance:

    @pytest.mark.asyncio
    async def test_prune_only_unused_and_stale(self, registry, translator, clock):
        await registry.generate_from_unknown_name("get-aws-s3-buckets")
        result = await translator.translate(VULN_TEXT)
        used = await registry.register_from_translation(result, VULN_TEXT)

        clock.advance(days=30)
        assert await registry.prune(7 * 24 * 3600) == 1
        assert not registry.has("get-aws-s3-buckets")
        assert registry.has(used.name)

    @pytest.mark.asyncio
    async def test_prune_keeps_recent(self, registry, clock):
        await registry.generate_from_unknown_name("get-aws-s3-buckets")
        clock.advance(hours=1)
        assert await registry.prune(7 * 24 * 3600) == 0

    @pytest.mark.asyncio
    async def test_export_import_round_trip(self, registry, translator, executor, clock):
        result = await translator.translate(VULN_TEXT)
        await registry.register_from_translation(result, VULN_TEXT)
        await registry.generate_from_unknown_name("get-aws-s3-buckets")

        payload = json.dumps([c.model_dump(mode="json") for c in registry.export_all()])
        restored = [DynamicCapability.model_validate(c) for c in json.loads(payload)]

        other = DynamicCapabilityRegistry(translator, executor, clock=clock)
        assert await other.import_all(restored) == 2

        before = {c.name: (c.input_schema, c.usage_count) for c in registry.export_all()}
        after = {c.name: (c.input_schema, c.usage_count) for c in other.export_all()}
        assert before == after

        outcome = await other.invoke("get-aws-s3-buckets")
        assert not outcome.is_error

    @pytest.mark.asyncio
    async def test_import_overwrites(self, registry):
        await registry.import_all([_bare_capability()])
        replacement = _bare_capability().model_copy(update={"usage_count": 9})
        await registry.import_all([replacement])
        assert registry.get("vuln-by-severity").usage_count == 9

    @pytest.mark.asyncio
    async def test_export_is_a_copy(self, registry):
        await registry.import_all([_bare_capability()])
        exported = registry.export_all()
        exported[0].usage_count = 50
        assert registry.get("vuln-by-severity").usage_count == 0

    @pytest.mark.asyncio
    async def test_teardown(self, registry):
        await registry.import_all([_bare_capability()])
        await registry.teardown()
        assert registry.list_summaries() == []
