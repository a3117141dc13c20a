"""
Tests for structured (targeted and drill-down) query construction.
"""
import pytest

from lacework_lql.translator.query_builder import (
    QueryBuilder,
    categorize_intent,
    targeted_query_name,
)


@pytest.fixture
def builder(catalog, resolver):
    return QueryBuilder(catalog, resolver)


class TestTargetedQuery:

    @pytest.mark.asyncio
    async def test_explicit_source(self, builder):
        result = await builder.build_targeted_query(
            "find security vulnerabilities",
            data_source="ContainerVulnDetails",
            filters={"severity": "critical"},
        )
        assert result.confidence == 0.9
        assert result.category == "security"
        assert result.suggested_name == "query-containervulndetails-security-vulnerabilities"
        assert "r.SEVERITY = 'critical'" in result.query
        assert result.plan.return_fields[0] == "CVE_ID"

    @pytest.mark.asyncio
    async def test_auto_selected_source(self, builder):
        result = await builder.build_targeted_query("ec2 instances configuration")
        assert result.data_source == "LW_CFG_AWS_EC2_INSTANCES"
        assert result.category == "aws"
        assert result.suggested_name.startswith("query-aws-ec2-instances-")

    @pytest.mark.asyncio
    async def test_negated_filter_resolves_against_fields(self, builder):
        result = await builder.build_targeted_query(
            "instances outside us-east-1",
            data_source="LW_CFG_AWS_EC2_INSTANCES",
            filters={"region_not": "us-east-1"},
        )
        assert "not r.RESOURCE_REGION = 'us-east-1'" in result.query

    @pytest.mark.asyncio
    async def test_requested_fields(self, builder):
        result = await builder.build_targeted_query(
            "ids only", data_source="LW_CFG_AWS_EC2_INSTANCES", fields=["RESOURCE_ID"]
        )
        assert result.plan.return_fields == ["RESOURCE_ID"]

    @pytest.mark.asyncio
    async def test_no_source_raises(self, builder):
        with pytest.raises(ValueError, match="Unable to determine"):
            await builder.build_targeted_query("zzz")

    @pytest.mark.asyncio
    async def test_unknown_source_raises(self, builder):
        with pytest.raises(ValueError, match="Unable to explore"):
            await builder.build_targeted_query("anything", data_source="NoSuchSource")

    def test_categorize_intent(self):
        assert categorize_intent("explore the data", "AWS") == "discovery"
        assert categorize_intent("policy drift", "AWS") == "compliance"
        assert categorize_intent("something else", "Containers") == "containers"

    def test_query_name_strips_prefix(self):
        assert targeted_query_name("show all", "LW_HE_USERS") == "query-he-users"


class TestDrillDown:

    @pytest.mark.asyncio
    async def test_datasources_is_meta(self, builder):
        result = await builder.build_drill_down_query("datasources", pattern="aws")
        assert result.plan is None
        assert result.query.startswith("--")
        assert result.suggested_name == "list-data-sources"
        assert result.confidence == 1.0

    @pytest.mark.asyncio
    async def test_fields(self, builder):
        result = await builder.build_drill_down_query("fields", source="LW_CFG_AWS_S3")
        assert result.suggested_name == "explore-lw-cfg-aws-s3"
        assert result.plan.return_fields == ["RESOURCE_REGION"]

    @pytest.mark.asyncio
    async def test_values(self, builder):
        result = await builder.build_drill_down_query(
            "values", source="ContainerVulnDetails", field="SEVERITY"
        )
        assert result.suggested_name == "values-severity"
        assert "r.SEVERITY" in result.query

    @pytest.mark.parametrize("kwargs,message", [
        ({"target": "fields"}, "Data source required"),
        ({"target": "values", "source": "X"}, "Both data source and field"),
        ({"target": "nonsense"}, "Unknown drill-down target"),
    ])
    @pytest.mark.asyncio
    async def test_invalid_requests(self, builder, kwargs, message):
        with pytest.raises(ValueError, match=message):
            await builder.build_drill_down_query(**kwargs)
