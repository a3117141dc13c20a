"""
Tests for the field resolver's fallback ladder.
"""
import pytest

from lacework_lql.catalog.resolver import FieldResolver


class TestResolver:

    def test_unknown_key_upper_cased(self, resolver):
        assert resolver.resolve("bucket_owner", "CloudTrailRawEvents") == "BUCKET_OWNER"

    def test_source_alias(self, resolver):
        assert resolver.resolve("cloud_provider", "CloudTrailRawEvents") == "AWS_REGION"
        assert resolver.resolve("risk_score", "ContainerVulnDetails") == "CVE_SCORE"

    def test_common_name(self, resolver):
        assert resolver.resolve("region", "LW_CFG_AWS_EC2_INSTANCES") == "RESOURCE_REGION"
        assert resolver.resolve("account", "Anything") == "ACCOUNT_ID"

    @pytest.mark.asyncio
    async def test_exact_match_on_cached_fields(self, catalog, resolver):
        await catalog.describe("ContainerVulnDetails")
        assert resolver.resolve("cve_id", "ContainerVulnDetails") == "CVE_ID"

    @pytest.mark.asyncio
    async def test_partial_match_on_cached_fields(self, catalog, resolver):
        await catalog.describe("ContainerVulnDetails")
        assert resolver.resolve("digest", "ContainerVulnDetails") == "IMAGE_DIGEST"

    @pytest.mark.asyncio
    async def test_cached_fields_beat_aliases(self, catalog):
        await catalog.describe("CloudTrailRawEvents")
        # "user_name" exact-matches the known CloudTrail field
        assert FieldResolver(catalog).resolve("USER_NAME", "CloudTrailRawEvents") == "USER_NAME"

    @pytest.mark.parametrize("key", ["", "  ", "x", "weird key!", "résumé"])
    def test_never_empty(self, resolver, key):
        assert resolver.resolve(key, "CloudTrailRawEvents")
