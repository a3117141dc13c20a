"""Maps loosely-named filter keys onto concrete field names.

Resolution ladder, first hit wins:
1. exact (case-insensitive) match against the source's cached fields
2. substring of a cached field's name or description
3. static alias tables (source-specific, then cross-source common names)
4. the upper-cased filter key itself

The ladder always produces a name; callers treat it as best effort.
"""

import logging

from lacework_lql.catalog.explorer import DataSourceCatalog

logger = logging.getLogger(__name__)

SOURCE_FIELD_ALIASES: dict[str, dict[str, str]] = {
    "CloudTrailRawEvents": {
        "cloud_provider": "AWS_REGION",
        "resource_type": "EVENT_NAME",
        "severity": "ERROR_CODE",
        "risk_score": "RISK_SCORE",
        "status": "STATUS",
        "user_name": "USER_NAME",
        "region": "AWS_REGION",
    },
    "ComplianceEvaluationDetails": {
        "severity": "SEVERITY",
        "status": "STATUS",
        "resource_type": "EVAL_TYPE",
        "risk_score": "RISK_SCORE",
    },
    "ContainerVulnDetails": {
        "severity": "SEVERITY",
        "cve_id": "CVE_ID",
        "risk_score": "CVE_SCORE",
        "image_digest": "IMAGE_DIGEST",
    },
    "VulnDetails": {
        "severity": "SEVERITY",
        "cve_id": "CVE_ID",
        "risk_score": "CVE_SCORE",
    },
}

COMMON_FIELD_NAMES: dict[str, str] = {
    "region": "RESOURCE_REGION",
    "account": "ACCOUNT_ID",
    "subscription": "SUBSCRIPTION_ID",
    "time": "EVENT_TIME",
    "user": "USER_NAME",
    "error": "ERROR_CODE",
    "severity": "SEVERITY",
    "status": "STATUS",
    "id": "RESOURCE_ID",
    "name": "RESOURCE_NAME",
    "type": "RESOURCE_TYPE",
    "resource_group": "RESOURCE_GROUP_NAME",
}


class FieldResolver:
    """Resolves filter keys to field names of a data source."""

    def __init__(self, catalog: DataSourceCatalog):
        self.catalog = catalog

    def resolve(self, filter_key: str, source_name: str) -> str:
        key = filter_key.strip().lower()
        if not key:
            return filter_key.strip().upper() or "UNKNOWN"

        fields = self.catalog.cached_fields(source_name)

        for f in fields:
            if f.name.lower() == key:
                return f.name

        for f in fields:
            if key in f.name.lower() or (
                f.description and key in f.description.lower()
            ):
                logger.debug(f"Resolved {filter_key} -> {f.name} by partial match")
                return f.name

        alias = SOURCE_FIELD_ALIASES.get(source_name, {}).get(key)
        if alias:
            return alias

        common = COMMON_FIELD_NAMES.get(key)
        if common:
            return common

        return filter_key.strip().upper()
