"""Priority tables driving translation.

Every table is evaluated in order. Source mappings, pattern rules,
default-source rules and time phrases are first-match-wins; filter rules
are all evaluated and later rules overwrite earlier keys.
"""

from lacework_lql.translator.plan import Condition
from lacework_lql.translator.schemas import (
    DefaultSourceRule,
    FilterRule,
    HeuristicCondition,
    PatternRule,
    SourceMapping,
    TimePhrase,
)

DEFAULT_SOURCE = "CloudTrailRawEvents"
DEFAULT_CATEGORY = "general"
NAME_PREFIX = "lacework"
MAX_PROJECTED_FIELDS = 7

SOURCE_MAPPINGS: tuple[SourceMapping, ...] = (
    SourceMapping(
        key="aws-ec2",
        keywords=("ec2", "instance", "virtual machine", "vm"),
        source="CloudTrailRawEvents",
        default_fields=("EVENT_NAME", "AWS_REGION", "SOURCE_IP_ADDRESS", "USER_NAME"),
        description="AWS EC2 instances and events",
    ),
    SourceMapping(
        key="aws-s3",
        keywords=("s3", "bucket", "storage", "object storage"),
        source="CloudTrailRawEvents",
        default_fields=("EVENT_NAME", "AWS_REGION", "BUCKET_NAME", "OBJECT_KEY"),
        description="AWS S3 buckets and objects",
    ),
    SourceMapping(
        key="aws-compliance",
        keywords=("compliance", "cis", "benchmark", "policy", "violation"),
        source="ComplianceEvaluationDetails",
        default_fields=("EVAL_TYPE", "STATUS", "SEVERITY", "RESOURCE_ID"),
        description="AWS compliance evaluations",
    ),
    SourceMapping(
        key="containers",
        keywords=("container", "docker", "image", "vulnerabilit", "cve"),
        source="ContainerVulnDetails",
        default_fields=("IMAGE_DIGEST", "SEVERITY", "CVE_ID", "NAMESPACE"),
        description="Container vulnerabilities and images",
    ),
    SourceMapping(
        key="kubernetes",
        keywords=("kubernetes", "k8s", "pod", "deployment", "service"),
        source="KubernetesActivity",
        default_fields=("CLUSTER_NAME", "NAMESPACE", "RESOURCE_TYPE", "ACTION"),
        description="Kubernetes cluster activities",
    ),
    SourceMapping(
        key="network",
        keywords=("network", "connection", "traffic", "lateral movement", "communication"),
        source="NetworkActivity",
        default_fields=("SOURCE_IP", "DEST_IP", "PORT", "PROTOCOL"),
        description="Network communications and activities",
    ),
    SourceMapping(
        key="users",
        keywords=("user", "login", "authentication", "access", "identity"),
        source="UserActivity",
        default_fields=("USER_NAME", "SOURCE_IP", "ACTION", "STATUS"),
        description="User activities and authentication events",
    ),
)

# Projection used when a source was not chosen through a mapping
SOURCE_DEFAULT_FIELDS: dict[str, tuple[str, ...]] = {
    "CloudTrailRawEvents": ("EVENT_TIME", "EVENT_NAME", "EVENT_SOURCE", "ERROR_CODE", "USER_NAME"),
    "ComplianceEvaluationDetails": ("EVAL_TYPE", "STATUS", "SEVERITY", "RESOURCE_ID"),
    "ContainerVulnDetails": ("IMAGE_DIGEST", "SEVERITY", "CVE_ID", "NAMESPACE"),
    "VulnDetails": ("CVE_ID", "SEVERITY", "CVE_SCORE"),
    "KubernetesActivity": ("CLUSTER_NAME", "NAMESPACE", "RESOURCE_TYPE", "ACTION"),
    "NetworkActivity": ("SOURCE_IP", "DEST_IP", "PORT", "PROTOCOL"),
    "UserActivity": ("USER_NAME", "SOURCE_IP", "ACTION", "STATUS"),
}

QUERY_PATTERNS: tuple[PatternRule, ...] = (
    PatternRule(
        pattern=r"(?:show|get|find|list).*(?:high|critical).*(?:risk|score)",
        category="risk-assessment",
        parameters={"risk_threshold": "high", "severity": "high"},
        suggested_name="high-risk-assets",
    ),
    PatternRule(
        pattern=r"(?:compliance|cis|benchmark).*(?:fail|violation|issue)",
        category="compliance",
        parameters={"status": "fail"},
        suggested_name="compliance-violations",
    ),
    PatternRule(
        pattern=r"(?:vulnerabilit|cve|security).*(?:critical|high)",
        category="vulnerabilities",
        parameters={"severity": "critical,high"},
        suggested_name="critical-vulnerabilities",
    ),
    PatternRule(
        pattern=r"aws.*(?:ec2|instance).*(?:unencrypt|public|expose)",
        category="aws-security",
        parameters={"cloud_provider": "aws", "resource_type": "ec2"},
        suggested_name="aws-insecure-ec2",
    ),
    PatternRule(
        pattern=r"container.*(?:vulnerabilit|cve|insecure)",
        category="container-security",
        parameters={"resource_type": "container"},
        suggested_name="container-vulnerabilities",
    ),
    PatternRule(
        pattern=r"lateral.movement|suspicious.*network|unusual.*connection",
        category="threat-detection",
        parameters={"activity_type": "network", "anomaly": True},
        suggested_name="lateral-movement-detection",
    ),
)

FILTER_RULES: tuple[FilterRule, ...] = (
    # Risk / severity
    FilterRule(groups=(("high risk", "high score"),), key="risk_score", value=">= 7"),
    FilterRule(groups=(("critical",),), key="severity", value="critical"),
    FilterRule(groups=(("high",), ("severity", "priority")), key="severity", value="high"),
    # Cloud provider
    FilterRule(groups=(("aws",),), key="cloud_provider", value="aws"),
    FilterRule(groups=(("gcp", "google cloud"),), key="cloud_provider", value="gcp"),
    FilterRule(groups=(("azure",),), key="cloud_provider", value="azure"),
    # Resource type
    FilterRule(groups=(("ec2",),), key="resource_type", value="ec2"),
    FilterRule(groups=(("s3", "bucket"),), key="resource_type", value="s3"),
    FilterRule(groups=(("container",),), key="resource_type", value="container"),
    # Status
    FilterRule(groups=(("fail", "violation"),), key="status", value="fail"),
    FilterRule(groups=(("active", "running"),), key="status", value="active"),
    # Security flags
    FilterRule(groups=(("unencrypt",),), key="encrypted", value="false"),
    FilterRule(groups=(("public", "expose"),), key="public_access", value="true"),
)

DEFAULT_SOURCE_RULES: tuple[DefaultSourceRule, ...] = (
    DefaultSourceRule(groups=(("compliance", "cis", "benchmark"),), source="ComplianceEvaluationDetails"),
    DefaultSourceRule(groups=(("vulnerabilit", "cve"), ("container",)), source="ContainerVulnDetails"),
    DefaultSourceRule(groups=(("vulnerabilit", "cve"),), source="VulnDetails"),
    DefaultSourceRule(groups=(("kubernetes", "k8s"),), source="KubernetesActivity"),
    DefaultSourceRule(groups=(("network", "connection"),), source="NetworkActivity"),
    DefaultSourceRule(groups=(("user", "login", "auth"),), source="UserActivity"),
)

HEURISTIC_CONDITIONS: tuple[HeuristicCondition, ...] = (
    HeuristicCondition(
        groups=(("fail",),),
        source_contains="CloudTrail",
        condition=Condition(field="ERROR_CODE", operator="is not null"),
    ),
    HeuristicCondition(
        groups=(("fail",),),
        source_contains="Compliance",
        condition=Condition(field="STATUS", value="fail"),
    ),
    HeuristicCondition(
        groups=(("critical",),),
        source_contains="Vuln",
        condition=Condition(field="SEVERITY", value="critical"),
    ),
)

TIME_PHRASES: tuple[TimePhrase, ...] = (
    TimePhrase(pattern=r"last hour|past hour", hours=1),
    TimePhrase(pattern=r"last 24 hours?|past 24 hours?|today", hours=24),
    TimePhrase(pattern=r"last week|past week", hours=24 * 7),
    TimePhrase(pattern=r"last month|past month", hours=24 * 30),
    TimePhrase(pattern=r"last 7 days?|past 7 days?", hours=24 * 7),
    TimePhrase(pattern=r"last 30 days?|past 30 days?", hours=24 * 30),
)

# (substring of the upper-cased field name, priority). First match wins.
FIELD_PRIORITY: tuple[tuple[str, int], ...] = (
    ("TIME", 95),
    ("NAME", 90),
    ("TYPE", 85),
    ("STATUS", 80),
    ("REGION", 75),
    ("ACCOUNT", 70),
    ("USER", 65),
    ("ERROR", 60),
    ("SEVERITY", 55),
    ("SCORE", 50),
    ("SOURCE", 40),
    ("EVENT", 35),
    ("RESOURCE", 30),
    ("CONFIG", 10),
    ("DIGEST", 5),
)
DEFAULT_FIELD_PRIORITY = 20


def field_priority(field_name: str) -> int:
    """Projection priority of a field; identifiers rank highest."""
    name = field_name.upper()
    if "ID" in name and "DIGEST" not in name:
        return 100
    for keyword, priority in FIELD_PRIORITY:
        if keyword in name:
            return priority
    return DEFAULT_FIELD_PRIORITY
