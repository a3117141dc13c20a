"""Static knowledge about the platform's data sources.

- SEED_SOURCES: well-known sources merged into every discovery
- KNOWN_FIELDS: field schemas used when sampling yields nothing
- CATEGORY_RULES: ordered ladder used to categorize raw source names
- DESCRIPTION_RULES / FIELD_DESCRIPTION_RULES: generated descriptions
"""

from lacework_lql.catalog.schemas import DataSourceDescriptor, FieldDescriptor, FieldType

GENERAL_CATEGORY = "General"

SEED_SOURCES: tuple[DataSourceDescriptor, ...] = (
    DataSourceDescriptor(
        name="LW_CFG_AWS_EC2_INSTANCES",
        category="AWS",
        description="AWS EC2 instances configuration and state",
    ),
    DataSourceDescriptor(
        name="LW_CFG_AWS_S3",
        category="AWS",
        description="AWS S3 buckets configuration and policies",
    ),
    DataSourceDescriptor(
        name="LW_CFG_AZURE_COMPUTE_VIRTUALMACHINES",
        category="Azure",
        description="Azure virtual machines configuration",
    ),
    DataSourceDescriptor(
        name="CloudTrailRawEvents",
        category="Activity",
        description="AWS CloudTrail API activity events",
    ),
    DataSourceDescriptor(
        name="ContainerVulnDetails",
        category="Containers",
        description="Container vulnerability scan results",
    ),
    DataSourceDescriptor(
        name="ComplianceEvaluationDetails",
        category="Compliance",
        description="Compliance policy evaluation results",
    ),
)


def _f(name: str, type_: FieldType, description: str) -> FieldDescriptor:
    return FieldDescriptor(name=name, type=type_, description=description)


KNOWN_FIELDS: dict[str, tuple[FieldDescriptor, ...]] = {
    "LW_CFG_AWS_EC2_INSTANCES": (
        _f("RESOURCE_ID", FieldType.STRING, "EC2 instance ID"),
        _f("RESOURCE_REGION", FieldType.STRING, "AWS region"),
        _f("ACCOUNT_ID", FieldType.STRING, "AWS account ID"),
        _f("RESOURCE_CONFIG", FieldType.OBJECT, "Instance configuration"),
        _f("URN", FieldType.STRING, "Unique resource identifier"),
    ),
    "LW_CFG_AZURE_COMPUTE_VIRTUALMACHINES": (
        _f("RESOURCE_ID", FieldType.STRING, "Azure VM resource ID"),
        _f("RESOURCE_REGION", FieldType.STRING, "Azure region"),
        _f("SUBSCRIPTION_ID", FieldType.STRING, "Azure subscription ID"),
        _f("RESOURCE_CONFIG", FieldType.OBJECT, "VM configuration"),
        _f("RESOURCE_GROUP", FieldType.STRING, "Azure resource group"),
    ),
    "CloudTrailRawEvents": (
        _f("EVENT_TIME", FieldType.TIMESTAMP, "Event timestamp"),
        _f("EVENT_NAME", FieldType.STRING, "API call name"),
        _f("EVENT_SOURCE", FieldType.STRING, "AWS service"),
        _f("ERROR_CODE", FieldType.STRING, "Error code if failed"),
        _f("USER_NAME", FieldType.STRING, "User or role name"),
    ),
    "ContainerVulnDetails": (
        _f("IMAGE_DIGEST", FieldType.STRING, "Container image digest"),
        _f("SEVERITY", FieldType.STRING, "Vulnerability severity level"),
        _f("CVE_ID", FieldType.STRING, "CVE identifier"),
        _f("CVE_SCORE", FieldType.FLOAT, "CVSS score of the vulnerability"),
        _f("NAMESPACE", FieldType.STRING, "Container namespace"),
    ),
    "ComplianceEvaluationDetails": (
        _f("EVAL_TYPE", FieldType.STRING, "Evaluation type"),
        _f("STATUS", FieldType.STRING, "Evaluation outcome"),
        _f("SEVERITY", FieldType.STRING, "Severity level"),
        _f("RESOURCE_ID", FieldType.STRING, "Evaluated resource ID"),
    ),
}

# (keywords in the upper-cased name, category, description key). First match wins.
CATEGORY_RULES: tuple[tuple[tuple[str, ...], str, str], ...] = (
    # Providers
    (("AWS", "LW_CFG_AWS"), "AWS", "AWS"),
    (("AZURE", "LW_CFG_AZURE"), "Azure", "Azure"),
    (("GCP", "GOOGLE", "LW_CFG_GCP"), "GCP", "GCP"),
    # Platform categories
    (("CONTAINER", "VULN", "IMAGE"), "Containers", "Container"),
    (("K8S", "KUBERNETES"), "Kubernetes", "Kubernetes"),
    (("NETWORK", "CONNECTION"), "Network", "Network"),
    # Activity and audit
    (("ACTIVITY", "AUDIT", "CLOUDTRAIL"), "Activity", "Activity"),
    # Compliance
    (("COMPLIANCE", "CIS"), "Compliance", "Compliance"),
)

DESCRIPTION_RULES: dict[str, tuple[tuple[str, str], ...]] = {
    "AWS": (
        ("EC2", "AWS EC2 instances configuration and state"),
        ("S3", "AWS S3 buckets configuration and access policies"),
        ("IAM", "AWS IAM users, roles, and policies"),
        ("LAMBDA", "AWS Lambda functions configuration"),
        ("RDS", "AWS RDS database instances"),
        ("CLOUDTRAIL", "AWS CloudTrail API activity logs"),
        ("VPC", "AWS VPC networking configuration"),
        ("SECURITY", "AWS security groups and NACLs"),
    ),
    "Azure": (
        ("COMPUTE", "Azure compute resources and virtual machines"),
        ("STORAGE", "Azure storage accounts and blob containers"),
        ("NETWORK", "Azure virtual networks and security groups"),
        ("DATABASE", "Azure database services"),
    ),
    "Container": (
        ("VULN", "Container vulnerability scan results"),
        ("IMAGE", "Container image metadata and layers"),
    ),
}

FIELD_DESCRIPTION_RULES: tuple[tuple[str, str], ...] = (
    ("ID", "Unique identifier"),
    ("TIME", "Timestamp field"),
    ("REGION", "Cloud region location"),
    ("ACCOUNT", "Cloud account identifier"),
    ("USER", "User or principal name"),
    ("RESOURCE", "Resource identifier or configuration"),
    ("ERROR", "Error code or message"),
    ("STATUS", "Status or state field"),
    ("SEVERITY", "Severity level"),
    ("SCORE", "Risk or priority score"),
    ("CONFIG", "Configuration data"),
    ("EVENT", "Event data or name"),
    ("SOURCE", "Event or data source"),
    ("IP", "IP address"),
    ("PORT", "Network port"),
    ("PROTOCOL", "Network protocol"),
)


def seed_sources() -> list[DataSourceDescriptor]:
    """Fresh copies of the seed descriptors."""
    return [s.model_copy(deep=True) for s in SEED_SOURCES]


def known_fields(source_name: str) -> list[FieldDescriptor]:
    """Fresh copies of the static field schema for a source (sorted by name), or []."""
    fields = [f.model_copy(deep=True) for f in KNOWN_FIELDS.get(source_name, ())]
    return sorted(fields, key=lambda f: f.name)


def describe_source(source_name: str, description_key: str) -> str:
    name = source_name.upper()
    for keyword, description in DESCRIPTION_RULES.get(description_key, ()):
        if keyword in name:
            return description
    return f"{description_key} data source: {source_name}"


def categorize(source_name: str) -> DataSourceDescriptor:
    """Categorize a raw data source name via the CATEGORY_RULES ladder."""
    name = source_name.upper()
    for keywords, category, description_key in CATEGORY_RULES:
        if any(keyword in name for keyword in keywords):
            return DataSourceDescriptor(
                name=source_name,
                category=category,
                description=describe_source(source_name, description_key),
            )
    return DataSourceDescriptor(
        name=source_name,
        category=GENERAL_CATEGORY,
        description=f"Lacework data source: {source_name}",
    )


def describe_field(field_name: str, source_name: str) -> str:
    field = field_name.upper()
    for keyword, description in FIELD_DESCRIPTION_RULES:
        if keyword in field:
            return description
    return f"Field from {source_name}"
