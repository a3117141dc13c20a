"""Query template registry: loads from YAML files.

- YAML-per-file under <templates_dir>/<category>/<name>.yaml
- Built-in templates are always available; files with the same name win
- Lazy loading with _loaded guard
- save_template() persists and never raises
"""

import logging
from pathlib import Path
from typing import Optional

import yaml

from lacework_lql.clock import Clock, to_iso, utc_now
from lacework_lql.translator.plan import Condition, QueryPlan
from lacework_lql.translator.schemas import TranslationResult

from .schemas import QueryTemplate, QueryTemplateSummary

logger = logging.getLogger(__name__)

AUTO_GENERATED_AUTHOR = "lacework-lql-auto-generated"

CATEGORY_DESCRIPTIONS: dict[str, str] = {
    "compliance": "Compliance monitoring and benchmark evaluations",
    "threats": "Threat detection and security incident monitoring",
    "inventory": "Asset inventory and resource management queries",
    "custom": "User-generated and custom LQL templates",
    "aws": "Amazon Web Services security and monitoring templates",
    "containers": "Container and Kubernetes security monitoring",
}

# (keywords in the request, category). First match wins, else "custom".
CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("compliance", "cis", "benchmark"), "compliance"),
    (("threat", "attack", "malicious", "suspicious"), "threats"),
    (("container", "docker", "k8s", "kubernetes"), "containers"),
    (("aws", "s3", "ec2"), "aws"),
    (("inventory", "assets", "resources"), "inventory"),
)

TAG_KEYWORDS = (
    "aws", "gcp", "azure", "kubernetes", "k8s", "container", "docker",
    "compliance", "cis", "vulnerability", "threat", "security",
    "network", "user", "authentication", "encryption", "public",
    "critical", "high", "medium", "low",
)


def _builtin_templates() -> list[QueryTemplate]:
    unencrypted = QueryPlan(
        source="CloudTrailRawEvents",
        conditions=[
            Condition(field="EVENT_NAME", value="CreateVolume"),
            Condition(field="REQUEST_PARAMETERS:encrypted", value=False),
        ],
        return_fields=["EVENT_TIME", "AWS_REGION", "USER_NAME", "REQUEST_PARAMETERS"],
    )
    compliance_failures = QueryPlan(
        source="ComplianceEvaluationDetails",
        conditions=[
            Condition(field="STATUS", value="fail"),
            Condition(field="SEVERITY", operator="in", value=["critical", "high"]),
        ],
        return_fields=["RESOURCE_ID", "EVAL_TYPE", "STATUS", "SEVERITY"],
    )
    container_vulns = QueryPlan(
        source="ContainerVulnDetails",
        conditions=[Condition(field="SEVERITY", value="critical")],
        return_fields=["IMAGE_DIGEST", "CVE_ID", "CVE_SCORE", "SEVERITY", "NAMESPACE"],
    )
    root_activity = QueryPlan(
        source="CloudTrailRawEvents",
        conditions=[Condition(field="USER_NAME", value="root")],
        return_fields=["EVENT_TIME", "EVENT_NAME", "EVENT_SOURCE", "AWS_REGION", "ERROR_CODE"],
    )

    return [
        QueryTemplate(
            name="lacework-aws-unencrypted-volumes",
            description="Find AWS EBS volumes that are not encrypted",
            category="aws",
            query=unencrypted.render(),
            parameters={"cloud_provider": "aws", "resource_type": "ebs", "encrypted": False},
            tags=["aws", "encryption", "ebs", "compliance"],
        ),
        QueryTemplate(
            name="lacework-compliance-high-severity",
            description="Critical and high severity compliance failures",
            category="compliance",
            query=compliance_failures.render(),
            parameters={"status": "fail", "severity": "critical,high"},
            tags=["compliance", "high-severity", "critical"],
        ),
        QueryTemplate(
            name="lacework-container-critical-vulns",
            description="Critical vulnerabilities in container images",
            category="containers",
            query=container_vulns.render(),
            parameters={"severity": "critical", "resource_type": "container"},
            tags=["containers", "vulnerabilities", "critical", "cve"],
        ),
        QueryTemplate(
            name="lacework-aws-root-account-activity",
            description="API activity performed by the AWS root account",
            category="threats",
            query=root_activity.render(),
            parameters={"cloud_provider": "aws", "user_name": "root"},
            tags=["aws", "root", "identity", "threats"],
        ),
    ]


def infer_template_category(natural_language: str, query: str) -> str:
    text = natural_language.lower()
    if "complianceevaluationdetails" in query.lower():
        return "compliance"
    for keywords, category in CATEGORY_KEYWORDS:
        if any(k in text for k in keywords):
            return category
    return "custom"


def generate_tags(natural_language: str, query: str) -> list[str]:
    combined = f"{natural_language} {query}".lower()
    return [k for k in TAG_KEYWORDS if k in combined]


class TemplateRegistry:
    """Registry of LQL query templates backed by YAML files."""

    def __init__(self, templates_dir: Optional[Path] = None, clock: Clock = utc_now):
        if templates_dir is None:
            templates_dir = Path.home() / ".lacework-lql" / "templates"
        self.templates_dir = Path(templates_dir)
        self._templates: dict[str, QueryTemplate] = {}
        self._file_map: dict[str, Path] = {}
        self._clock = clock
        self._loaded = False

    def load(self) -> None:
        """Load built-in templates, then every YAML template on disk."""
        if self._loaded:
            return

        for template in _builtin_templates():
            self._templates[template.name] = template

        if not self.templates_dir.exists():
            logger.info(f"Templates directory not found: {self.templates_dir}")
            self._loaded = True
            return

        for yaml_file in sorted(self.templates_dir.rglob("*.y*ml")):
            try:
                with open(yaml_file, "r") as f:
                    data = yaml.safe_load(f)
                template = QueryTemplate.model_validate(data)
                self._templates[template.name] = template
                self._file_map[template.name] = yaml_file
                logger.debug(f"Loaded template: {template.name}")
            except Exception as e:
                logger.error(f"Failed to load template from {yaml_file}: {e}")

        self._loaded = True
        logger.info(
            f"Loaded {len(self._templates)} LQL templates across "
            f"{len(self.list_categories())} categories"
        )

    def get(self, name: str) -> Optional[QueryTemplate]:
        """Get a template by name."""
        self.load()
        return self._templates.get(name)

    def list_all(self) -> list[QueryTemplate]:
        self.load()
        return list(self._templates.values())

    def list_summaries(self, category: Optional[str] = None) -> list[QueryTemplateSummary]:
        """List template summaries, optionally filtered by category."""
        self.load()
        templates = self._templates.values()
        if category:
            templates = [t for t in templates if t.category == category]
        return [
            QueryTemplateSummary(
                name=t.name, description=t.description, category=t.category, tags=t.tags
            )
            for t in sorted(templates, key=lambda t: (t.category, t.name))
        ]

    def list_categories(self) -> list[str]:
        return sorted({t.category for t in self._templates.values()})

    def search(self, term: str) -> list[QueryTemplate]:
        """Templates whose name, description, tags or query contain term."""
        self.load()
        needle = term.lower()
        return [
            t for t in self._templates.values()
            if needle in t.name.lower()
            or needle in t.description.lower()
            or any(needle in tag.lower() for tag in t.tags)
            or needle in t.query.lower()
        ]

    def save_template(self, template: QueryTemplate) -> bool:
        """Save a template to its category directory as YAML."""
        self.load()

        if template.created is None:
            template = template.model_copy(update={"created": to_iso(self._clock())})

        yaml_file = self._file_map.get(
            template.name, self.templates_dir / template.category / f"{template.name}.yaml"
        )

        try:
            yaml_file.parent.mkdir(parents=True, exist_ok=True)
            with open(yaml_file, "w") as f:
                yaml.safe_dump(template.model_dump(), f, sort_keys=False, width=1000)

            self._templates[template.name] = template
            self._file_map[template.name] = yaml_file

            logger.info(f"Saved template: {template.name} -> {yaml_file}")
            return True

        except Exception as e:
            logger.error(f"Failed to save template {template.name}: {e}")
            return False

    def template_from_translation(
        self, result: TranslationResult, natural_language: str
    ) -> QueryTemplate:
        """Derive a unique, auto-authored template from a translation."""
        self.load()

        name = result.suggested_name
        unique_name = name
        counter = 1
        while unique_name in self._templates:
            unique_name = f"{name}-{counter}"
            counter += 1

        return QueryTemplate(
            name=unique_name,
            description=natural_language,
            category=infer_template_category(natural_language, result.query),
            query=result.query,
            parameters=dict(result.parameters),
            tags=generate_tags(natural_language, result.query),
            author=AUTO_GENERATED_AUTHOR,
            created=to_iso(self._clock()),
        )

    def reload(self) -> None:
        """Force reload all templates."""
        self._loaded = False
        self._templates.clear()
        self._file_map.clear()
        self.load()
