"""
Shared fixtures: scripted platform collaborators and a controllable clock.
No test talks to a real Lacework API.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from lacework_lql.catalog.explorer import DataSourceCatalog
from lacework_lql.catalog.resolver import FieldResolver
from lacework_lql.telemetry.errors import QueryExecutionError
from lacework_lql.telemetry.schemas import QueryMetadata, QueryResult
from lacework_lql.templates.registry import TemplateRegistry
from lacework_lql.tools.registry import DynamicCapabilityRegistry
from lacework_lql.tools.service import ToolService
from lacework_lql.translator.generator import IntentTranslator

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

CONTAINER_VULN_ROWS = [
    {"IMAGE_DIGEST": "sha256:abc", "SEVERITY": "critical", "CVE_ID": "CVE-2024-0001", "CVE_SCORE": 9.8},
    {"IMAGE_DIGEST": "sha256:def", "SEVERITY": "high", "CVE_ID": "CVE-2024-0002", "CVE_SCORE": 7.5},
]


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


class FakeExecutor:
    """Scripted QueryExecutor.

    Rows are chosen by the first registered source name that appears in
    the query text; `fail` makes every call raise QueryExecutionError.
    """

    def __init__(self, rows_by_source: Optional[dict[str, list[dict[str, Any]]]] = None):
        self.rows_by_source = rows_by_source or {}
        self.fail = False
        self.calls: list[tuple[str, Optional[datetime], Optional[datetime]]] = []

    async def execute(self, query, start_time=None, end_time=None) -> QueryResult:
        self.calls.append((query, start_time, end_time))
        if self.fail:
            raise QueryExecutionError("Lacework CLI not authenticated", query=query)
        rows: list[dict[str, Any]] = []
        for source, source_rows in self.rows_by_source.items():
            if source in query:
                rows = source_rows
                break
        return QueryResult(
            data=rows,
            metadata=QueryMetadata(execution_time_ms=5, row_count=len(rows), query=query),
        )


class FakeLister:
    def __init__(self, names: Optional[list[str]] = None):
        self.names = names or []
        self.fail = False
        self.calls = 0

    async def list_data_source_names(self) -> list[str]:
        self.calls += 1
        if self.fail:
            raise RuntimeError("listing unavailable")
        return list(self.names)


class FakePlatform(FakeExecutor):
    """Executor and lister in one object, like LaceworkClient."""

    def __init__(self, rows_by_source=None, names=None):
        super().__init__(rows_by_source)
        self.names = names or []
        self.closed = False

    async def list_data_source_names(self) -> list[str]:
        return list(self.names)

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def executor():
    return FakeExecutor({"ContainerVulnDetails": CONTAINER_VULN_ROWS})


@pytest.fixture
def lister():
    return FakeLister([
        "LW_CFG_AWS_EC2_INSTANCES",
        "LW_CFG_GCP_COMPUTE_INSTANCES",
        "ContainerVulnDetails",
        "LW_HE_USERS",
        "AuditLogEvents",
    ])


@pytest.fixture
def catalog(lister, executor, clock, monotonic):
    return DataSourceCatalog(lister, executor, clock=clock, monotonic=monotonic)


@pytest.fixture
def resolver(catalog):
    return FieldResolver(catalog)


@pytest.fixture
def translator(catalog, resolver, clock):
    return IntentTranslator(catalog, resolver, clock=clock)


@pytest.fixture
def registry(translator, executor, clock):
    return DynamicCapabilityRegistry(translator, executor, clock=clock)


@pytest.fixture
def templates(tmp_path, clock):
    return TemplateRegistry(tmp_path / "templates", clock=clock)


@pytest.fixture
def service(catalog, translator, registry, executor, templates):
    return ToolService(catalog, translator, registry, executor, templates=templates)
