"""Data source catalog: discovery, description and search.

Discovery results are cached for a single TTL covering the whole set.
Field schemas are memoized per source and only refreshed explicitly
(refresh_fields / clear), since schemas change far less often than the
source list.

Collaborator failures never escape: discovery falls back to the seed
sources and field discovery falls back to the static field tables.
"""

import asyncio
import json
import logging
import re
import time
from datetime import timedelta
from typing import Any, Callable, Optional

from lacework_lql.catalog import known_sources
from lacework_lql.catalog.schemas import (
    DataSourceDescriptor,
    DiscoveryFilter,
    FieldDescriptor,
    FieldMatch,
    FieldType,
)
from lacework_lql.clock import Clock, utc_now
from lacework_lql.telemetry.schemas import DataSourceLister, QueryExecutor
from lacework_lql.text import search_terms

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 30 * 60  # seconds
DEFAULT_SAMPLE_LOOKBACK_HOURS = 24
MAX_SAMPLE_VALUES = 3
MAX_SAMPLE_VALUE_LENGTH = 50

_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
_IP_RE = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")
_ARN_RE = re.compile(r"^arn:(aws|aws-cn|aws-us-gov):")

_SAMPLE_QUERY = """{{
  source {{
    {source}
  }}
  return distinct {{
    *
  }}
}}"""


def infer_field_type(value: Any) -> FieldType:
    """Infer a field type from the shape of one sampled value."""
    if value is None:
        return FieldType.NULL
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, int):
        return FieldType.INTEGER
    if isinstance(value, float):
        return FieldType.FLOAT
    if isinstance(value, str):
        if _TIMESTAMP_RE.match(value):
            return FieldType.TIMESTAMP
        if _IP_RE.match(value):
            return FieldType.IP_ADDRESS
        if _ARN_RE.match(value):
            return FieldType.ARN
        return FieldType.STRING
    if isinstance(value, (dict, list)):
        return FieldType.OBJECT
    return FieldType.UNKNOWN


def extract_sample_values(field_name: str, rows: list[dict[str, Any]]) -> list[str]:
    """Up to MAX_SAMPLE_VALUES distinct, truncated values of a field."""
    samples: list[str] = []
    for row in rows:
        value = row.get(field_name)
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            text = json.dumps(value, sort_keys=True, default=str)
        else:
            text = str(value)
        text = text[:MAX_SAMPLE_VALUE_LENGTH]
        if text not in samples:
            samples.append(text)
        if len(samples) >= MAX_SAMPLE_VALUES:
            break
    return samples


def fields_from_rows(source_name: str, rows: list[dict[str, Any]]) -> list[FieldDescriptor]:
    """Build field descriptors from sampled rows, sorted by name."""
    names: list[str] = []
    for row in rows:
        for key in row:
            if key not in names:
                names.append(key)

    fields = []
    for name in names:
        values = [row.get(name) for row in rows]
        first_value = next((v for v in values if v is not None), None)
        fields.append(
            FieldDescriptor(
                name=name,
                type=infer_field_type(first_value),
                description=known_sources.describe_field(name, source_name),
                sample_values=extract_sample_values(name, rows),
                nullable=any(v is None for v in values),
            )
        )
    return sorted(fields, key=lambda f: f.name)


class CatalogStore:
    """Mutable caches owned by one DataSourceCatalog.

    Maps are replaced wholesale on refresh so that readers holding a
    reference never observe a half-updated set.
    """

    def __init__(self) -> None:
        self.descriptors: dict[str, DataSourceDescriptor] = {}
        self.fields: dict[str, list[FieldDescriptor]] = {}
        self.last_discovery: Optional[float] = None

    def is_fresh(self, now: float, ttl: float) -> bool:
        if self.last_discovery is None:
            return False
        return now - self.last_discovery < ttl

    def refresh(self, descriptors: dict[str, DataSourceDescriptor], now: float) -> None:
        self.descriptors = descriptors
        self.last_discovery = now

    def put_descriptor(self, descriptor: DataSourceDescriptor) -> None:
        updated = dict(self.descriptors)
        updated[descriptor.name] = descriptor
        self.descriptors = updated

    def put_fields(self, source_name: str, fields: list[FieldDescriptor]) -> None:
        updated = dict(self.fields)
        updated[source_name] = fields
        self.fields = updated

    def drop_fields(self, source_name: str) -> None:
        if source_name in self.fields:
            updated = dict(self.fields)
            del updated[source_name]
            self.fields = updated

    def clear(self) -> None:
        self.descriptors = {}
        self.fields = {}
        self.last_discovery = None


class DataSourceCatalog:
    """Discovers, describes and searches the platform's data sources."""

    def __init__(
        self,
        lister: DataSourceLister,
        executor: QueryExecutor,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        sample_lookback_hours: int = DEFAULT_SAMPLE_LOOKBACK_HOURS,
        store: Optional[CatalogStore] = None,
        clock: Clock = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.lister = lister
        self.executor = executor
        self.cache_ttl = cache_ttl
        self.sample_lookback_hours = sample_lookback_hours
        self.store = store or CatalogStore()
        self._clock = clock
        self._monotonic = monotonic
        self._lock = asyncio.Lock()

    # ── Discovery ────────────────────────────────────────

    async def discover(
        self, request: Optional[DiscoveryFilter] = None
    ) -> list[DataSourceDescriptor]:
        """Discover data sources, applying the optional filter.

        Serves from cache while it is fresh. On a listing failure the seed
        sources are filtered locally and the cache is left untouched.
        """
        request = request or DiscoveryFilter()

        if self.store.is_fresh(self._monotonic(), self.cache_ttl):
            logger.debug("Using cached data sources")
            return self._apply_filter(list(self.store.descriptors.values()), request)

        async with self._lock:
            # Another caller may have refreshed while we waited
            if not self.store.is_fresh(self._monotonic(), self.cache_ttl):
                try:
                    await self._refresh()
                except Exception as e:
                    logger.warning(f"Data source discovery failed: {e}")
                    return self._apply_filter(known_sources.seed_sources(), request)

        return self._apply_filter(list(self.store.descriptors.values()), request)

    async def _refresh(self) -> None:
        raw_names = await self.lister.list_data_source_names()
        logger.info(f"Found {len(raw_names)} base data sources")

        descriptors: dict[str, DataSourceDescriptor] = {}
        for name in raw_names:
            if name not in descriptors:
                descriptors[name] = known_sources.categorize(name)

        for seed in known_sources.seed_sources():
            if seed.name not in descriptors:
                descriptors[seed.name] = seed

        # Re-attach memoized fields so describe() results survive a refresh
        for name, fields in self.store.fields.items():
            if name in descriptors:
                descriptors[name] = descriptors[name].model_copy(update={"fields": fields})

        self.store.refresh(descriptors, self._monotonic())
        logger.info(f"Discovered {len(descriptors)} categorized data sources")

    @staticmethod
    def _apply_filter(
        sources: list[DataSourceDescriptor], request: DiscoveryFilter
    ) -> list[DataSourceDescriptor]:
        matched = [s for s in sources if request.matches(s)]
        if request.limit is not None:
            matched = matched[: request.limit]
        return matched

    # ── Description ──────────────────────────────────────

    async def describe(self, source_name: str) -> Optional[DataSourceDescriptor]:
        """Describe a data source with its fields populated.

        Returns None when the source is unknown to the catalog and no
        fields could be discovered for it.
        """
        cached_fields = self.store.fields.get(source_name)
        cached = self.store.descriptors.get(source_name)
        if cached_fields is not None and cached is not None:
            return cached.model_copy(update={"fields": cached_fields})

        if self.store.last_discovery is None:
            await self.discover()
            cached = self.store.descriptors.get(source_name)

        fields = await self.discover_fields(source_name)
        if cached is None and not fields:
            logger.info(f"Data source not found: {source_name}")
            return None

        descriptor = (cached or known_sources.categorize(source_name)).model_copy(
            update={"fields": fields}
        )
        async with self._lock:
            self.store.put_fields(source_name, fields)
            self.store.put_descriptor(descriptor)

        logger.info(f"Discovered {len(fields)} fields for {source_name}")
        return descriptor

    async def discover_fields(self, source_name: str) -> list[FieldDescriptor]:
        """Infer a source's fields from a bounded sample query.

        Falls back to the static known-fields table when the sample is
        empty or the query fails. Never raises.
        """
        end = self._clock()
        start = end - timedelta(hours=self.sample_lookback_hours)
        query = _SAMPLE_QUERY.format(source=source_name)

        try:
            result = await self.executor.execute(query, start, end)
        except Exception as e:
            logger.warning(f"Field discovery failed for {source_name}: {e}")
            return known_sources.known_fields(source_name)

        if not result.data:
            logger.debug(f"Empty sample for {source_name}, using known fields")
            return known_sources.known_fields(source_name)

        return fields_from_rows(source_name, result.data)

    def cached_fields(self, source_name: str) -> list[FieldDescriptor]:
        """Memoized fields of a source without triggering discovery."""
        return list(self.store.fields.get(source_name, []))

    async def refresh_fields(self, source_name: str) -> Optional[DataSourceDescriptor]:
        """Drop the memoized fields of a source and describe it again."""
        async with self._lock:
            self.store.drop_fields(source_name)
        return await self.describe(source_name)

    # ── Search ───────────────────────────────────────────

    async def search(self, text: str) -> list[DataSourceDescriptor]:
        """Token-overlap search over name, category and description.

        A term matches where a word of the haystack starts with it
        (name segments split on "_"). Sources whose name contains the
        whole query come first, the rest follow alphabetically.
        """
        terms = search_terms(text)
        if not terms:
            return []

        query = text.strip().lower()
        sources = await self.discover()
        patterns = [re.compile(rf"\b{re.escape(term)}") for term in terms]

        matches = []
        for source in sources:
            haystack = f"{source.name} {source.category} {source.description}"
            haystack = haystack.replace("_", " ").lower()
            if any(p.search(haystack) for p in patterns):
                matches.append(source)

        return sorted(
            matches,
            key=lambda s: (0 if query and query in s.name.lower() else 1, s.name.lower()),
        )

    async def find_fields_containing(
        self, field_pattern: str, source_pattern: Optional[str] = None
    ) -> list[FieldMatch]:
        """Find fields whose name or description contains field_pattern."""
        pattern = field_pattern.lower()
        results = []

        for source in await self.discover():
            if source_pattern and source_pattern.lower() not in source.name.lower():
                continue

            described = await self.describe(source.name)
            if described is None or not described.fields:
                continue

            matching = [
                f for f in described.fields
                if pattern in f.name.lower()
                or (f.description and pattern in f.description.lower())
            ]
            if matching:
                results.append(FieldMatch(source=source.name, fields=matching))

        return results

    # ── Lifecycle ────────────────────────────────────────

    async def invalidate(self) -> None:
        """Expire the discovery cache; memoized fields are kept."""
        async with self._lock:
            self.store.last_discovery = None

    async def teardown(self) -> None:
        """Drop every cached descriptor and field set."""
        async with self._lock:
            self.store.clear()
