"""Lacework LQL API - natural-language query synthesis service.

Exposes the tool surface (listing and invocation of static and dynamic
tools), translation, and data source exploration over HTTP.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lacework_lql import __version__
from lacework_lql.api.routes import catalog, tools, translate
from lacework_lql.catalog.explorer import DataSourceCatalog
from lacework_lql.catalog.resolver import FieldResolver
from lacework_lql.config import Settings, get_settings
from lacework_lql.telemetry.client import LaceworkClient
from lacework_lql.templates.registry import TemplateRegistry
from lacework_lql.tools.registry import DynamicCapabilityRegistry
from lacework_lql.tools.service import ToolService
from lacework_lql.translator.generator import IntentTranslator
from lacework_lql.translator.query_builder import QueryBuilder

logger = logging.getLogger(__name__)


def build_components(settings: Settings, client: Any) -> dict[str, Any]:
    """Wire the engine from settings and a platform client.

    The client must implement both QueryExecutor and DataSourceLister.
    """
    catalog_ = DataSourceCatalog(
        lister=client,
        executor=client,
        cache_ttl=settings.discovery_cache_ttl_seconds,
        sample_lookback_hours=settings.field_sample_lookback_hours,
    )
    resolver = FieldResolver(catalog_)
    translator = IntentTranslator(
        catalog_, resolver, default_time_range_hours=settings.default_time_range_hours
    )
    registry = DynamicCapabilityRegistry(
        translator, client, enable_auto_generation=settings.enable_auto_generation
    )
    templates = TemplateRegistry(settings.templates_dir)
    query_builder = QueryBuilder(catalog_, resolver)
    service = ToolService(
        catalog_, translator, registry, client, templates=templates, query_builder=query_builder
    )
    return {
        "settings": settings,
        "client": client,
        "catalog": catalog_,
        "translator": translator,
        "registry": registry,
        "templates": templates,
        "query_builder": query_builder,
        "service": service,
    }


def create_app(settings: Optional[Settings] = None, client: Any = None) -> FastAPI:
    """Create the API application.

    Without arguments, settings come from the environment and the HTTP
    LaceworkClient is used as the platform collaborator.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        app_settings = settings or get_settings()
        platform = client or LaceworkClient(
            api_url=app_settings.api_url,
            api_token=app_settings.api_token,
            timeout=app_settings.query_timeout_seconds,
            max_results=app_settings.max_query_results,
        )

        components = build_components(app_settings, platform)
        for name, component in components.items():
            setattr(app.state, name, component)

        logger.info("Loading query templates...")
        templates = components["templates"]
        templates.load()
        logger.info(f"Loaded {len(templates.list_all())} templates")

        logger.info(
            f"Auto-generation {'enabled' if app_settings.enable_auto_generation else 'disabled'}"
        )
        logger.info("Lacework LQL API ready")
        yield
        # Shutdown
        logger.info("Shutting down Lacework LQL API")
        await components["catalog"].teardown()
        await components["registry"].teardown()
        if hasattr(platform, "aclose"):
            await platform.aclose()

    app = FastAPI(
        title="Lacework LQL API",
        description="""
## Natural-language query synthesis

Translates security questions into LQL, executes them, and promotes
successful queries into reusable dynamic tools.

### Key Endpoints

- `GET /v1/tools` - List static and dynamic tools
- `POST /v1/tools/call` - Invoke a tool by name
- `POST /v1/translate` - Translate text into LQL without executing
- `GET /v1/datasources` - Discover data sources
""",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tools.router, prefix="/v1")
    app.include_router(translate.router, prefix="/v1")
    app.include_router(catalog.router, prefix="/v1")

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "service": "Lacework LQL API",
            "version": __version__,
            "docs": "/docs",
            "endpoints": {
                "tools": "/v1/tools",
                "translate": "/v1/translate",
                "datasources": "/v1/datasources",
            },
        }

    return app


# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lacework_lql.api.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
    )
